"""
Generated Content Models

Pydantic models for the JSON sections produced by the generation pipeline.
Field names follow the JSON schema the prompts ask the model for, which is
also what the session player consumes.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from grc_trainer.config.settings import SectionKind


class Citation(BaseModel):
    """A web source substantiating generated content"""
    model_config = ConfigDict(populate_by_name=True)

    url: str
    title: str = ""
    cited_text: str = Field(default="", alias="citedText")


class FlaggedClaim(BaseModel):
    """A factual assertion the auditor identified as wrong"""
    claim: str = ""
    issue: str = ""
    suggestion: str = ""
    section: str = ""


class SectionMetadata(BaseModel):
    """Verification metadata attached to every generated section"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    citations: List[Citation] = Field(default_factory=list)
    confidence_score: Optional[float] = Field(default=None, alias="confidenceScore")
    flagged_claims: Optional[List[FlaggedClaim]] = Field(default=None, alias="flaggedClaims")


# =============================================================================
# Lesson / Scenario / News
# =============================================================================

class KeyTermCallout(BaseModel):
    term: str
    definition: str


class LessonSection(BaseModel):
    heading: str
    content: str
    key_term_callout: Optional[KeyTermCallout] = Field(default=None, alias="keyTermCallout")


class LessonContent(SectionMetadata):
    title: str
    estimated_reading_time: int = Field(default=0, alias="estimatedReadingTime")
    introduction: str = ""
    sections: List[LessonSection] = Field(default_factory=list)
    key_takeaways: List[str] = Field(default_factory=list, alias="keyTakeaways")


class AnalysisQuestion(BaseModel):
    question: str
    analysis: str


class ScenarioContent(SectionMetadata):
    title: str
    context: str = ""
    scenario: str = ""
    analysis_questions: List[AnalysisQuestion] = Field(default_factory=list, alias="analysisQuestions")


class NewsUpdate(BaseModel):
    title: str
    content: str
    source: str = ""


class NewsByteContent(SectionMetadata):
    headline: str
    summary: str = ""
    updates: List[NewsUpdate] = Field(default_factory=list)
    why_it_matters: str = Field(default="", alias="whyItMatters")


# =============================================================================
# Quiz (tagged union on "format")
# =============================================================================

class MultipleChoiceQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    format: Literal["multiple_choice"] = "multiple_choice"
    question: str = ""
    options: List[str] = Field(default_factory=list)
    correct_index: int = Field(default=-1, alias="correctIndex")
    explanation: str = ""


class CodeChallengeValidation(BaseModel):
    required_patterns: List[str] = Field(default_factory=list)
    forbidden_patterns: List[str] = Field(default_factory=list)
    min_occurrences: Dict[str, int] = Field(default_factory=dict)


class CodeChallengeQuestion(BaseModel):
    id: str = ""
    format: Literal["code_challenge"]
    language: str = ""
    scenario_context: str = ""
    control_mapping: str = ""
    expected_artifact: str = ""
    starter_code: str = ""
    solution_code: str = ""
    validation: CodeChallengeValidation = Field(default_factory=CodeChallengeValidation)
    hints: List[str] = Field(default_factory=list)
    explanation: str = ""


QuizQuestion = Annotated[
    Union[MultipleChoiceQuestion, CodeChallengeQuestion],
    Field(discriminator="format"),
]

quiz_question_adapter: TypeAdapter = TypeAdapter(QuizQuestion)


def parse_quiz_question(raw: Any) -> Union[MultipleChoiceQuestion, CodeChallengeQuestion]:
    """
    Parse one quiz item. Items without a format are multiple choice,
    which is the default the quiz prompt asks for.
    """
    if isinstance(raw, dict) and "format" not in raw:
        raw = {**raw, "format": "multiple_choice"}
    return quiz_question_adapter.validate_python(raw)


class QuizContent(SectionMetadata):
    questions: List[QuizQuestion] = Field(default_factory=list)


# =============================================================================
# Capstone
# =============================================================================

class SynthesisQuestion(BaseModel):
    question: str
    guidance: str = ""


class ScenarioDecision(BaseModel):
    situation: str
    options: List[str] = Field(default_factory=list)
    best_option: str = ""
    rationale: str = ""


class RubricCriterion(BaseModel):
    criterion: str
    excellent: str = ""
    acceptable: str = ""
    needs_work: str = ""


class CapstoneContent(SectionMetadata):
    deliverable_prompt: str
    deliverable_format: str = ""
    synthesis_questions: List[SynthesisQuestion] = Field(default_factory=list)
    scenario_decisions: List[ScenarioDecision] = Field(default_factory=list)
    rubric: List[RubricCriterion] = Field(default_factory=list)


SECTION_MODELS: Dict[SectionKind, Type[SectionMetadata]] = {
    SectionKind.LESSON: LessonContent,
    SectionKind.SCENARIO: ScenarioContent,
    SectionKind.QUIZ: QuizContent,
    SectionKind.NEWS_BYTE: NewsByteContent,
    SectionKind.CAPSTONE: CapstoneContent,
}


def parse_section(kind: SectionKind, content: Dict[str, Any]) -> SectionMetadata:
    """Validate a generated section dict against its model"""
    model = SECTION_MODELS[SectionKind(kind)]
    if SectionKind(kind) == SectionKind.QUIZ:
        questions = [
            parse_quiz_question(q).model_dump(by_alias=True)
            for q in content.get("questions", [])
        ]
        return model.model_validate({**content, "questions": questions})
    return model.model_validate(content)
