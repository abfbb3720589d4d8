"""
GRC Trainer Data Models

Core data structures for the curriculum, the generated content and the
verification pipeline.
"""

from grc_trainer.models.curriculum_models import (
    Tier,
    ModuleType,
    TopicDescriptor,
    DomainInfo,
    LearningPath,
    CompletionRecord,
    TopicProgress,
    Recommendation,
    TIER_RANK,
    MODULE_TYPE_RANK,
    UNKNOWN_RANK,
    tier_rank,
    module_type_rank,
)
from grc_trainer.models.content_models import (
    Citation,
    FlaggedClaim,
    LessonContent,
    ScenarioContent,
    NewsByteContent,
    MultipleChoiceQuestion,
    CodeChallengeQuestion,
    CodeChallengeValidation,
    QuizContent,
    CapstoneContent,
    SECTION_MODELS,
    parse_quiz_question,
    parse_section,
)
from grc_trainer.models.verification_models import (
    FormattingIssueKind,
    FormattingIssue,
    VerificationStatus,
    VerificationResult,
    OrchestrationState,
    SectionOutcome,
)

__all__ = [
    # Curriculum
    "Tier",
    "ModuleType",
    "TopicDescriptor",
    "DomainInfo",
    "LearningPath",
    "CompletionRecord",
    "TopicProgress",
    "Recommendation",
    "TIER_RANK",
    "MODULE_TYPE_RANK",
    "UNKNOWN_RANK",
    "tier_rank",
    "module_type_rank",
    # Content
    "Citation",
    "FlaggedClaim",
    "LessonContent",
    "ScenarioContent",
    "NewsByteContent",
    "MultipleChoiceQuestion",
    "CodeChallengeQuestion",
    "CodeChallengeValidation",
    "QuizContent",
    "CapstoneContent",
    "SECTION_MODELS",
    "parse_quiz_question",
    "parse_section",
    # Verification
    "FormattingIssueKind",
    "FormattingIssue",
    "VerificationStatus",
    "VerificationResult",
    "OrchestrationState",
    "SectionOutcome",
]
