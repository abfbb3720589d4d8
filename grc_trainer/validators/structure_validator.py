"""
Section Structure Validator

Checks a generated section against its content model. Quizzes also go
through the deterministic quiz rules, which report per-question problems
instead of a single schema failure.
"""

from typing import Any, Dict, List

from pydantic import ValidationError

from grc_trainer.config.settings import SectionKind
from grc_trainer.models.content_models import SECTION_MODELS, parse_section
from grc_trainer.models.verification_models import QuizValidationIssue
from grc_trainer.validators.quiz_validator import validate_quiz


def _schema_issues(label: str, error: ValidationError) -> List[QuizValidationIssue]:
    issues = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "<root>"
        issues.append(QuizValidationIssue(
            "SECTION_SCHEMA_INVALID", f"{label}: {location}: {detail.get('msg', 'invalid value')}"
        ))
    return issues


def validate_section_structure(topic_id: str, kind: SectionKind, content: Dict[str, Any]) -> List[QuizValidationIssue]:
    """
    Validate a generated section dict.

    Args:
        topic_id: Topic the section belongs to (used in messages)
        kind: Section kind selecting the content model
        content: Parsed generation output

    Returns:
        List of issues, empty when the section matches its model
    """
    kind = SectionKind(kind)
    label = f"{topic_id}/{kind.value}"

    if not isinstance(content, dict):
        return [QuizValidationIssue("SECTION_SCHEMA_INVALID", f"{label}: section is not a JSON object")]

    if kind == SectionKind.QUIZ:
        try:
            SECTION_MODELS[kind].model_validate({**content, "questions": []})
        except ValidationError as e:
            return _schema_issues(label, e)
        return validate_quiz(topic_id, content)

    try:
        parse_section(kind, content)
    except ValidationError as e:
        return _schema_issues(label, e)
    return []
