"""
Deterministic Quiz Validator

Structural checks on generated quizzes that do not need an LLM:
option counts, answer indexes, duplicate items, explanation length and,
for code challenges, that the reference solution satisfies its own
pattern rules.
"""

import json
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from grc_trainer.models.content_models import (
    CodeChallengeQuestion,
    MultipleChoiceQuestion,
    parse_quiz_question,
)
from grc_trainer.models.verification_models import QuizValidationIssue


MIN_QUESTION_LENGTH = 12
MIN_EXPLANATION_LENGTH = 20
EXPECTED_OPTION_COUNT = 4


def check_solution_patterns(question: CodeChallengeQuestion) -> List[str]:
    """Return the pattern rules the reference solution violates"""
    problems = []
    solution = question.solution_code
    rules = question.validation

    for pattern in rules.required_patterns:
        if pattern not in solution:
            problems.append(f"required pattern missing in solution: {pattern}")
    for pattern in rules.forbidden_patterns:
        if pattern in solution:
            problems.append(f"forbidden pattern found in solution: {pattern}")
    for pattern, minimum in rules.min_occurrences.items():
        count = solution.count(pattern)
        if count < minimum:
            problems.append(f"pattern {pattern} occurs {count} times, expected at least {minimum}")

    return problems


def validate_quiz(topic_id: str, quiz: Union[str, Dict[str, Any]]) -> List[QuizValidationIssue]:
    """
    Validate a quiz section.

    Args:
        topic_id: Topic the quiz belongs to (used in messages)
        quiz: Quiz dict, or its serialized JSON

    Returns:
        List of issues, empty when the quiz is structurally sound
    """
    if isinstance(quiz, str):
        try:
            quiz = json.loads(quiz)
        except json.JSONDecodeError:
            return [QuizValidationIssue("QUIZ_INVALID_JSON", f"{topic_id}: quiz JSON failed to parse")]

    raw_questions = quiz.get("questions") if isinstance(quiz, dict) else None
    if not isinstance(raw_questions, list):
        raw_questions = []

    issues: List[QuizValidationIssue] = []
    seen_ids = set()
    seen_texts = set()

    for index, raw in enumerate(raw_questions):
        label = f"{topic_id} q{index + 1}"

        try:
            question = parse_quiz_question(raw)
        except ValidationError as e:
            issues.append(QuizValidationIssue(
                "QUESTION_INVALID_SHAPE",
                f"{label}: item does not match any question format ({e.error_count()} errors)",
            ))
            continue

        qid = question.id or f"q{index + 1}"
        if qid in seen_ids:
            issues.append(QuizValidationIssue("QUIZ_DUPLICATE_ID", f'{label}: duplicate id "{qid}"'))
        seen_ids.add(qid)

        if isinstance(question, CodeChallengeQuestion):
            if len(question.explanation.strip()) < MIN_EXPLANATION_LENGTH:
                issues.append(QuizValidationIssue(
                    "CODE_EXPLANATION_TOO_SHORT", f"{label}: code challenge explanation too short"
                ))
            for problem in check_solution_patterns(question):
                issues.append(QuizValidationIssue("CODE_SOLUTION_PATTERN", f"{label}: {problem}"))

        elif isinstance(question, MultipleChoiceQuestion):
            issues.extend(_validate_multiple_choice(question, label, seen_texts))

    return issues


def _validate_multiple_choice(
    question: MultipleChoiceQuestion,
    label: str,
    seen_texts: set,
) -> List[QuizValidationIssue]:
    issues = []

    text = question.question.strip()
    if len(text) < MIN_QUESTION_LENGTH:
        issues.append(QuizValidationIssue("QUESTION_TOO_SHORT", f"{label}: question text too short"))
    normalized = text.lower()
    if normalized in seen_texts:
        issues.append(QuizValidationIssue("QUESTION_DUPLICATE_TEXT", f"{label}: duplicate question text"))
    seen_texts.add(normalized)

    options = question.options
    if len(options) != EXPECTED_OPTION_COUNT:
        issues.append(QuizValidationIssue(
            "QUESTION_OPTION_COUNT",
            f"{label}: expected {EXPECTED_OPTION_COUNT} options, got {len(options)}",
        ))
    if len({o.strip().lower() for o in options}) != len(options):
        issues.append(QuizValidationIssue("QUESTION_DUPLICATE_OPTIONS", f"{label}: duplicate answer options found"))

    if not 0 <= question.correct_index < len(options):
        issues.append(QuizValidationIssue(
            "QUESTION_INVALID_CORRECT_INDEX", f"{label}: invalid correctIndex {question.correct_index}"
        ))

    if len(question.explanation.strip()) < MIN_EXPLANATION_LENGTH:
        issues.append(QuizValidationIssue("QUESTION_EXPLANATION_TOO_SHORT", f"{label}: explanation too short"))

    return issues
