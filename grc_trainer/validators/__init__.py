"""
Validators Module

Deterministic post-generation checks on generated sections.
"""

from grc_trainer.validators.formatting_validator import (
    CODE_FIELDS,
    collect_string_leaves,
    validate_formatting,
    fix_formatting,
)
from grc_trainer.validators.quiz_validator import (
    QuizValidationIssue,
    check_solution_patterns,
    validate_quiz,
)
from grc_trainer.validators.structure_validator import validate_section_structure

__all__ = [
    "CODE_FIELDS",
    "collect_string_leaves",
    "validate_formatting",
    "fix_formatting",
    "QuizValidationIssue",
    "check_solution_patterns",
    "validate_quiz",
    "validate_section_structure",
]
