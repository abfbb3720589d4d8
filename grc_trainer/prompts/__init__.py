"""
Prompts Module

Prompt templates for section generation, correction and verification.
"""

from grc_trainer.prompts.section_prompts import (
    ROLE_FRAMING,
    CURRENT_FRAMEWORK_VERSIONS,
    LESSON_PROMPT,
    SCENARIO_PROMPT,
    QUIZ_PROMPT,
    NEWS_BYTE_PROMPT,
    CAPSTONE_PROMPT,
    CORRECTION_SUFFIX,
    build_section_prompt,
    build_correction_prompt,
)
from grc_trainer.prompts.verification_prompts import (
    STANDARD_VERIFICATION_PROMPT,
    SCENARIO_VERIFICATION_PROMPT,
    NO_CITATIONS,
    format_citations,
    build_verification_prompt,
)

__all__ = [
    "ROLE_FRAMING",
    "CURRENT_FRAMEWORK_VERSIONS",
    "LESSON_PROMPT",
    "SCENARIO_PROMPT",
    "QUIZ_PROMPT",
    "NEWS_BYTE_PROMPT",
    "CAPSTONE_PROMPT",
    "CORRECTION_SUFFIX",
    "build_section_prompt",
    "build_correction_prompt",
    "STANDARD_VERIFICATION_PROMPT",
    "SCENARIO_VERIFICATION_PROMPT",
    "NO_CITATIONS",
    "format_citations",
    "build_verification_prompt",
]
