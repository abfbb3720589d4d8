"""
Verification Models

Data structures for formatting validation, fact verification and the
outcome of the generate-and-verify loop.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from enum import Enum

from grc_trainer.config.settings import SectionKind
from grc_trainer.models.content_models import Citation, FlaggedClaim


class FormattingIssueKind(str, Enum):
    """Layout defects detected in generated string leaves"""
    CODE_FENCE = "codeFence"
    HTML_TAG_LEAK = "htmlTagLeak"
    SPACE_BEFORE_PUNCTUATION = "spaceBeforePunctuation"
    UNPAIRED_MARKDOWN = "unpairedMarkdown"


@dataclass(frozen=True)
class QuizValidationIssue:
    """A structural defect in a generated section (schema or quiz rules)"""
    code: str                        # e.g. "QUESTION_OPTION_COUNT"
    message: str

    def __str__(self):
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class FormattingIssue:
    """A formatting defect at a location inside the generated structure"""
    path: str                        # e.g. "sections[2].content"
    issue: FormattingIssueKind
    sample: str                      # First 140 characters of the leaf

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "issue": self.issue.value, "sample": self.sample}


class VerificationStatus(str, Enum):
    """How a verification result was obtained"""
    VERIFIED = "verified"                  # Auditor answered with a well-formed result
    CLAMPED_FALLBACK = "clamped_fallback"  # Auditor answered, malformed parts replaced
    UNAVAILABLE = "unavailable"            # Audit call failed, conservative default used


@dataclass
class VerificationResult:
    """Result of one audit call"""
    confidence_score: float
    assessment: str = ""
    flagged_claims: List[FlaggedClaim] = field(default_factory=list)
    status: VerificationStatus = VerificationStatus.VERIFIED

    @property
    def is_fallback(self) -> bool:
        return self.status != VerificationStatus.VERIFIED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidenceScore": self.confidence_score,
            "assessment": self.assessment,
            "flaggedClaims": [c.model_dump() for c in self.flagged_claims],
            "status": self.status.value,
        }


class OrchestrationState(str, Enum):
    """States of the generate-and-verify loop"""
    GENERATING = "generating"
    VALIDATING = "validating"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    ACCEPTED_WITH_WARNINGS = "accepted_with_warnings"


@dataclass
class SectionOutcome:
    """Terminal result of generating one section"""
    kind: SectionKind
    state: OrchestrationState
    content: Dict[str, Any]                      # Final section, including verification metadata
    verification: VerificationResult
    citations: List[Citation] = field(default_factory=list)
    formatting_issues: List[FormattingIssue] = field(default_factory=list)
    structure_issues: List[QuizValidationIssue] = field(default_factory=list)
    retries: int = 0
    generation_calls: int = 0
    verification_calls: int = 0
    cancelled: bool = False
    processing_time_ms: float = 0.0

    @property
    def needs_review(self) -> bool:
        return self.state == OrchestrationState.ACCEPTED_WITH_WARNINGS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "state": self.state.value,
            "confidence_score": self.verification.confidence_score,
            "verification_status": self.verification.status.value,
            "formatting_issue_count": len(self.formatting_issues),
            "structure_issue_count": len(self.structure_issues),
            "flagged_claim_count": len(self.verification.flagged_claims),
            "retries": self.retries,
            "generation_calls": self.generation_calls,
            "verification_calls": self.verification_calls,
            "cancelled": self.cancelled,
            "processing_time_ms": round(self.processing_time_ms, 1),
        }
