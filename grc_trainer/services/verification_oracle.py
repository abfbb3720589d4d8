"""
Verification Oracle

Asks a second model call to fact-check a generated section and score it.

The oracle never raises for bad audits: a failed call yields the
conservative "unavailable" result and a malformed answer is clamped, so
the orchestrator always has a score to act on. Cancellation still
propagates.
"""

import logging
import math
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from grc_trainer.config.settings import PipelineConfig, SectionKind, get_config
from grc_trainer.models.content_models import Citation, FlaggedClaim
from grc_trainer.models.verification_models import VerificationResult, VerificationStatus
from grc_trainer.prompts.verification_prompts import build_verification_prompt
from grc_trainer.services.generation_client import GenerationClient


logger = logging.getLogger(__name__)


UNAVAILABLE_ASSESSMENT = "Verification could not be completed"


class VerificationOracle:
    """Scores generated sections for factual accuracy"""

    def __init__(self, client: GenerationClient, config: Optional[PipelineConfig] = None):
        self.client = client
        self.config = config or get_config()

    async def verify(
        self,
        section_kind: SectionKind,
        content_json: str,
        citations: Sequence[Citation],
    ) -> VerificationResult:
        """
        Fact-check one section.

        Args:
            section_kind: Kind of the section being audited
            content_json: Serialized section content
            citations: Sources returned with the generation

        Returns:
            VerificationResult; status tells whether it is a real audit or a fallback
        """
        prompt = build_verification_prompt(
            section_kind, content_json, citations, baseline=int(self.config.baseline_score)
        )

        try:
            raw = await self.client.generate_basic(prompt)
        except Exception as e:
            logger.warning(f"[VERIFIER] Verification unavailable for {SectionKind(section_kind).value}: {e}")
            return VerificationResult(
                confidence_score=self.config.unavailable_score,
                assessment=UNAVAILABLE_ASSESSMENT,
                flagged_claims=[],
                status=VerificationStatus.UNAVAILABLE,
            )

        return self._interpret(section_kind, raw)

    def _interpret(self, section_kind: SectionKind, raw: Any) -> VerificationResult:
        clamped = False

        score = raw.get("confidenceScore") if isinstance(raw, dict) else None
        if not _is_valid_score(score):
            logger.warning(f"[VERIFIER] Out-of-range confidence score {score!r}, clamping to {self.config.clamped_score}")
            score = self.config.clamped_score
            clamped = True

        raw_claims = raw.get("flaggedClaims") if isinstance(raw, dict) else None
        if not isinstance(raw_claims, list):
            if raw_claims is not None:
                logger.warning("[VERIFIER] flaggedClaims is not a list, treating as empty")
                clamped = True
            raw_claims = []
        claims, dropped = _parse_claims(raw_claims)
        if dropped:
            logger.warning(f"[VERIFIER] Dropped {dropped} malformed flagged claims")

        assessment = raw.get("assessment", "") if isinstance(raw, dict) else ""

        result = VerificationResult(
            confidence_score=float(score),
            assessment=assessment if isinstance(assessment, str) else str(assessment),
            flagged_claims=claims,
            status=VerificationStatus.CLAMPED_FALLBACK if clamped else VerificationStatus.VERIFIED,
        )
        logger.info(
            f"[VERIFIER] {SectionKind(section_kind).value}: score={result.confidence_score} "
            f"claims={len(claims)} status={result.status.value}"
        )
        return result


def _is_valid_score(score: Any) -> bool:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return math.isfinite(score) and 0 <= score <= 100


def _parse_claims(raw_claims: List[Any]) -> Tuple[List[FlaggedClaim], int]:
    claims = []
    dropped = 0
    for raw in raw_claims:
        try:
            claims.append(FlaggedClaim.model_validate(raw))
        except ValidationError:
            dropped += 1
    return claims, dropped
