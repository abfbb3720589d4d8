"""
Generate-and-Verify Orchestrator

Drives one section through the loop:

    GENERATING -> VALIDATING -> ACCEPTED
                      |
                      +-> RETRYING -> GENERATING ...
                      |
                      +-> ACCEPTED_WITH_WARNINGS (retries exhausted or cancelled)

Every iteration makes exactly one generation call and one verification
call. Correction prompts are always built from the original prompt plus the
latest findings, so a section is at most max_retries + 1 generations.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from grc_trainer.config.settings import PipelineConfig, SectionKind, get_config
from grc_trainer.models.content_models import Citation, FlaggedClaim
from grc_trainer.models.curriculum_models import TopicDescriptor
from grc_trainer.models.verification_models import (
    FormattingIssue,
    OrchestrationState,
    QuizValidationIssue,
    SectionOutcome,
    VerificationResult,
)
from grc_trainer.prompts.section_prompts import build_correction_prompt, build_section_prompt
from grc_trainer.services.generation_client import GenerationClient
from grc_trainer.services.verification_oracle import VerificationOracle
from grc_trainer.validators.formatting_validator import validate_formatting
from grc_trainer.validators.structure_validator import validate_section_structure


logger = logging.getLogger(__name__)


@dataclass
class RetryState:
    """What the loop knows after the latest iteration"""
    attempt: int = 0                                   # Regenerations performed so far
    phase: OrchestrationState = OrchestrationState.GENERATING
    last_content: Optional[Dict[str, Any]] = None
    last_citations: List[Citation] = field(default_factory=list)
    last_issues: List[FormattingIssue] = field(default_factory=list)
    last_structure_issues: List[QuizValidationIssue] = field(default_factory=list)
    last_claims: List[FlaggedClaim] = field(default_factory=list)
    last_verification: Optional[VerificationResult] = None
    generation_calls: int = 0
    verification_calls: int = 0


class SectionOrchestrator:
    """Generates a section and iterates until it verifies or retries run out"""

    def __init__(
        self,
        client: GenerationClient,
        oracle: Optional[VerificationOracle] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.config = config or get_config()
        self.client = client
        self.oracle = oracle or VerificationOracle(client, self.config)

    def _is_acceptable(self, state: RetryState) -> bool:
        return (
            state.last_verification is not None
            and state.last_verification.confidence_score >= self.config.confidence_threshold
            and not state.last_issues
            and not state.last_structure_issues
        )

    async def _iterate(self, topic: TopicDescriptor, kind: SectionKind, prompt: str, state: RetryState) -> None:
        state.phase = OrchestrationState.GENERATING
        result = await self.client.generate(prompt, self.config.search_budget(kind))
        state.generation_calls += 1
        state.last_content = result.content
        state.last_citations = result.citations

        state.phase = OrchestrationState.VALIDATING
        state.last_issues = validate_formatting(result.content)
        state.last_structure_issues = validate_section_structure(topic.id, kind, result.content)
        verification = await self.oracle.verify(
            kind, json.dumps(result.content, indent=2), result.citations
        )
        state.verification_calls += 1
        state.last_verification = verification
        state.last_claims = list(verification.flagged_claims)

    async def generate_section(
        self,
        topic: TopicDescriptor,
        kind: SectionKind,
        cancel: Optional[asyncio.Event] = None,
    ) -> SectionOutcome:
        """
        Generate one verified section for a topic.

        Args:
            topic: Curriculum module
            kind: Section kind
            cancel: Optional event; checked between iterations only

        Returns:
            SectionOutcome in a terminal state

        Raises:
            ContentParseError: A generation could not be parsed (not retried)
            GenerationError: The capability returned no text
        """
        kind = SectionKind(kind)
        start_time = time.time()
        original_prompt = build_section_prompt(topic, kind)
        state = RetryState()
        cancelled = False

        logger.info(f"[ORCHESTRATOR] Generating {kind.value} for {topic.id}")
        await self._iterate(topic, kind, original_prompt, state)

        while not self._is_acceptable(state):
            if state.attempt >= self.config.max_retries:
                logger.warning(
                    f"[ORCHESTRATOR] {topic.id}/{kind.value}: retries exhausted, "
                    f"accepting score {state.last_verification.confidence_score} with warnings"
                )
                break
            if cancel is not None and cancel.is_set():
                logger.warning(f"[ORCHESTRATOR] {topic.id}/{kind.value}: cancelled after {state.attempt} retries")
                cancelled = True
                break

            state.attempt += 1
            state.phase = OrchestrationState.RETRYING
            logger.info(
                f"[ORCHESTRATOR] {topic.id}/{kind.value}: retry {state.attempt}/{self.config.max_retries} "
                f"(score={state.last_verification.confidence_score}, claims={len(state.last_claims)}, "
                f"formatting={len(state.last_issues)}, structure={len(state.last_structure_issues)})"
            )
            correction_prompt = build_correction_prompt(
                original_prompt, state.last_claims, state.last_issues, state.last_structure_issues
            )
            await self._iterate(topic, kind, correction_prompt, state)

        if self._is_acceptable(state):
            state.phase = OrchestrationState.ACCEPTED
        else:
            state.phase = OrchestrationState.ACCEPTED_WITH_WARNINGS

        outcome = SectionOutcome(
            kind=kind,
            state=state.phase,
            content=self._finalize_content(state),
            verification=state.last_verification,
            citations=state.last_citations,
            formatting_issues=state.last_issues,
            structure_issues=state.last_structure_issues,
            retries=state.attempt,
            generation_calls=state.generation_calls,
            verification_calls=state.verification_calls,
            cancelled=cancelled,
            processing_time_ms=(time.time() - start_time) * 1000,
        )
        logger.info(f"[ORCHESTRATOR] {topic.id}/{kind.value}: {outcome.state.value} {outcome.to_dict()}")
        return outcome

    def _finalize_content(self, state: RetryState) -> Dict[str, Any]:
        verification = state.last_verification
        content = dict(state.last_content)
        content["citations"] = [c.model_dump(by_alias=True) for c in state.last_citations]
        content["confidenceScore"] = verification.confidence_score
        if verification.confidence_score < self.config.confidence_threshold:
            content["flaggedClaims"] = [c.model_dump() for c in verification.flagged_claims]
        else:
            content.pop("flaggedClaims", None)
        return content
