"""
Tests for the Generate-and-Verify Orchestrator

Covers the retry loop bounds, acceptance rules, correction prompts,
metadata attached to the final content and cancellation.
"""

import asyncio
import copy
import json

import pytest

from grc_trainer.config.settings import PipelineConfig, SectionKind
from grc_trainer.models.content_models import Citation
from grc_trainer.models.verification_models import OrchestrationState, VerificationStatus
from grc_trainer.services.generation_client import CapabilityResponse
from grc_trainer.services.json_parser import ContentParseError
from grc_trainer.services.section_orchestrator import SectionOrchestrator

from conftest import verdict, wrong_claim


def make_orchestrator(make_client, generations, verifications, config=None):
    client, capability = make_client(generations, verifications)
    return SectionOrchestrator(client, config=config or PipelineConfig()), capability


# =============================================================================
# Acceptance
# =============================================================================

class TestAcceptance:
    """Test single-iteration acceptance"""

    @pytest.mark.asyncio
    async def test_accepts_at_96_after_one_iteration(self, make_client, topic_t1, lesson_content):
        """One generation plus one verification; no flaggedClaims above threshold"""
        orchestrator, capability = make_orchestrator(make_client, [lesson_content], [verdict(96)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert outcome.state == OrchestrationState.ACCEPTED
        assert capability.generation_calls == 1
        assert capability.verification_calls == 1
        assert outcome.generation_calls == 1
        assert outcome.verification_calls == 1
        assert outcome.retries == 0
        assert outcome.content["confidenceScore"] == 96
        assert outcome.content["citations"] == []
        assert "flaggedClaims" not in outcome.content
        assert outcome.content["title"] == lesson_content["title"]
        assert not outcome.needs_review

    @pytest.mark.asyncio
    async def test_search_budget_per_kind(self, make_client, topic_t1, quiz_content):
        orchestrator, capability = make_orchestrator(make_client, [quiz_content], [verdict(97)])

        await orchestrator.generate_section(topic_t1, SectionKind.QUIZ)

        assert capability.generation_prompts[0][1] == 8

    @pytest.mark.asyncio
    async def test_citations_attached_by_alias(self, make_client, topic_t1, lesson_content):
        response = CapabilityResponse(
            text_blocks=[json.dumps(lesson_content)],
            citations=[
                Citation(url="https://nist.gov", title="NIST", cited_text="Govern"),
                Citation(url="https://nist.gov", title="dup"),
            ],
        )
        orchestrator, _ = make_orchestrator(make_client, [response], [verdict(97)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert outcome.content["citations"] == [
            {"url": "https://nist.gov", "title": "NIST", "citedText": "Govern"}
        ]

    @pytest.mark.asyncio
    async def test_model_supplied_flagged_claims_removed_when_accepted(self, make_client, topic_t1, lesson_content):
        content = {**lesson_content, "flaggedClaims": [wrong_claim()]}
        orchestrator, _ = make_orchestrator(make_client, [content], [verdict(97)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert "flaggedClaims" not in outcome.content


# =============================================================================
# Retry loop
# =============================================================================

class TestRetryLoop:
    """Test retries, correction prompts and termination"""

    @pytest.mark.asyncio
    async def test_terminates_after_max_retries_plus_one(self, make_client, topic_t1, lesson_content):
        """Score 0 forever: exactly MAX_RETRIES + 1 generations, then warnings"""
        orchestrator, capability = make_orchestrator(
            make_client, [lesson_content], [verdict(0, [wrong_claim()])]
        )

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert capability.generation_calls == 11
        assert capability.verification_calls == 11
        assert outcome.retries == 10
        assert outcome.state == OrchestrationState.ACCEPTED_WITH_WARNINGS
        assert outcome.needs_review
        assert outcome.content["confidenceScore"] == 0
        assert outcome.content["flaggedClaims"][0]["claim"] == wrong_claim()["claim"]
        assert not outcome.cancelled

    @pytest.mark.asyncio
    async def test_retry_then_accept(self, make_client, topic_t1, lesson_content):
        orchestrator, capability = make_orchestrator(
            make_client,
            [lesson_content],
            [verdict(80, [wrong_claim()]), verdict(97)],
        )

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert outcome.state == OrchestrationState.ACCEPTED
        assert capability.generation_calls == 2
        assert outcome.retries == 1

        first_prompt, first_budget = capability.generation_prompts[0]
        second_prompt, second_budget = capability.generation_prompts[1]
        assert "CRITICAL CORRECTIONS REQUIRED" not in first_prompt
        assert second_prompt.startswith(first_prompt)
        assert "ISO 27001:2022 has 114 Annex A controls" in second_prompt
        assert first_budget == second_budget == 10

    @pytest.mark.asyncio
    async def test_correction_prompts_use_latest_findings_only(self, make_client, topic_t1, lesson_content):
        orchestrator, capability = make_orchestrator(
            make_client,
            [lesson_content],
            [
                verdict(90, [wrong_claim("first wrong claim")]),
                verdict(90, [wrong_claim("second wrong claim")]),
                verdict(96),
            ],
        )

        await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        third_prompt = capability.generation_prompts[2][0]
        assert "second wrong claim" in third_prompt
        assert "first wrong claim" not in third_prompt
        assert third_prompt.count("CRITICAL CORRECTIONS REQUIRED") == 1

    @pytest.mark.asyncio
    async def test_formatting_issue_forces_retry(self, make_client, topic_t1, lesson_content):
        """A high score is not enough while formatting issues remain"""
        broken = copy.deepcopy(lesson_content)
        broken["sections"][0]["content"] = "Grant <b>only</b> what is needed ."
        orchestrator, capability = make_orchestrator(make_client, [broken, lesson_content], [verdict(97)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert outcome.state == OrchestrationState.ACCEPTED
        assert capability.generation_calls == 2
        retry_prompt = capability.generation_prompts[1][0]
        assert "FORMATTING FIXES REQUIRED" in retry_prompt
        assert "PATH: sections[0].content - ISSUE: htmlTagLeak" in retry_prompt
        assert "None provided." in retry_prompt
        assert outcome.formatting_issues == []

    @pytest.mark.asyncio
    async def test_exhausted_with_formatting_issues_only(self, make_client, topic_t1, lesson_content):
        broken = {**lesson_content, "title": "Access ```control```"}
        orchestrator, capability = make_orchestrator(
            make_client, [broken], [verdict(97)], PipelineConfig(max_retries=2)
        )

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert capability.generation_calls == 3
        assert outcome.state == OrchestrationState.ACCEPTED_WITH_WARNINGS
        assert [i.path for i in outcome.formatting_issues] == ["title"]
        assert outcome.content["confidenceScore"] == 97
        assert "flaggedClaims" not in outcome.content

    @pytest.mark.asyncio
    async def test_broken_quiz_forces_retry(self, make_client, topic_t1, quiz_content):
        """A confident verdict does not accept a quiz that breaks the quiz rules"""
        broken = {"questions": [{
            "id": "q1",
            "question": "Which function covers governance?",
            "options": ["a", "b"],
            "correctIndex": 9,
            "explanation": "Govern was added in CSF 2.0.",
        }]}
        orchestrator, capability = make_orchestrator(make_client, [broken, quiz_content], [verdict(99)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.QUIZ)

        assert outcome.state == OrchestrationState.ACCEPTED
        assert capability.generation_calls == 2
        retry_prompt = capability.generation_prompts[1][0]
        assert "STRUCTURE FIXES REQUIRED" in retry_prompt
        assert "QUESTION_OPTION_COUNT: T1 q1: expected 4 options, got 2" in retry_prompt
        assert "QUESTION_INVALID_CORRECT_INDEX" in retry_prompt
        assert outcome.structure_issues == []

    @pytest.mark.asyncio
    async def test_schema_violation_forces_retry(self, make_client, topic_t1, lesson_content):
        """A section missing a required field is regenerated"""
        untitled = {k: v for k, v in lesson_content.items() if k != "title"}
        orchestrator, capability = make_orchestrator(make_client, [untitled, lesson_content], [verdict(98)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert outcome.state == OrchestrationState.ACCEPTED
        assert capability.generation_calls == 2
        assert "SECTION_SCHEMA_INVALID: T1/lesson: title: Field required" in capability.generation_prompts[1][0]

    @pytest.mark.asyncio
    async def test_exhausted_with_structure_issues(self, make_client, topic_t1):
        broken = {"questions": [{"question": "Too short?", "options": ["a", "b"], "correctIndex": 9}]}
        orchestrator, capability = make_orchestrator(
            make_client, [broken], [verdict(99)], PipelineConfig(max_retries=2)
        )

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.QUIZ)

        assert capability.generation_calls == 3
        assert outcome.state == OrchestrationState.ACCEPTED_WITH_WARNINGS
        assert outcome.needs_review
        assert {i.code for i in outcome.structure_issues} >= {
            "QUESTION_OPTION_COUNT",
            "QUESTION_INVALID_CORRECT_INDEX",
            "QUESTION_TOO_SHORT",
        }
        assert outcome.to_dict()["structure_issue_count"] == len(outcome.structure_issues)

    @pytest.mark.asyncio
    async def test_unavailable_verification_triggers_retries(self, make_client, topic_t1, lesson_content):
        orchestrator, capability = make_orchestrator(
            make_client, [lesson_content], [RuntimeError("down")], PipelineConfig(max_retries=1)
        )

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert capability.generation_calls == 2
        assert outcome.verification.status == VerificationStatus.UNAVAILABLE
        assert outcome.content["confidenceScore"] == 75
        assert outcome.content["flaggedClaims"] == []

    @pytest.mark.asyncio
    async def test_zero_retries(self, make_client, topic_t1, lesson_content):
        orchestrator, capability = make_orchestrator(
            make_client, [lesson_content], [verdict(50)], PipelineConfig(max_retries=0)
        )

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON)

        assert capability.generation_calls == 1
        assert outcome.state == OrchestrationState.ACCEPTED_WITH_WARNINGS


# =============================================================================
# Errors and cancellation
# =============================================================================

class TestErrorsAndCancellation:
    """Test propagation of parse errors and the cancel signal"""

    @pytest.mark.asyncio
    async def test_parse_error_propagates(self, make_client, topic_t1):
        orchestrator, capability = make_orchestrator(make_client, ["Sorry, I cannot help."], [verdict(97)])

        with pytest.raises(ContentParseError):
            await orchestrator.generate_section(topic_t1, SectionKind.LESSON)
        assert capability.verification_calls == 0

    @pytest.mark.asyncio
    async def test_parse_error_on_retry_propagates(self, make_client, topic_t1, lesson_content):
        orchestrator, capability = make_orchestrator(
            make_client, [lesson_content, "not json"], [verdict(10)]
        )

        with pytest.raises(ContentParseError):
            await orchestrator.generate_section(topic_t1, SectionKind.LESSON)
        assert capability.generation_calls == 2

    @pytest.mark.asyncio
    async def test_cancel_between_iterations(self, make_client, topic_t1, lesson_content):
        """A set cancel event stops the loop after the current iteration"""
        cancel = asyncio.Event()
        cancel.set()
        orchestrator, capability = make_orchestrator(make_client, [lesson_content], [verdict(40, [wrong_claim()])])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON, cancel=cancel)

        assert capability.generation_calls == 1
        assert outcome.cancelled
        assert outcome.state == OrchestrationState.ACCEPTED_WITH_WARNINGS
        assert outcome.content["flaggedClaims"]

    @pytest.mark.asyncio
    async def test_cancel_event_ignored_when_accepted(self, make_client, topic_t1, lesson_content):
        cancel = asyncio.Event()
        cancel.set()
        orchestrator, _ = make_orchestrator(make_client, [lesson_content], [verdict(97)])

        outcome = await orchestrator.generate_section(topic_t1, SectionKind.LESSON, cancel=cancel)

        assert outcome.state == OrchestrationState.ACCEPTED
        assert not outcome.cancelled
