"""
Pytest Configuration and Shared Fixtures for GRC Trainer Tests
"""

import json
from typing import Any, Callable, List, Tuple, Union

import pytest

from grc_trainer.config.settings import PipelineConfig
from grc_trainer.engines.curriculum_graph import CurriculumGraph
from grc_trainer.models.content_models import Citation
from grc_trainer.prompts.verification_prompts import VERIFICATION_ROLE
from grc_trainer.services.generation_client import CapabilityResponse, GenerationClient


# ============================================
# Scripted generation capability
# ============================================

Scripted = Union[CapabilityResponse, dict, str, BaseException]


def _to_response(item: Scripted) -> CapabilityResponse:
    if isinstance(item, BaseException):
        raise item
    if isinstance(item, CapabilityResponse):
        return item
    if isinstance(item, dict):
        return CapabilityResponse(text_blocks=[json.dumps(item)])
    return CapabilityResponse(text_blocks=[item])


class ScriptedCapability:
    """
    Fake capability that replays scripted answers.

    Generation and verification calls are scripted separately (verification
    prompts are recognised by their role line). When a script runs out, its
    last entry is repeated.
    """

    def __init__(self, generations: List[Scripted] = (), verifications: List[Scripted] = ()):
        self.generations = list(generations)
        self.verifications = list(verifications)
        self.generation_prompts: List[Tuple[str, int]] = []
        self.verification_prompts: List[str] = []

    @staticmethod
    def _next(script: List[Scripted], index: int) -> Scripted:
        return script[min(index, len(script) - 1)]

    async def invoke(self, prompt: str, web_search_max_uses: int = 0) -> CapabilityResponse:
        if prompt.startswith(VERIFICATION_ROLE):
            index = len(self.verification_prompts)
            self.verification_prompts.append(prompt)
            return _to_response(self._next(self.verifications, index))

        index = len(self.generation_prompts)
        self.generation_prompts.append((prompt, web_search_max_uses))
        return _to_response(self._next(self.generations, index))

    @property
    def generation_calls(self) -> int:
        return len(self.generation_prompts)

    @property
    def verification_calls(self) -> int:
        return len(self.verification_prompts)


def verdict(score: Any, claims: Any = None, assessment: str = "checked") -> dict:
    """Verification answer as the auditor model would return it"""
    return {
        "confidenceScore": score,
        "assessment": assessment,
        "flaggedClaims": [] if claims is None else claims,
    }


def wrong_claim(claim: str = "ISO 27001:2022 has 114 Annex A controls") -> dict:
    return {
        "claim": claim,
        "issue": "The 2022 revision has 93 controls",
        "suggestion": "ISO 27001:2022 Annex A has 93 controls in four themes",
        "section": "sections[0]",
    }


# ============================================
# Content Fixtures
# ============================================

@pytest.fixture
def lesson_content():
    """A clean lesson section"""
    return {
        "title": "Access Control Basics",
        "estimatedReadingTime": 6,
        "introduction": "Access control limits who can use which resources.",
        "sections": [
            {
                "heading": "Least privilege",
                "content": "Grant only the access a role needs.",
                "keyTermCallout": {"term": "Least privilege", "definition": "Minimum necessary access."},
            },
            {"heading": "Access reviews", "content": "Review entitlements on a fixed cadence."},
        ],
        "keyTakeaways": ["Least privilege limits blast radius.", "Reviews catch access creep."],
    }


@pytest.fixture
def quiz_content():
    """A structurally valid quiz with one code challenge"""
    return {
        "questions": [
            {
                "id": "q1",
                "format": "multiple_choice",
                "question": "Which NIST CSF 2.0 function covers governance?",
                "options": ["Govern", "Identify", "Protect", "Recover"],
                "correctIndex": 0,
                "explanation": "NIST CSF 2.0 added the Govern function to cover governance outcomes.",
            },
            {
                "id": "q2",
                "format": "code_challenge",
                "language": "hcl",
                "scenario_context": "A bucket must be encrypted at rest.",
                "control_mapping": "SOC 2 CC6.1",
                "expected_artifact": "Terraform resource",
                "starter_code": "resource \"aws_s3_bucket\" \"logs\" {}",
                "solution_code": "resource \"aws_s3_bucket_server_side_encryption_configuration\" \"logs\" {\n  sse_algorithm = \"aws:kms\"\n}",
                "validation": {
                    "required_patterns": ["sse_algorithm", "aws:kms"],
                    "forbidden_patterns": ["AES128"],
                    "min_occurrences": {"logs": 1},
                },
                "hints": ["Use a KMS key."],
                "explanation": "Server-side encryption with KMS satisfies the encryption-at-rest control.",
            },
        ]
    }


@pytest.fixture
def sample_citations():
    return [
        Citation(url="https://www.nist.gov/cyberframework", title="NIST CSF", cited_text="Govern"),
        Citation(url="https://www.iso.org/standard/27001", title="ISO 27001"),
    ]


# ============================================
# Configuration Fixtures
# ============================================

@pytest.fixture
def pipeline_config():
    """Default pipeline configuration"""
    return PipelineConfig()


@pytest.fixture
def make_client() -> Callable[..., Tuple[GenerationClient, ScriptedCapability]]:
    def factory(generations=(), verifications=()):
        capability = ScriptedCapability(generations, verifications)
        return GenerationClient(capability), capability
    return factory


# ============================================
# Curriculum Fixtures
# ============================================

def domain_definitions() -> List[dict]:
    """
    Two-domain curriculum:
    - T1 (Governance, foundational core)
    - T2 (Risk, foundational core)
    - T3 (Governance, intermediate core, requires T1)
    """
    return [
        {
            "name": "Governance",
            "slug": "governance",
            "description": "Security governance",
            "modules": [
                {
                    "id": "T1",
                    "title": "Access Control Basics",
                    "tier": "foundational",
                    "module_type": "core",
                    "objectives": ["Explain least privilege"],
                    "key_terms": ["Least privilege"],
                    "prompt_hints": "Keep it practical.",
                },
                {
                    "id": "T3",
                    "title": "Access Review Programs",
                    "tier": "intermediate",
                    "module_type": "core",
                    "prerequisites": ["T1"],
                },
            ],
        },
        {
            "name": "Risk",
            "slug": "risk",
            "description": "Risk management",
            "modules": [
                {
                    "id": "T2",
                    "title": "Business Impact Analysis",
                    "tier": "foundational",
                    "module_type": "core",
                },
            ],
        },
    ]


@pytest.fixture
def curriculum_graph():
    return CurriculumGraph.from_definitions(
        domain_definitions(),
        [{"id": "starter", "title": "Starter", "module_ids": ["T2", "T3"]}],
    )


@pytest.fixture
def topic_t1(curriculum_graph):
    return curriculum_graph.get_by_id("T1")
