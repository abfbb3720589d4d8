"""
Services Module

Generation, verification, orchestration and persistence of session content.
"""

from grc_trainer.services.json_parser import ContentParseError, extract_json_object
from grc_trainer.services.generation_client import (
    CapabilityResponse,
    GenerationCapability,
    GenerationClient,
    GenerationError,
    GenerationResult,
    OpenAIResponsesCapability,
    dedupe_citations,
)
from grc_trainer.services.verification_oracle import VerificationOracle
from grc_trainer.services.section_orchestrator import RetryState, SectionOrchestrator
from grc_trainer.services.content_store import (
    ContentAlreadyExistsError,
    ContentStore,
    InMemoryContentStore,
    SqlContentStore,
    StoredSession,
)
from grc_trainer.services.session_generator import SessionGenerator, session_sections

__all__ = [
    "ContentParseError",
    "extract_json_object",
    "CapabilityResponse",
    "GenerationCapability",
    "GenerationClient",
    "GenerationError",
    "GenerationResult",
    "OpenAIResponsesCapability",
    "dedupe_citations",
    "VerificationOracle",
    "RetryState",
    "SectionOrchestrator",
    "ContentAlreadyExistsError",
    "ContentStore",
    "InMemoryContentStore",
    "SqlContentStore",
    "StoredSession",
    "SessionGenerator",
    "session_sections",
]
