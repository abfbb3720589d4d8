"""
Curriculum Data Models

Core data structures for the curriculum graph and the recommendation engine:
topics, learning paths, completion history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple


class Tier(str, Enum):
    """Difficulty / sequencing level of a module"""
    FOUNDATIONAL = "foundational"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ModuleType(str, Enum):
    """Role of a module in the curriculum; determines ordering"""
    CORE = "core"
    DEPTH = "depth"
    SPECIALIZATION = "specialization"
    CAPSTONE = "capstone"


TIER_RANK: Dict[str, int] = {
    Tier.FOUNDATIONAL.value: 0,
    Tier.INTERMEDIATE.value: 1,
    Tier.ADVANCED.value: 2,
}

MODULE_TYPE_RANK: Dict[str, int] = {
    ModuleType.CORE.value: 0,
    ModuleType.DEPTH.value: 1,
    ModuleType.SPECIALIZATION.value: 2,
    ModuleType.CAPSTONE.value: 3,
}

# Rank given to tiers / module types that are not part of the known vocabulary
UNKNOWN_RANK = 99


def tier_rank(tier: str) -> int:
    return TIER_RANK.get(tier.lower(), UNKNOWN_RANK)


def module_type_rank(module_type: str) -> int:
    return MODULE_TYPE_RANK.get(module_type.lower(), UNKNOWN_RANK)


@dataclass(frozen=True)
class TopicDescriptor:
    """A single curriculum module. Immutable once the graph is loaded."""
    id: str
    title: str
    domain: str
    tier: str = Tier.FOUNDATIONAL.value
    module_type: str = ModuleType.CORE.value
    objectives: Tuple[str, ...] = ()
    key_terms: Tuple[str, ...] = ()
    prompt_hints: str = ""
    domain_slug: str = ""
    competency_ids: Tuple[str, ...] = ()
    prerequisites: Tuple[str, ...] = ()

    @property
    def level(self) -> str:
        """Alias used by prompt templates"""
        return self.tier

    @property
    def sort_key(self) -> Tuple[int, int, str]:
        """Total order: tier, then module type, then title"""
        return (tier_rank(self.tier), module_type_rank(self.module_type), self.title)

    @property
    def is_engineering(self) -> bool:
        """Engineering-oriented topics get code challenges in their quiz"""
        domain = self.domain.lower()
        return self.id.startswith("GRCENG_") or "engineering" in domain or "automation" in domain

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "domain": self.domain,
            "domain_slug": self.domain_slug,
            "tier": self.tier,
            "module_type": self.module_type,
            "objectives": list(self.objectives),
            "key_terms": list(self.key_terms),
            "prompt_hints": self.prompt_hints,
            "competency_ids": list(self.competency_ids),
            "prerequisites": list(self.prerequisites),
        }


@dataclass(frozen=True)
class DomainInfo:
    """Domain metadata from a curriculum definition file"""
    name: str
    slug: str
    description: str = ""


@dataclass(frozen=True)
class LearningPath:
    """A curated ordered selection of modules (e.g. a role track)"""
    id: str
    title: str
    description: str = ""
    module_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "module_ids": list(self.module_ids),
        }


@dataclass
class CompletionRecord:
    """One completed session, as recorded by the progress store"""
    topic_id: str
    date: str
    quiz_score: int
    quiz_total: int

    @property
    def score_percent(self) -> float:
        if self.quiz_total <= 0:
            return 0.0
        return self.quiz_score / self.quiz_total * 100


@dataclass
class TopicProgress:
    """Per-topic study history used by the spaced-repetition picker"""
    topic_id: str
    last_studied: datetime
    quiz_score: float                 # Latest quiz score, in percent
    times_studied: int = 1


@dataclass
class Recommendation:
    """Next topic plus a human-readable reason"""
    topic: TopicDescriptor
    reason: str
    path_id: Optional[str] = None
    is_review: bool = False
    missing_prerequisites: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic.to_dict(),
            "reason": self.reason,
            "path_id": self.path_id,
            "is_review": self.is_review,
            "missing_prerequisites": self.missing_prerequisites,
        }
