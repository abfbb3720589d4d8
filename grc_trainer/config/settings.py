"""
GRC Trainer Configuration Settings

Tunable thresholds for the generate-and-verify pipeline and the
recommendation engine, loadable from environment variables or a JSON file.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict
import json
import os


class SectionKind(str, Enum):
    """Kinds of generated session content"""
    LESSON = "lesson"
    SCENARIO = "scenario"
    QUIZ = "quiz"
    NEWS_BYTE = "newsByte"
    CAPSTONE = "capstone"


# Web search invocations granted to the generator per section kind
DEFAULT_SEARCH_BUDGETS: Dict[SectionKind, int] = {
    SectionKind.LESSON: 10,
    SectionKind.SCENARIO: 8,
    SectionKind.QUIZ: 8,
    SectionKind.NEWS_BYTE: 10,
    SectionKind.CAPSTONE: 6,
}


@dataclass
class PipelineConfig:
    """Global configuration for content generation and recommendation"""

    # Generate-and-verify loop
    confidence_threshold: float = 95.0
    max_retries: int = 10
    search_budgets: Dict[SectionKind, int] = field(
        default_factory=lambda: dict(DEFAULT_SEARCH_BUDGETS)
    )

    # Verification oracle
    baseline_score: float = 97.0           # Score the auditor starts from
    clamped_score: float = 85.0            # Used when the audit output is malformed
    unavailable_score: float = 75.0        # Used when the audit call itself fails

    # Generation capability
    model: str = ""                        # Empty: quality model of the selected provider
    max_tokens: int = 8192
    request_timeout_seconds: float = 120.0

    # Storage and curriculum sources
    database_url: str = "sqlite+aiosqlite:///grc_trainer.db"
    curriculum_dir: str = ""               # Empty: curriculum shipped with the package

    # Recommendation / spaced repetition
    weak_topic_threshold: float = 75.0     # Quiz average (%) below which a topic is weak
    review_min_age_days: int = 7
    review_score_threshold: float = 80.0
    strong_score_percent: float = 80.0
    review_interval_strong_days: int = 7
    review_interval_weak_days: int = 3

    def search_budget(self, kind: SectionKind) -> int:
        return self.search_budgets.get(SectionKind(kind), DEFAULT_SEARCH_BUDGETS[SectionKind(kind)])

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Load configuration from environment variables"""
        budgets = dict(DEFAULT_SEARCH_BUDGETS)
        for kind in SectionKind:
            env_name = f"GRC_SEARCH_BUDGET_{kind.name}"
            if os.getenv(env_name):
                budgets[kind] = int(os.environ[env_name])

        return cls(
            confidence_threshold=float(os.getenv("GRC_CONFIDENCE_THRESHOLD", "95")),
            max_retries=int(os.getenv("GRC_MAX_RETRIES", "10")),
            search_budgets=budgets,
            baseline_score=float(os.getenv("GRC_BASELINE_SCORE", "97")),
            clamped_score=float(os.getenv("GRC_CLAMPED_SCORE", "85")),
            unavailable_score=float(os.getenv("GRC_UNAVAILABLE_SCORE", "75")),
            model=os.getenv("GRC_MODEL", ""),
            max_tokens=int(os.getenv("GRC_MAX_TOKENS", "8192")),
            request_timeout_seconds=float(os.getenv("GRC_REQUEST_TIMEOUT", "120")),
            database_url=os.getenv("GRC_DATABASE_URL", "sqlite+aiosqlite:///grc_trainer.db"),
            curriculum_dir=os.getenv("GRC_CURRICULUM_DIR", ""),
            weak_topic_threshold=float(os.getenv("GRC_WEAK_TOPIC_THRESHOLD", "75")),
        )

    @classmethod
    def from_json(cls, path: str) -> "PipelineConfig":
        """Load configuration from a JSON file; unknown keys are ignored"""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if "search_budgets" in kwargs:
            budgets = dict(DEFAULT_SEARCH_BUDGETS)
            budgets.update({SectionKind(k): int(v) for k, v in kwargs["search_budgets"].items()})
            kwargs["search_budgets"] = budgets
        return cls(**kwargs)


_default_config: PipelineConfig = None


def get_config() -> PipelineConfig:
    """Get the process-wide configuration, loaded from the environment on first use"""
    global _default_config
    if _default_config is None:
        _default_config = PipelineConfig.from_env()
    return _default_config
