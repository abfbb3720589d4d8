"""
Engines Module

Curriculum graph and next-topic recommendation.
"""

from grc_trainer.engines.curriculum_graph import (
    CurriculumGraph,
    CurriculumLoadError,
    TopicNotFoundError,
    DEFAULT_CURRICULUM_DIR,
    load_curriculum,
)
from grc_trainer.engines.recommendation_engine import (
    RecommendationEngine,
    NoTopicsAvailableError,
    quiz_averages,
    weak_topic_ids,
)

__all__ = [
    "CurriculumGraph",
    "CurriculumLoadError",
    "TopicNotFoundError",
    "DEFAULT_CURRICULUM_DIR",
    "load_curriculum",
    "RecommendationEngine",
    "NoTopicsAvailableError",
    "quiz_averages",
    "weak_topic_ids",
]
