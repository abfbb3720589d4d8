"""
Recommendation Engine

Picks the learner's next topic from the curriculum graph.

Selection (deterministic, no randomness):
1. Remaining = all topics minus completed; when nothing remains, all topics
   become the review pool
2. Restrict to the selected learning path when that leaves any candidates
3. Prefer topics whose prerequisites are all completed
4. Sort by tier, module type, title
5. Move weak topics ahead of the other topics of the same tier
6. Prefer a domain different from the last one studied

Also provides the spaced-repetition review picker and review scheduling.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set

from grc_trainer.config.settings import PipelineConfig, get_config
from grc_trainer.engines.curriculum_graph import CurriculumGraph
from grc_trainer.models.curriculum_models import (
    CompletionRecord,
    LearningPath,
    Recommendation,
    TopicDescriptor,
    TopicProgress,
    tier_rank,
)


logger = logging.getLogger(__name__)


class NoTopicsAvailableError(Exception):
    """Raised when the curriculum holds no topics at all"""
    pass


def quiz_averages(records: Iterable[CompletionRecord]) -> Dict[str, float]:
    """Average quiz score per topic, in percent"""
    scores: Dict[str, List[float]] = defaultdict(list)
    for record in records:
        if record.quiz_total > 0:
            scores[record.topic_id].append(record.score_percent)
    return {topic_id: sum(values) / len(values) for topic_id, values in scores.items()}


def weak_topic_ids(averages: Dict[str, float], threshold: float = 75.0) -> Set[str]:
    """Topics whose quiz average is below the threshold"""
    return {topic_id for topic_id, average in averages.items() if average < threshold}


class RecommendationEngine:
    """Next-topic selection over an injected curriculum graph"""

    def __init__(self, graph: CurriculumGraph, config: Optional[PipelineConfig] = None):
        self.graph = graph
        self.config = config or get_config()

    def get_next_topic(
        self,
        completed_ids: Iterable[str],
        last_domain: Optional[str],
        path_module_ids: Optional[Sequence[str]] = None,
        topic_quiz_averages: Optional[Dict[str, float]] = None,
        weak_topic_ids: Optional[Iterable[str]] = None,
    ) -> TopicDescriptor:
        """
        Pick the next topic to study.

        Args:
            completed_ids: Topics already completed
            last_domain: Domain of the most recent session (case-insensitive)
            path_module_ids: Modules of the selected learning path, if any
            topic_quiz_averages: Quiz average (percent) per topic
            weak_topic_ids: Topics explicitly marked weak

        Returns:
            The recommended topic

        Raises:
            NoTopicsAvailableError: The curriculum is empty
        """
        all_topics = self.graph.all_topics()
        if not all_topics:
            raise NoTopicsAvailableError("No topics available in curriculum")

        completed = set(completed_ids)
        averages = topic_quiz_averages or {}
        weak = set(weak_topic_ids or ())

        remaining = [t for t in all_topics if t.id not in completed]
        if not remaining:
            remaining = all_topics

        if path_module_ids:
            path_members = set(path_module_ids)
            in_path = [t for t in remaining if t.id in path_members]
            if in_path:
                remaining = in_path

        eligible = [t for t in remaining if all(p in completed for p in t.prerequisites)]
        if not eligible:
            eligible = remaining

        candidates = sorted(eligible, key=lambda t: t.sort_key + (t.id,))

        def is_weak(topic: TopicDescriptor) -> bool:
            if topic.id in weak:
                return True
            average = averages.get(topic.id)
            return average is not None and average < self.config.weak_topic_threshold

        # Stable: keeps the tier/type/title order inside each group
        candidates.sort(key=lambda t: (tier_rank(t.tier), 0 if is_weak(t) else 1))

        if last_domain:
            last = last_domain.lower()
            for topic in candidates:
                if topic.domain.lower() != last:
                    return topic

        return candidates[0]

    def recommend(
        self,
        completed_ids: Iterable[str],
        last_domain: Optional[str] = None,
        path_id: Optional[str] = None,
        records: Sequence[CompletionRecord] = (),
    ) -> Recommendation:
        """Next topic plus the reason it was picked, derived from completion history"""
        completed = list(completed_ids)
        path = self.graph.get_path(path_id) if path_id else None
        if path_id and path is None:
            logger.warning(f"[RECOMMEND] Unknown learning path {path_id}, ignoring")

        averages = quiz_averages(records)
        topic = self.get_next_topic(
            completed,
            last_domain,
            path_module_ids=path.module_ids if path else None,
            topic_quiz_averages=averages,
            weak_topic_ids=weak_topic_ids(averages, self.config.weak_topic_threshold),
        )

        return Recommendation(
            topic=topic,
            reason=self.recommendation_reason(topic, completed, path, averages),
            path_id=path.id if path else None,
            is_review=topic.id in set(completed),
            missing_prerequisites=self.graph.missing_prerequisites(topic.id, completed),
        )

    def recommendation_reason(
        self,
        topic: TopicDescriptor,
        completed_ids: Iterable[str],
        path: Optional[LearningPath] = None,
        averages: Optional[Dict[str, float]] = None,
    ) -> str:
        """Human-readable explanation for a recommendation"""
        completed = set(completed_ids)
        average = (averages or {}).get(topic.id)

        if topic.id in completed:
            if average is not None:
                return f"Review: you scored {average:.0f}% on this topic last time"
            return "Review: you have completed every available topic"
        if average is not None and average < self.config.weak_topic_threshold:
            return f"Reinforcement: your quiz average on this topic is {average:.0f}%"
        if path is not None and topic.id in path.module_ids:
            position = path.module_ids.index(topic.id) + 1
            return f"Module {position} of {len(path.module_ids)} in your {path.title} path"

        missing = [p for p in topic.prerequisites if p not in completed]
        if missing:
            return f"Next {topic.tier} topic in {topic.domain} (prerequisites still open: {', '.join(missing)})"
        if topic.prerequisites:
            return f"Builds on {len(topic.prerequisites)} completed prerequisite(s) in {topic.domain}"
        return f"Next {topic.tier} {topic.module_type} topic in {topic.domain}"

    # =========================================================================
    # Spaced repetition
    # =========================================================================

    def get_review_topic(
        self,
        progress: Iterable[TopicProgress],
        now: Optional[datetime] = None,
    ) -> Optional[TopicDescriptor]:
        """
        Oldest poorly scored topic due for review, or None.

        A topic is due when it was last studied at least review_min_age_days
        ago and its quiz score is below review_score_threshold. Ties on age
        go to the lower score.
        """
        now = now or datetime.now()
        min_age = timedelta(days=self.config.review_min_age_days)

        candidates = [
            p for p in progress
            if now - p.last_studied >= min_age and p.quiz_score < self.config.review_score_threshold
        ]
        candidates.sort(key=lambda p: (p.last_studied, p.quiz_score))

        for candidate in candidates:
            topic = self.graph.get_by_id(candidate.topic_id)
            if topic is not None:
                return topic
        return None

    def next_review_at(self, quiz_score: int, quiz_total: int, now: Optional[datetime] = None) -> datetime:
        """When a topic should come back, given the latest quiz result"""
        now = now or datetime.now()
        percent = quiz_score / quiz_total * 100 if quiz_total > 0 else 0.0
        if percent >= self.config.strong_score_percent:
            return now + timedelta(days=self.config.review_interval_strong_days)
        return now + timedelta(days=self.config.review_interval_weak_days)
