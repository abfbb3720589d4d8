"""
Session Generator

Fans a topic out into its sections (lesson, scenario and quiz, plus the
capstone for capstone modules), runs each through the generate-and-verify
loop concurrently and assembles the stored session.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from grc_trainer.config.settings import SectionKind
from grc_trainer.engines.curriculum_graph import CurriculumGraph, TopicNotFoundError
from grc_trainer.models.curriculum_models import ModuleType, TopicDescriptor
from grc_trainer.models.verification_models import SectionOutcome
from grc_trainer.services.content_store import ContentStore, StoredSession
from grc_trainer.services.section_orchestrator import SectionOrchestrator


logger = logging.getLogger(__name__)


DAILY_SECTIONS = (SectionKind.LESSON, SectionKind.SCENARIO, SectionKind.QUIZ)


def session_sections(topic: TopicDescriptor) -> List[SectionKind]:
    """Sections generated for a topic's daily session"""
    sections = list(DAILY_SECTIONS)
    if topic.module_type == ModuleType.CAPSTONE.value:
        sections.append(SectionKind.CAPSTONE)
    return sections


class SessionGenerator:
    """Generates whole sessions or single sections for curriculum topics"""

    def __init__(self, orchestrator: SectionOrchestrator, graph: Optional[CurriculumGraph] = None):
        self.orchestrator = orchestrator
        self.graph = graph

    async def generate_section(
        self,
        topic: TopicDescriptor,
        kind: SectionKind,
        cancel: Optional[asyncio.Event] = None,
    ) -> SectionOutcome:
        return await self.orchestrator.generate_section(topic, kind, cancel=cancel)

    async def generate_full_session(
        self,
        topic: TopicDescriptor,
        cancel: Optional[asyncio.Event] = None,
        kinds: Optional[Sequence[SectionKind]] = None,
    ) -> Dict[SectionKind, SectionOutcome]:
        """
        Generate every section of a topic's session concurrently.

        kinds narrows the session to a subset (duplicates are generated once).
        A failure in any section (e.g. a parse error) propagates once all
        sibling tasks have been cancelled.
        """
        if kinds:
            kinds = list(dict.fromkeys(SectionKind(k) for k in kinds))
        else:
            kinds = session_sections(topic)
        logger.info(f"[SESSION] Generating {', '.join(k.value for k in kinds)} for {topic.id}")

        tasks = [asyncio.ensure_future(self.generate_section(topic, kind, cancel)) for kind in kinds]
        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        return dict(zip(kinds, outcomes))

    async def generate_news_byte(self, topic: TopicDescriptor) -> SectionOutcome:
        return await self.generate_section(topic, SectionKind.NEWS_BYTE)

    async def regenerate_section(
        self,
        store: ContentStore,
        topic_id: str,
        kind: SectionKind,
    ) -> StoredSession:
        """
        Regenerate one section of a stored session and replace it whole.

        Raises:
            TopicNotFoundError: The topic is unknown to the curriculum or has no stored session
        """
        if self.graph is None:
            raise ValueError("regenerate_section requires a curriculum graph")
        topic = self.graph.require(topic_id)
        if not await store.exists(topic_id):
            raise TopicNotFoundError(topic_id)

        outcome = await self.generate_section(topic, kind)
        logger.info(
            f"[SESSION] Regenerated {SectionKind(kind).value} for {topic_id}: "
            f"{outcome.state.value} (score={outcome.verification.confidence_score})"
        )
        return await store.replace_section(topic_id, kind, outcome.content)

    @staticmethod
    def build_record(topic: TopicDescriptor, outcomes: Dict[SectionKind, SectionOutcome]) -> StoredSession:
        return StoredSession(
            topic_id=topic.id,
            topic=topic.title,
            domain=topic.domain,
            level=topic.level,
            sections={kind.value: outcome.content for kind, outcome in outcomes.items()},
        )
