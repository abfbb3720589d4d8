"""
Tests for the Session Generator
"""

from types import SimpleNamespace

import pytest

from grc_trainer.config.settings import PipelineConfig, SectionKind
from grc_trainer.engines.curriculum_graph import CurriculumGraph, TopicNotFoundError
from grc_trainer.models.verification_models import OrchestrationState
from grc_trainer.services.content_store import InMemoryContentStore, StoredSession
from grc_trainer.services.json_parser import ContentParseError
from grc_trainer.services.section_orchestrator import SectionOrchestrator
from grc_trainer.services.session_generator import SessionGenerator, session_sections

from conftest import verdict


@pytest.fixture
def make_generator(make_client, curriculum_graph):
    def factory(generations, verifications, graph=None):
        client, capability = make_client(generations, verifications)
        orchestrator = SectionOrchestrator(client, config=PipelineConfig(max_retries=1))
        return SessionGenerator(orchestrator, graph or curriculum_graph), capability
    return factory


def capstone_graph():
    return CurriculumGraph.from_definitions([{
        "name": "GRC Engineering",
        "slug": "grc-engineering",
        "modules": [{"id": "CAP", "title": "Compliance Pipeline", "tier": "advanced", "module_type": "capstone"}],
    }])


class TestSessionSections:
    """Test section fan-out per module type"""

    def test_daily_sections(self, topic_t1):
        assert session_sections(topic_t1) == [SectionKind.LESSON, SectionKind.SCENARIO, SectionKind.QUIZ]

    def test_capstone_adds_capstone_section(self):
        topic = capstone_graph().get_by_id("CAP")
        assert session_sections(topic)[-1] == SectionKind.CAPSTONE


class TestSessionGenerator:
    """Test session generation and section regeneration"""

    @pytest.mark.asyncio
    async def test_full_session(self, make_generator, topic_t1, lesson_content):
        generator, capability = make_generator([lesson_content], [verdict(97)])

        outcomes = await generator.generate_full_session(topic_t1)

        assert list(outcomes) == [SectionKind.LESSON, SectionKind.SCENARIO, SectionKind.QUIZ]
        assert all(o.state == OrchestrationState.ACCEPTED for o in outcomes.values())
        assert capability.generation_calls == 3
        assert capability.verification_calls == 3

    @pytest.mark.asyncio
    async def test_capstone_session_verifies_capstone(self, make_generator, lesson_content):
        graph = capstone_graph()
        capstone = {**lesson_content, "deliverable_prompt": "Ship a compliance pipeline."}
        generator, capability = make_generator([capstone], [verdict(97)], graph)

        outcomes = await generator.generate_full_session(graph.get_by_id("CAP"))

        assert SectionKind.CAPSTONE in outcomes
        assert capability.verification_calls == 4

    @pytest.mark.asyncio
    async def test_requested_kinds_deduplicated(self, make_generator, topic_t1, lesson_content):
        generator, capability = make_generator([lesson_content], [verdict(97)])

        outcomes = await generator.generate_full_session(
            topic_t1, kinds=[SectionKind.LESSON, "lesson", SectionKind.SCENARIO]
        )

        assert list(outcomes) == [SectionKind.LESSON, SectionKind.SCENARIO]
        assert capability.generation_calls == 2

    @pytest.mark.asyncio
    async def test_parse_failure_propagates(self, make_generator, topic_t1):
        generator, _ = make_generator(["no json here"], [verdict(97)])

        with pytest.raises(ContentParseError):
            await generator.generate_full_session(topic_t1)

    @pytest.mark.asyncio
    async def test_news_byte(self, make_generator, topic_t1, lesson_content):
        news = {**lesson_content, "headline": "CSF 2.0 adoption grows"}
        generator, capability = make_generator([news], [verdict(97)])

        outcome = await generator.generate_news_byte(topic_t1)

        assert outcome.kind == SectionKind.NEWS_BYTE
        assert outcome.state == OrchestrationState.ACCEPTED
        assert capability.generation_prompts[0][1] == 10

    def test_build_record(self, topic_t1):
        outcome = SimpleNamespace(content={"title": "x"})
        record = SessionGenerator.build_record(topic_t1, {SectionKind.LESSON: outcome})

        assert record.topic_id == "T1"
        assert record.level == "foundational"
        assert record.sections == {"lesson": {"title": "x"}}

    @pytest.mark.asyncio
    async def test_regenerate_section(self, make_generator, topic_t1, lesson_content):
        store = InMemoryContentStore()
        await store.create(StoredSession("T1", "Access Control Basics", "Governance", "foundational",
                                         {"lesson": {"title": "old"}, "quiz": {"questions": []}}))
        generator, _ = make_generator([lesson_content], [verdict(96)])

        record = await generator.regenerate_section(store, "T1", SectionKind.LESSON)

        assert record.sections["lesson"]["title"] == "Access Control Basics"
        assert record.sections["lesson"]["confidenceScore"] == 96
        assert record.sections["quiz"] == {"questions": []}

    @pytest.mark.asyncio
    async def test_regenerate_requires_stored_session(self, make_generator):
        generator, capability = make_generator([{}], [verdict(97)])

        with pytest.raises(TopicNotFoundError):
            await generator.regenerate_section(InMemoryContentStore(), "T1", SectionKind.LESSON)
        assert capability.generation_calls == 0

    @pytest.mark.asyncio
    async def test_regenerate_unknown_topic(self, make_generator):
        generator, _ = make_generator([{}], [verdict(97)])

        with pytest.raises(TopicNotFoundError):
            await generator.regenerate_section(InMemoryContentStore(), "NOPE", SectionKind.LESSON)
