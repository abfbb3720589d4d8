"""
GRC Trainer Service

Thin FastAPI boundary over the curriculum graph, the recommendation engine
and the session generation pipeline.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
import uvicorn

from grc_trainer import __version__
from grc_trainer.config.settings import PipelineConfig, SectionKind, get_config
from grc_trainer.engines.curriculum_graph import CurriculumGraph, TopicNotFoundError, load_curriculum
from grc_trainer.engines.recommendation_engine import NoTopicsAvailableError, RecommendationEngine
from grc_trainer.models.curriculum_models import CompletionRecord
from grc_trainer.services.content_store import ContentAlreadyExistsError, ContentStore, SqlContentStore
from grc_trainer.services.generation_client import GenerationClient, GenerationError
from grc_trainer.services.json_parser import ContentParseError
from grc_trainer.services.section_orchestrator import SectionOrchestrator
from grc_trainer.services.session_generator import SessionGenerator


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# PYDANTIC MODELS FOR API
# =============================================================================

class CompletionRecordModel(BaseModel):
    """A completed session with its quiz result"""
    topic_id: str
    date: str = ""
    quiz_score: int = Field(default=0, ge=0)
    quiz_total: int = Field(default=0, ge=0)


class RecommendationRequest(BaseModel):
    """Learner state used to pick the next topic"""
    completed_ids: List[str] = Field(default_factory=list)
    last_domain: Optional[str] = None
    path_id: Optional[str] = None
    records: List[CompletionRecordModel] = Field(default_factory=list)


class GenerateSessionRequest(BaseModel):
    """Generate a session for a topic, or for the recommended topic when none is given"""
    topic_id: Optional[str] = None
    sections: Optional[List[SectionKind]] = Field(
        default=None, description="Sections to generate; defaults to the topic's daily session"
    )
    completed_ids: List[str] = Field(default_factory=list)
    last_domain: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    topics: int
    timestamp: str


# =============================================================================
# APP FACTORY
# =============================================================================

def create_app(
    graph: Optional[CurriculumGraph] = None,
    generator: Optional[SessionGenerator] = None,
    store: Optional[ContentStore] = None,
    config: Optional[PipelineConfig] = None,
) -> FastAPI:
    """
    Build the API around injected collaborators.

    The generator is created on first use when not injected, so the app
    can serve curriculum routes without provider credentials.
    """
    config = config or get_config()
    graph = graph if graph is not None else load_curriculum(config.curriculum_dir or None)
    recommender = RecommendationEngine(graph, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[STARTUP] GRC Trainer ready with {len(graph)} topics")
        if isinstance(store, SqlContentStore):
            await store.init_db()
        yield
        if isinstance(store, SqlContentStore):
            await store.close()
        logger.info("[SHUTDOWN] GRC Trainer shutting down")

    app = FastAPI(
        title="GRC Trainer",
        description="Verified GRC training content generation and topic recommendation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.generator = generator

    def get_generator() -> SessionGenerator:
        if app.state.generator is None:
            orchestrator = SectionOrchestrator(GenerationClient(), config=config)
            app.state.generator = SessionGenerator(orchestrator, graph)
        return app.state.generator

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(
            status="healthy",
            service="grc-trainer",
            version=__version__,
            topics=len(graph),
            timestamp=datetime.utcnow().isoformat(),
        )

    @app.get("/api/v1/curriculum/topics")
    async def list_topics(domain: Optional[str] = None):
        topics = graph.topics_in_domain(domain) if domain else graph.all_topics()
        return {"topics": [t.to_dict() for t in topics], "count": len(topics)}

    @app.get("/api/v1/curriculum/topics/{topic_id}")
    async def get_topic(topic_id: str, completed: List[str] = Query(default=[])):
        try:
            topic = graph.require(topic_id)
        except TopicNotFoundError:
            raise HTTPException(status_code=404, detail=f"Topic not found: {topic_id}")

        return {
            **topic.to_dict(),
            "missing_prerequisites": graph.missing_prerequisites(topic_id, completed),
            "prerequisite_closure": graph.prerequisite_closure(topic_id),
        }

    @app.get("/api/v1/curriculum/domains")
    async def list_domains(completed: List[str] = Query(default=[])):
        return {"domains": graph.domain_progress(completed)}

    @app.get("/api/v1/curriculum/paths")
    async def list_paths():
        return {"paths": [p.to_dict() for p in graph.paths()]}

    @app.post("/api/v1/recommendations/next")
    async def next_topic(request: RecommendationRequest):
        records = [CompletionRecord(**r.model_dump()) for r in request.records]
        try:
            recommendation = recommender.recommend(
                request.completed_ids,
                last_domain=request.last_domain,
                path_id=request.path_id,
                records=records,
            )
        except NoTopicsAvailableError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return recommendation.to_dict()

    @app.post("/api/v1/sessions/generate")
    async def generate_session(request: GenerateSessionRequest) -> Dict[str, Any]:
        try:
            if request.topic_id:
                topic = graph.require(request.topic_id)
            else:
                topic = recommender.get_next_topic(request.completed_ids, request.last_domain)
        except TopicNotFoundError:
            raise HTTPException(status_code=404, detail=f"Topic not found: {request.topic_id}")
        except NoTopicsAvailableError as e:
            raise HTTPException(status_code=503, detail=str(e))

        session_generator = get_generator()

        try:
            by_kind = await session_generator.generate_full_session(topic, kinds=request.sections)
        except (ContentParseError, GenerationError) as e:
            logger.error(f"[API] Generation failed for {topic.id}: {e}")
            raise HTTPException(status_code=502, detail=f"Content generation failed: {e}")

        stored = False
        already_generated = False
        if store is not None:
            try:
                await store.create(SessionGenerator.build_record(topic, by_kind))
                stored = True
            except ContentAlreadyExistsError:
                already_generated = True

        return {
            "topic": topic.to_dict(),
            "sections": {k.value: o.content for k, o in by_kind.items()},
            "outcomes": {k.value: o.to_dict() for k, o in by_kind.items()},
            "stored": stored,
            "already_generated": already_generated,
        }

    return app


def _default_store() -> Optional[ContentStore]:
    url = os.getenv("GRC_DATABASE_URL")
    return SqlContentStore.from_url(url) if url else None


app = create_app(store=_default_store())


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
