"""
Library Worker

Batch driver that pre-generates the session library. Several workers can
run side by side: each takes the topics whose position satisfies
position % total_workers == worker_index, skips topics already stored and
treats a unique-key conflict on insert as "completed by another worker".

Usage:
    python -m grc_trainer.workers.library_worker [worker_id] [total] [index]

SIGINT / SIGTERM stop the current topic's retries, leave it unstored and
stop; a second signal cancels the run immediately.
"""

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional

from grc_trainer.config.settings import PipelineConfig, get_config
from grc_trainer.engines.curriculum_graph import CurriculumGraph, load_curriculum
from grc_trainer.models.curriculum_models import TopicDescriptor
from grc_trainer.services.content_store import ContentAlreadyExistsError, ContentStore, SqlContentStore
from grc_trainer.services.generation_client import GenerationClient
from grc_trainer.services.section_orchestrator import SectionOrchestrator
from grc_trainer.services.session_generator import SessionGenerator


logger = logging.getLogger(__name__)


GENERATED = "generated"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class BatchResult:
    generated: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.generated + self.skipped + self.failed

    def record(self, outcome: str) -> None:
        setattr(self, outcome, getattr(self, outcome) + 1)

    def to_dict(self) -> Dict[str, int]:
        return {
            "generated": self.generated,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
        }


class LibraryWorker:
    """
    Generates and stores the sessions for one shard of the curriculum.

    Features:
    - Deterministic sharding by topic position
    - Idempotent: stored topics are skipped
    - One failing topic never stops the batch
    - Graceful shutdown between topics
    """

    def __init__(
        self,
        graph: CurriculumGraph,
        generator: SessionGenerator,
        store: ContentStore,
        worker_index: int = 0,
        total_workers: int = 1,
        worker_id: str = "solo",
    ):
        if total_workers < 1:
            raise ValueError(f"total_workers must be at least 1, got {total_workers}")
        if not 0 <= worker_index < total_workers:
            raise ValueError(f"worker_index must be in [0, {total_workers}), got {worker_index}")

        self.graph = graph
        self.generator = generator
        self.store = store
        self.worker_index = worker_index
        self.total_workers = total_workers
        self.worker_id = worker_id
        self._shutdown = asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._shutdown.is_set()

    def stop(self) -> None:
        """Request a graceful stop; the current topic stops retrying and is left for the next run"""
        logger.info(f"[WORKER {self.worker_id}] Graceful shutdown requested, winding down current topic")
        self._shutdown.set()

    def assigned_topics(self) -> List[TopicDescriptor]:
        return [
            topic for i, topic in enumerate(self.graph.all_topics())
            if i % self.total_workers == self.worker_index
        ]

    async def process_topic(self, topic: TopicDescriptor, position: int, total: int) -> str:
        label = f"[WORKER {self.worker_id} {position + 1:>{len(str(total))}}/{total}]"

        if await self.store.exists(topic.id):
            logger.info(f"{label} SKIP {topic.title}")
            return SKIPPED

        try:
            outcomes = await self.generator.generate_full_session(topic, cancel=self._shutdown)
            if any(outcome.cancelled for outcome in outcomes.values()):
                logger.warning(f"{label} SKIP {topic.title} (cancelled mid-session, not stored)")
                return SKIPPED
            await self.store.create(self.generator.build_record(topic, outcomes))
        except ContentAlreadyExistsError:
            logger.info(f"{label} SKIP {topic.title} (completed by another worker)")
            return SKIPPED
        except Exception as e:
            logger.error(f"{label} FAIL {topic.title}: {e}")
            return FAILED

        flagged = [kind.value for kind, outcome in outcomes.items() if outcome.needs_review]
        suffix = f", needs review: {', '.join(flagged)}" if flagged else ""
        logger.info(f"{label} OK   {topic.title} ({topic.domain} / {topic.level}{suffix})")
        return GENERATED

    async def run(self) -> BatchResult:
        topics = self.assigned_topics()
        logger.info(
            f"[WORKER {self.worker_id}] Assigned {len(topics)} of {len(self.graph)} topics "
            f"(worker {self.worker_index + 1}/{self.total_workers})"
        )

        result = BatchResult()
        for position, topic in enumerate(topics):
            if self.stopping:
                logger.info(f"[WORKER {self.worker_id}] Shutdown: stopping")
                break
            result.record(await self.process_topic(topic, position, len(topics)))

        logger.info(
            f"[WORKER {self.worker_id}] Summary: generated={result.generated} "
            f"skipped={result.skipped} failed={result.failed} total={result.total}"
        )
        return result


async def run_worker(
    worker_id: str = "solo",
    total_workers: int = 1,
    worker_index: int = 0,
    config: Optional[PipelineConfig] = None,
) -> BatchResult:
    """
    Entry point for running the worker as a standalone process.
    """
    config = config or get_config()
    graph = load_curriculum(config.curriculum_dir or None)
    store = SqlContentStore.from_url(config.database_url)
    await store.init_db()

    orchestrator = SectionOrchestrator(GenerationClient(), config=config)
    worker = LibraryWorker(
        graph,
        SessionGenerator(orchestrator, graph),
        store,
        worker_index=worker_index,
        total_workers=total_workers,
        worker_id=worker_id,
    )

    # Handle shutdown signals (Unix only, skip on Windows)
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        main_task = asyncio.current_task()

        def shutdown_handler():
            if worker.stopping:
                logger.warning(f"[WORKER {worker_id}] Forced shutdown")
                main_task.cancel()
                return
            worker.stop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown_handler)

    try:
        return await worker.run()
    finally:
        await store.close()


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = sys.argv[1:] if argv is None else argv

    worker_id = args[0] if len(args) > 0 else "solo"
    total_workers = int(args[1]) if len(args) > 1 else 1
    worker_index = int(args[2]) if len(args) > 2 else 0

    try:
        result = asyncio.run(run_worker(worker_id, total_workers, worker_index))
    except asyncio.CancelledError:
        return 1
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
