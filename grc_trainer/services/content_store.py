"""
Content Store

Persistence boundary for generated sessions. A topic is stored at most once;
the store enforces it with a unique key and reports conflicts as
ContentAlreadyExistsError so concurrent workers can treat them as "already
generated".
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import DateTime, Integer, JSON, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from grc_trainer.config.settings import SectionKind
from grc_trainer.engines.curriculum_graph import TopicNotFoundError


logger = logging.getLogger(__name__)


class ContentAlreadyExistsError(Exception):
    """Raised when content for a topic has already been stored"""
    def __init__(self, topic_id: str):
        super().__init__(f"Content already exists for topic {topic_id}")
        self.topic_id = topic_id


@dataclass
class StoredSession:
    """A fully generated session for one topic"""
    topic_id: str
    topic: str
    domain: str
    level: str
    sections: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "topic": self.topic,
            "domain": self.domain,
            "level": self.level,
            "sections": self.sections,
            "created_at": self.created_at.isoformat(),
        }


class ContentStore(Protocol):
    async def exists(self, topic_id: str) -> bool:
        ...

    async def get(self, topic_id: str) -> Optional[StoredSession]:
        ...

    async def create(self, record: StoredSession) -> StoredSession:
        ...

    async def replace_section(self, topic_id: str, kind: SectionKind, content: Dict[str, Any]) -> StoredSession:
        ...


# =============================================================================
# In-memory store
# =============================================================================

class InMemoryContentStore:
    """Process-local store, used by tests and single-process runs"""

    def __init__(self):
        self._records: Dict[str, StoredSession] = {}
        self._lock = asyncio.Lock()

    async def exists(self, topic_id: str) -> bool:
        return topic_id in self._records

    async def get(self, topic_id: str) -> Optional[StoredSession]:
        record = self._records.get(topic_id)
        return copy.deepcopy(record) if record else None

    async def create(self, record: StoredSession) -> StoredSession:
        async with self._lock:
            if record.topic_id in self._records:
                raise ContentAlreadyExistsError(record.topic_id)
            self._records[record.topic_id] = copy.deepcopy(record)
        return record

    async def replace_section(self, topic_id: str, kind: SectionKind, content: Dict[str, Any]) -> StoredSession:
        async with self._lock:
            record = self._records.get(topic_id)
            if record is None:
                raise TopicNotFoundError(topic_id)
            record.sections = {**record.sections, SectionKind(kind).value: copy.deepcopy(content)}
            return copy.deepcopy(record)


# =============================================================================
# SQL store
# =============================================================================

class Base(DeclarativeBase):
    pass


class SessionContentRow(Base):
    __tablename__ = "session_content"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    topic: Mapped[str] = mapped_column(String(300), nullable=False)
    domain: Mapped[str] = mapped_column(String(200), nullable=False)
    level: Mapped[str] = mapped_column(String(50), nullable=False)
    sections: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def to_record(self) -> StoredSession:
        return StoredSession(
            topic_id=self.topic_id,
            topic=self.topic,
            domain=self.domain,
            level=self.level,
            sections=dict(self.sections or {}),
            created_at=self.created_at,
        )


class SqlContentStore:
    """Async SQLAlchemy store; one row per topic"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlContentStore":
        return cls(create_async_engine(database_url))

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def _find(self, session: AsyncSession, topic_id: str) -> Optional[SessionContentRow]:
        result = await session.execute(
            select(SessionContentRow).where(SessionContentRow.topic_id == topic_id)
        )
        return result.scalar_one_or_none()

    async def exists(self, topic_id: str) -> bool:
        async with self.async_session() as session:
            return await self._find(session, topic_id) is not None

    async def get(self, topic_id: str) -> Optional[StoredSession]:
        async with self.async_session() as session:
            row = await self._find(session, topic_id)
            return row.to_record() if row else None

    async def create(self, record: StoredSession) -> StoredSession:
        async with self.async_session() as session:
            session.add(SessionContentRow(
                topic_id=record.topic_id,
                topic=record.topic,
                domain=record.domain,
                level=record.level,
                sections=record.sections,
                created_at=record.created_at,
                updated_at=record.created_at,
            ))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ContentAlreadyExistsError(record.topic_id) from e
        logger.info(f"[STORE] Stored session for {record.topic_id}")
        return record

    async def replace_section(self, topic_id: str, kind: SectionKind, content: Dict[str, Any]) -> StoredSession:
        async with self.async_session() as session:
            async with session.begin():
                row = await self._find(session, topic_id)
                if row is None:
                    raise TopicNotFoundError(topic_id)
                # Assign a new dict so the JSON column is flagged dirty
                row.sections = {**(row.sections or {}), SectionKind(kind).value: content}
                row.updated_at = datetime.utcnow()
            record = row.to_record()
        logger.info(f"[STORE] Replaced {SectionKind(kind).value} for {topic_id}")
        return record
