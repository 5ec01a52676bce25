# =============================================================================
# Entity storage: one Collection per entity type behind a Repository.
#   MemoryRepository  ordered in-process lists
#   SqlRepository     SQLAlchemy 2.x async, JSON documents in one table
# Both keep insertion order; update replaces in place.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import Integer, String, Text, UniqueConstraint, asc, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from fitness_api.config import Settings
from fitness_api.schemas import Entity, Goal, PersonalRecord, Workout, WorkoutPlan, utcnow

log = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


def merge_changes(existing: E, changes: Mapping[str, Any]) -> E:
    """Shallow-merge `changes` over `existing`, re-validate and refresh updated_at."""
    now = max(utcnow(), existing.updated_at)
    data = existing.model_dump()
    data.update(changes)
    data["id"] = existing.id
    data["created_at"] = existing.created_at
    data["updated_at"] = now
    return type(existing).model_validate(data)


class Collection(Generic[E]):
    """Ordered store of one entity type. Ids are unique by construction."""

    def __init__(self, model: Type[E]):
        self.model = model

    async def all(self) -> List[E]:
        raise NotImplementedError

    async def get(self, entity_id: Any) -> Optional[E]:
        raise NotImplementedError

    async def add(self, entity: E) -> E:
        raise NotImplementedError

    async def update(self, entity_id: Any, changes: Mapping[str, Any]) -> Optional[E]:
        raise NotImplementedError

    async def remove(self, entity_id: Any) -> Optional[E]:
        raise NotImplementedError

    async def count(self) -> int:
        return len(await self.all())

    async def create(self, payload: BaseModel | Mapping[str, Any]) -> E:
        """Build an entity from a create payload, assigning id and timestamps."""
        data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)
        now = utcnow()
        data.update(id=uuid4(), created_at=now, updated_at=now)
        return await self.add(self.model.model_validate(data))


def _key(entity_id: Any) -> str:
    return str(entity_id).strip().lower()


# -----------------------------------------------------------------------------
# In-memory
# -----------------------------------------------------------------------------
class MemoryCollection(Collection[E]):
    def __init__(self, model: Type[E]):
        super().__init__(model)
        self._items: List[E] = []

    def _index(self, entity_id: Any) -> int:
        key = _key(entity_id)
        for i, item in enumerate(self._items):
            if str(item.id) == key:
                return i
        return -1

    async def all(self) -> List[E]:
        return list(self._items)

    async def get(self, entity_id: Any) -> Optional[E]:
        i = self._index(entity_id)
        return self._items[i] if i >= 0 else None

    async def add(self, entity: E) -> E:
        self._items.append(entity)
        return entity

    async def update(self, entity_id: Any, changes: Mapping[str, Any]) -> Optional[E]:
        i = self._index(entity_id)
        if i < 0:
            return None
        self._items[i] = merge_changes(self._items[i], changes)
        return self._items[i]

    async def remove(self, entity_id: Any) -> Optional[E]:
        i = self._index(entity_id)
        if i < 0:
            return None
        return self._items.pop(i)

    async def count(self) -> int:
        return len(self._items)


# -----------------------------------------------------------------------------
# SQLAlchemy
# -----------------------------------------------------------------------------
class Base(DeclarativeBase):
    pass


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("kind", "entity_id", name="uq_documents_kind_entity"),)

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)   # entity JSON


class SqlCollection(Collection[E]):
    def __init__(self, model: Type[E], kind: str, session_factory: async_sessionmaker[AsyncSession]):
        super().__init__(model)
        self.kind = kind
        self._session = session_factory

    def _load(self, doc: Document) -> E:
        return self.model.model_validate_json(doc.payload)

    async def _find(self, s: AsyncSession, entity_id: Any) -> Optional[Document]:
        result = await s.execute(
            select(Document).where(Document.kind == self.kind, Document.entity_id == _key(entity_id))
        )
        return result.scalar()

    async def all(self) -> List[E]:
        async with self._session() as s:
            result = await s.execute(
                select(Document).where(Document.kind == self.kind).order_by(asc(Document.seq))
            )
            docs = result.scalars().all()
        return [self._load(d) for d in docs]

    async def get(self, entity_id: Any) -> Optional[E]:
        async with self._session() as s:
            doc = await self._find(s, entity_id)
        return self._load(doc) if doc else None

    async def add(self, entity: E) -> E:
        async with self._session() as s:
            s.add(Document(kind=self.kind, entity_id=_key(entity.id), payload=entity.model_dump_json()))
            await s.commit()
        log.debug(f"{self.kind}: stored {entity.id}")
        return entity

    async def update(self, entity_id: Any, changes: Mapping[str, Any]) -> Optional[E]:
        async with self._session() as s:
            doc = await self._find(s, entity_id)
            if not doc:
                return None
            merged = merge_changes(self._load(doc), changes)
            doc.payload = merged.model_dump_json()
            await s.commit()
        return merged

    async def remove(self, entity_id: Any) -> Optional[E]:
        async with self._session() as s:
            doc = await self._find(s, entity_id)
            if not doc:
                return None
            entity = self._load(doc)
            await s.delete(doc)
            await s.commit()
        log.debug(f"{self.kind}: removed {entity.id}")
        return entity

    async def count(self) -> int:
        async with self._session() as s:
            result = await s.execute(
                select(func.count()).select_from(Document).where(Document.kind == self.kind)
            )
            return int(result.scalar_one())


# -----------------------------------------------------------------------------
# Repositories
# -----------------------------------------------------------------------------
class Repository:
    """The storage interface handed to request handlers."""

    backend = "abstract"
    plans: Collection[WorkoutPlan]
    workouts: Collection[Workout]
    goals: Collection[Goal]
    records: Collection[PersonalRecord]

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def ping(self) -> bool:
        return True

    async def counts(self) -> Dict[str, int]:
        return {
            "workoutPlans": await self.plans.count(),
            "workouts": await self.workouts.count(),
            "goals": await self.goals.count(),
            "records": await self.records.count(),
        }


class MemoryRepository(Repository):
    backend = "in-memory"

    def __init__(self):
        self.plans = MemoryCollection(WorkoutPlan)
        self.workouts = MemoryCollection(Workout)
        self.goals = MemoryCollection(Goal)
        self.records = MemoryCollection(PersonalRecord)


class SqlRepository(Repository):
    def __init__(self, url: str, backend: str = "sql"):
        self.backend = backend
        if url.startswith("postgresql"):
            self.engine = create_async_engine(
                url, echo=False, pool_pre_ping=True,
                pool_size=20, max_overflow=30, pool_timeout=30,
            )
        else:
            self.engine = create_async_engine(url, echo=False)
        session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        self.plans = SqlCollection(WorkoutPlan, "workout_plan", session_factory)
        self.workouts = SqlCollection(Workout, "workout", session_factory)
        self.goals = SqlCollection(Goal, "goal", session_factory)
        self.records = SqlCollection(PersonalRecord, "personal_record", session_factory)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(select(1))
            return True
        except Exception as e:
            log.error(f"Storage ping failed: {e}")
            return False


def build_repository(settings: Settings) -> Repository:
    if settings.store == "sql":
        return SqlRepository(settings.resolve_database_url(), backend=settings.describe_backend())
    if settings.store != "memory":
        raise ValueError(f"FITNESS_STORE must be 'memory' or 'sql', got {settings.store!r}")
    return MemoryRepository()

