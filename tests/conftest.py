from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from src.db import Base
from src.engine.models import ItemType, MistakeLogEntry, RetentionState
from src.engine.pronunciation import PronunciationRecord


@pytest_asyncio.fixture
async def session_factory() -> async_sessionmaker:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


class MemoryKnowledgeStore:
    """Dictionary-backed store that records every call it receives."""

    def __init__(self) -> None:
        self.states: dict[tuple[str, ItemType, str], RetentionState] = {}
        self.mistakes: list[MistakeLogEntry] = []
        self.pronunciation: list[PronunciationRecord] = []
        self.reads = 0
        self.writes = 0

    async def get_retention_state(
        self, learner_id: str, item_type: ItemType, item_id: str
    ) -> Optional[RetentionState]:
        self.reads += 1
        state = self.states.get((learner_id, item_type, item_id))
        return replace(state) if state is not None else None

    async def upsert_retention_state(self, state: RetentionState) -> None:
        self.writes += 1
        self.states[(state.learner_id, state.item_type, state.item_id)] = replace(state)

    async def list_retention_states(
        self,
        learner_id: str,
        item_type: Optional[ItemType] = None,
        due_before: Optional[datetime] = None,
    ) -> list[RetentionState]:
        self.reads += 1
        result = []
        for (learner, kind, _), state in self.states.items():
            if learner != learner_id:
                continue
            if item_type is not None and kind is not item_type:
                continue
            if due_before is not None and (
                state.next_review_at is None or state.next_review_at > due_before
            ):
                continue
            result.append(replace(state))
        return result

    async def add_mistake(self, entry: MistakeLogEntry) -> None:
        self.writes += 1
        self.mistakes.append(entry)

    async def list_recent_mistakes(self, learner_id: str, limit: int) -> list[MistakeLogEntry]:
        self.reads += 1
        own = [entry for entry in self.mistakes if entry.learner_id == learner_id]
        return own[-limit:] if limit > 0 else []

    async def add_pronunciation_record(self, record: PronunciationRecord) -> None:
        self.writes += 1
        self.pronunciation.append(record)

    async def list_pronunciation_records(
        self, learner_id: str, limit: Optional[int] = None
    ) -> list[PronunciationRecord]:
        self.reads += 1
        own = [record for record in self.pronunciation if record.learner_id == learner_id]
        return own[-limit:] if limit is not None else own


@pytest.fixture
def memory_store() -> MemoryKnowledgeStore:
    return MemoryKnowledgeStore()
