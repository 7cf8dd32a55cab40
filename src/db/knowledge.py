"""Persistence of retention state, mistakes and pronunciation attempts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.engine.models import (
    ItemType,
    MistakeLogEntry,
    MistakeRecord,
    MistakeType,
    RetentionState,
)
from src.engine.pronunciation import PronunciationRecord

from . import MistakeLogRecord, PronunciationAttempt, RetentionStateRecord


def _ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive values (SQLite drops the offset) and normalise aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _mistake_to_json(record: MistakeRecord) -> dict[str, Any]:
    return {
        "expected": record.expected,
        "actual": record.actual,
        "timestamp": _ensure_utc(record.timestamp).isoformat(),
        "context": record.context,
    }


def _mistake_from_json(payload: dict[str, Any]) -> MistakeRecord:
    return MistakeRecord(
        expected=payload.get("expected", ""),
        actual=payload.get("actual", ""),
        timestamp=_ensure_utc(datetime.fromisoformat(payload["timestamp"])),
        context=payload.get("context", ""),
    )


def record_to_state(record: RetentionStateRecord) -> RetentionState:
    """Convert an ORM row into the engine's retention state."""
    return RetentionState(
        learner_id=record.learner_id,
        item_id=record.item_id,
        item_type=ItemType(record.item_type),
        knowledge_level=record.knowledge_level,
        ease_factor=record.ease_factor,
        interval_days=record.interval_days,
        repetition_count=record.repetition_count,
        next_review_at=_ensure_utc(record.next_review_at),
        times_seen=record.times_seen,
        times_correct=record.times_correct,
        times_incorrect=record.times_incorrect,
        last_seen=_ensure_utc(record.last_seen),
        last_correct=_ensure_utc(record.last_correct),
        last_incorrect=_ensure_utc(record.last_incorrect),
        pronunciation_score=record.pronunciation_score,
        pronunciation_attempts=record.pronunciation_attempts,
        recent_mistakes=[_mistake_from_json(item) for item in record.recent_mistakes or []],
        recent_contexts=list(record.recent_contexts or []),
        mistake_notes=list(record.mistake_notes or []),
        created_at=_ensure_utc(record.created_at),
        updated_at=_ensure_utc(record.updated_at),
    )


def _copy_state(record: RetentionStateRecord, state: RetentionState) -> None:
    record.knowledge_level = state.knowledge_level
    record.ease_factor = state.ease_factor
    record.interval_days = state.interval_days
    record.repetition_count = state.repetition_count
    record.next_review_at = _ensure_utc(state.next_review_at)
    record.times_seen = state.times_seen
    record.times_correct = state.times_correct
    record.times_incorrect = state.times_incorrect
    record.last_seen = _ensure_utc(state.last_seen)
    record.last_correct = _ensure_utc(state.last_correct)
    record.last_incorrect = _ensure_utc(state.last_incorrect)
    record.pronunciation_score = state.pronunciation_score
    record.pronunciation_attempts = state.pronunciation_attempts
    record.recent_mistakes = [_mistake_to_json(item) for item in state.recent_mistakes]
    record.recent_contexts = list(state.recent_contexts)
    record.mistake_notes = list(state.mistake_notes)
    record.updated_at = _ensure_utc(state.updated_at) or datetime.now(timezone.utc)


async def get_retention_record(
    session: AsyncSession, learner_id: str, item_type: ItemType, item_id: str
) -> Optional[RetentionStateRecord]:
    stmt = select(RetentionStateRecord).where(
        RetentionStateRecord.learner_id == learner_id,
        RetentionStateRecord.item_type == item_type.value,
        RetentionStateRecord.item_id == item_id,
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def upsert_retention_record(
    session: AsyncSession, state: RetentionState
) -> tuple[RetentionStateRecord, bool]:
    """Insert or update the row for ``state``; returns the row and whether it was created."""
    record = await get_retention_record(session, state.learner_id, state.item_type, state.item_id)
    created = record is None
    if record is None:
        record = RetentionStateRecord(
            learner_id=state.learner_id,
            item_type=state.item_type.value,
            item_id=state.item_id,
            created_at=_ensure_utc(state.created_at) or datetime.now(timezone.utc),
        )
        session.add(record)

    _copy_state(record, state)
    await session.flush()
    return record, created


async def list_retention_records(
    session: AsyncSession,
    learner_id: str,
    item_type: Optional[ItemType] = None,
    due_before: Optional[datetime] = None,
) -> list[RetentionStateRecord]:
    stmt = (
        select(RetentionStateRecord)
        .where(RetentionStateRecord.learner_id == learner_id)
        .order_by(RetentionStateRecord.next_review_at, RetentionStateRecord.id)
    )
    if item_type is not None:
        stmt = stmt.where(RetentionStateRecord.item_type == item_type.value)
    if due_before is not None:
        stmt = stmt.where(
            RetentionStateRecord.next_review_at.is_not(None),
            RetentionStateRecord.next_review_at <= _ensure_utc(due_before),
        )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def add_mistake_record(session: AsyncSession, entry: MistakeLogEntry) -> MistakeLogRecord:
    record = MistakeLogRecord(
        learner_id=entry.learner_id,
        session_id=entry.session_id,
        mistake_type=entry.mistake_type.value,
        item=entry.item,
        expected=entry.expected,
        actual=entry.actual,
        context=entry.context,
        explanation=entry.explanation,
        created_at=_ensure_utc(entry.created_at) or datetime.now(timezone.utc),
    )
    session.add(record)
    await session.flush()
    return record


async def list_recent_mistake_records(
    session: AsyncSession, learner_id: str, limit: int
) -> list[MistakeLogRecord]:
    """Latest ``limit`` mistakes, returned oldest first."""
    stmt = (
        select(MistakeLogRecord)
        .where(MistakeLogRecord.learner_id == learner_id)
        .order_by(MistakeLogRecord.created_at.desc(), MistakeLogRecord.id.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(reversed(result.scalars().all()))


async def add_pronunciation_attempt(
    session: AsyncSession, record: PronunciationRecord
) -> PronunciationAttempt:
    attempt = PronunciationAttempt(
        learner_id=record.learner_id,
        word=record.word,
        score=record.score,
        problem_sounds=list(record.problem_sounds),
        recorded_at=_ensure_utc(record.recorded_at) or datetime.now(timezone.utc),
    )
    session.add(attempt)
    await session.flush()
    return attempt


async def list_pronunciation_attempts(
    session: AsyncSession, learner_id: str, limit: Optional[int] = None
) -> list[PronunciationAttempt]:
    """Pronunciation attempts oldest first, optionally only the latest ``limit``."""
    stmt = (
        select(PronunciationAttempt)
        .where(PronunciationAttempt.learner_id == learner_id)
        .order_by(PronunciationAttempt.recorded_at.desc(), PronunciationAttempt.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(reversed(result.scalars().all()))


class SqlKnowledgeStore:
    """KnowledgeStore backed by an async SQLAlchemy session factory.

    Every method opens its own session; writes run in a single transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_retention_state(
        self, learner_id: str, item_type: ItemType, item_id: str
    ) -> Optional[RetentionState]:
        async with self._session_factory() as session:
            record = await get_retention_record(session, learner_id, item_type, item_id)
            return record_to_state(record) if record is not None else None

    async def upsert_retention_state(self, state: RetentionState) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await upsert_retention_record(session, state)

    async def list_retention_states(
        self,
        learner_id: str,
        item_type: Optional[ItemType] = None,
        due_before: Optional[datetime] = None,
    ) -> list[RetentionState]:
        async with self._session_factory() as session:
            records = await list_retention_records(session, learner_id, item_type, due_before)
            return [record_to_state(record) for record in records]

    async def add_mistake(self, entry: MistakeLogEntry) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await add_mistake_record(session, entry)

    async def list_recent_mistakes(self, learner_id: str, limit: int) -> list[MistakeLogEntry]:
        async with self._session_factory() as session:
            records = await list_recent_mistake_records(session, learner_id, limit)
            return [
                MistakeLogEntry(
                    learner_id=record.learner_id,
                    mistake_type=MistakeType(record.mistake_type),
                    item=record.item,
                    expected=record.expected,
                    actual=record.actual,
                    context=record.context,
                    explanation=record.explanation,
                    session_id=record.session_id,
                    created_at=_ensure_utc(record.created_at),
                )
                for record in records
            ]

    async def add_pronunciation_record(self, record: PronunciationRecord) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await add_pronunciation_attempt(session, record)

    async def list_pronunciation_records(
        self, learner_id: str, limit: Optional[int] = None
    ) -> list[PronunciationRecord]:
        async with self._session_factory() as session:
            attempts = await list_pronunciation_attempts(session, learner_id, limit)
            return [
                PronunciationRecord(
                    learner_id=attempt.learner_id,
                    word=attempt.word,
                    score=attempt.score,
                    problem_sounds=list(attempt.problem_sounds or []),
                    recorded_at=_ensure_utc(attempt.recorded_at),
                )
                for attempt in attempts
            ]
