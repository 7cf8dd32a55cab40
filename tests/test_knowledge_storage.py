from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from src.db import RetentionStateRecord
from src.db.knowledge import SqlKnowledgeStore, upsert_retention_record
from src.engine.knowledge import apply_practice
from src.engine.models import (
    ItemType,
    MistakeLogEntry,
    MistakeType,
    PracticeEvent,
    RetentionState,
)
from src.engine.pronunciation import PronunciationRecord


NOW = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


def _event(item_id: str, quality: int = 4, **overrides) -> PracticeEvent:
    return PracticeEvent(
        learner_id="learner-7",
        item_id=item_id,
        item_type=overrides.pop("item_type", ItemType.WORD),
        quality=quality,
        suggested_level=overrides.pop("suggested_level", 1),
        **overrides,
    )


@pytest.mark.asyncio
async def test_upsert_retention_record_creates_then_updates(session_factory) -> None:
    state = apply_practice(None, _event("θάλασσα"), now=NOW)

    async with session_factory() as session:
        async with session.begin():
            _, created_first = await upsert_retention_record(session, state)
        async with session.begin():
            record, created_second = await upsert_retention_record(
                session, apply_practice(state, _event("θάλασσα", 5), now=NOW)
            )
        count = await session.scalar(select(func.count()).select_from(RetentionStateRecord))

    assert created_first is True
    assert created_second is False
    assert count == 1
    assert record.times_seen == 2


@pytest.mark.asyncio
async def test_store_round_trips_retention_state(session_factory) -> None:
    store = SqlKnowledgeStore(session_factory)
    state = apply_practice(
        None,
        _event(
            "θάλασσα",
            1,
            context="Πάμε στη θάλασσα",
            mistake_expected="θάλασσα",
            mistake_actual="θαλασα",
            pronunciation_score=0.6,
        ),
        now=NOW,
    )

    await store.upsert_retention_state(state)
    loaded = await store.get_retention_state("learner-7", ItemType.WORD, "θάλασσα")

    assert loaded is not None
    assert loaded.item_type is ItemType.WORD
    assert loaded.times_incorrect == 1
    assert loaded.interval_days == 0.5
    assert loaded.next_review_at == NOW + timedelta(hours=12)
    assert loaded.next_review_at.tzinfo is not None
    assert loaded.pronunciation_attempts == 1
    assert loaded.pronunciation_score == pytest.approx(0.6)
    assert loaded.recent_contexts == ["Πάμε στη θάλασσα"]
    assert len(loaded.recent_mistakes) == 1
    assert loaded.recent_mistakes[0].actual == "θαλασα"
    assert loaded.recent_mistakes[0].timestamp == NOW


@pytest.mark.asyncio
async def test_missing_state_returns_none(session_factory) -> None:
    store = SqlKnowledgeStore(session_factory)

    assert await store.get_retention_state("learner-7", ItemType.RULE, "aorist") is None


@pytest.mark.asyncio
async def test_list_retention_states_filters_type_and_due(session_factory) -> None:
    store = SqlKnowledgeStore(session_factory)
    due_word = RetentionState(
        learner_id="learner-7",
        item_id="σπίτι",
        item_type=ItemType.WORD,
        knowledge_level=3,
        next_review_at=NOW - timedelta(days=2),
    )
    future_word = RetentionState(
        learner_id="learner-7",
        item_id="δρόμος",
        item_type=ItemType.WORD,
        knowledge_level=3,
        next_review_at=NOW + timedelta(days=2),
    )
    due_rule = RetentionState(
        learner_id="learner-7",
        item_id="aorist",
        item_type=ItemType.RULE,
        next_review_at=NOW - timedelta(days=1),
    )
    other_learner = RetentionState(
        learner_id="learner-8",
        item_id="σπίτι",
        item_type=ItemType.WORD,
        next_review_at=NOW - timedelta(days=1),
    )
    for state in (due_word, future_word, due_rule, other_learner):
        await store.upsert_retention_state(state)

    all_states = await store.list_retention_states("learner-7")
    words = await store.list_retention_states("learner-7", ItemType.WORD)
    due_words = await store.list_retention_states("learner-7", ItemType.WORD, due_before=NOW)

    assert {state.item_id for state in all_states} == {"σπίτι", "δρόμος", "aorist"}
    assert {state.item_id for state in words} == {"σπίτι", "δρόμος"}
    assert [state.item_id for state in due_words] == ["σπίτι"]


@pytest.mark.asyncio
async def test_recent_mistakes_are_latest_window_oldest_first(session_factory) -> None:
    store = SqlKnowledgeStore(session_factory)
    for index in range(5):
        await store.add_mistake(
            MistakeLogEntry(
                learner_id="learner-7",
                mistake_type=MistakeType.GRAMMAR,
                item="aorist",
                expected="έγραψα",
                actual=f"attempt-{index}",
                created_at=NOW + timedelta(minutes=index),
            )
        )

    recent = await store.list_recent_mistakes("learner-7", 3)

    assert [entry.actual for entry in recent] == ["attempt-2", "attempt-3", "attempt-4"]
    assert recent[0].mistake_type is MistakeType.GRAMMAR
    assert recent[0].created_at == NOW + timedelta(minutes=2)


@pytest.mark.asyncio
async def test_pronunciation_records_round_trip(session_factory) -> None:
    store = SqlKnowledgeStore(session_factory)
    for index, score in enumerate([0.3, 0.5, 0.9]):
        await store.add_pronunciation_record(
            PronunciationRecord(
                learner_id="learner-7",
                word="γάλα",
                score=score,
                problem_sounds=["γ"],
                recorded_at=NOW + timedelta(minutes=index),
            )
        )

    records = await store.list_pronunciation_records("learner-7")
    latest = await store.list_pronunciation_records("learner-7", limit=2)

    assert [record.score for record in records] == pytest.approx([0.3, 0.5, 0.9])
    assert records[0].problem_sounds == ["γ"]
    assert [record.score for record in latest] == pytest.approx([0.5, 0.9])
