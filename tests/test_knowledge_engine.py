from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.engine.config import EngineConfig, RetentionConfig
from src.engine.knowledge import KnowledgeUpdateEngine, apply_practice
from src.engine.models import (
    ItemType,
    MistakeLogEntry,
    MistakeType,
    PracticeEvent,
    RetentionState,
)


NOW = datetime(2026, 5, 4, 9, 30, tzinfo=timezone.utc)


def _word_event(quality: int, **overrides) -> PracticeEvent:
    data = dict(
        learner_id="learner-1",
        item_id="σπίτι",
        item_type=ItemType.WORD,
        quality=quality,
        suggested_level=2,
    )
    data.update(overrides)
    return PracticeEvent(**data)


def test_first_practice_creates_state_from_defaults() -> None:
    state = apply_practice(None, _word_event(4, context="Το σπίτι μου"), now=NOW)

    assert state.learner_id == "learner-1"
    assert state.item_type is ItemType.WORD
    assert state.knowledge_level == 2
    assert state.ease_factor == pytest.approx(2.5)
    assert state.interval_days == 1.0
    assert state.repetition_count == 1
    assert state.next_review_at == NOW + timedelta(days=1)
    assert state.times_seen == 1
    assert state.times_correct == 1
    assert state.times_incorrect == 0
    assert state.last_correct == NOW
    assert state.last_incorrect is None
    assert state.recent_contexts == ["Το σπίτι μου"]
    assert state.created_at == NOW


def test_create_path_clamps_suggested_level() -> None:
    state = apply_practice(None, _word_event(5, suggested_level=12), now=NOW)

    assert state.knowledge_level == 7


def test_failed_practice_updates_counters_and_mistakes() -> None:
    existing = apply_practice(None, _word_event(5), now=NOW)
    later = NOW + timedelta(days=1)

    state = apply_practice(
        existing,
        _word_event(1, mistake_expected="σπίτι", mistake_actual="σπιτι", context="ctx"),
        now=later,
    )

    assert state.times_seen == 2
    assert state.times_correct == 1
    assert state.times_incorrect == 1
    assert state.last_incorrect == later
    assert state.last_correct == NOW
    assert state.repetition_count == 0
    assert state.interval_days == 0.5
    assert state.knowledge_level == existing.knowledge_level - 1
    assert [(m.expected, m.actual, m.context) for m in state.recent_mistakes] == [
        ("σπίτι", "σπιτι", "ctx")
    ]
    assert existing.times_seen == 1  # input state is left untouched


def test_pronunciation_running_average() -> None:
    state = apply_practice(None, _word_event(4, pronunciation_score=0.4), now=NOW)
    state = apply_practice(state, _word_event(4, pronunciation_score=0.8), now=NOW)
    state = apply_practice(state, _word_event(4, pronunciation_score=1.7), now=NOW)

    assert state.pronunciation_attempts == 3
    assert state.pronunciation_score == pytest.approx((0.4 + 0.8 + 1.0) / 3)


def test_contexts_are_unique_and_bounded() -> None:
    config = EngineConfig(retention=RetentionConfig(max_contexts=3))
    state = None
    for context in ["a", "b", "a", "c", "d"]:
        state = apply_practice(state, _word_event(4, context=context), now=NOW, config=config)

    assert state.recent_contexts == ["b", "c", "d"]


def test_item_mistakes_keep_latest_entries() -> None:
    state = None
    for index in range(25):
        state = apply_practice(
            state,
            _word_event(2, mistake_expected="σπίτι", mistake_actual=f"try-{index}"),
            now=NOW,
        )

    assert len(state.recent_mistakes) == 20
    assert state.recent_mistakes[0].actual == "try-5"
    assert state.recent_mistakes[-1].actual == "try-24"


def test_rule_practice_stores_notes_instead_of_pairs() -> None:
    state = None
    for index in range(18):
        state = apply_practice(
            state,
            PracticeEvent(
                learner_id="learner-1",
                item_id="aorist",
                item_type=ItemType.RULE,
                quality=2,
                suggested_level=1,
                mistake_expected="έγραψα",
                mistake_actual="γράφσα",
                mistake_note=f"note {index % 16}",
            ),
            now=NOW,
        )

    assert state.recent_mistakes == []
    assert len(state.mistake_notes) == 15
    assert state.mistake_notes[-1] == "note 1"
    assert len(set(state.mistake_notes)) == len(state.mistake_notes)


@pytest.mark.asyncio
async def test_record_practice_reads_once_and_writes_once(memory_store) -> None:
    engine = KnowledgeUpdateEngine(memory_store)

    first = await engine.record_practice(_word_event(5), now=NOW)
    assert memory_store.reads == 1
    assert memory_store.writes == 1

    second = await engine.record_practice(_word_event(5), now=NOW + timedelta(days=1))
    assert memory_store.reads == 2
    assert memory_store.writes == 2

    stored = memory_store.states[("learner-1", ItemType.WORD, "σπίτι")]
    assert stored.times_seen == 2
    assert stored.repetition_count == 2
    assert stored.interval_days == 3.0
    assert second.knowledge_level == first.knowledge_level + 1


class _FailingStore:
    async def get_retention_state(self, learner_id, item_type, item_id):
        return None

    async def upsert_retention_state(self, state: RetentionState) -> None:
        raise ConnectionError("database unavailable")


@pytest.mark.asyncio
async def test_store_failure_propagates() -> None:
    engine = KnowledgeUpdateEngine(_FailingStore())

    with pytest.raises(ConnectionError):
        await engine.record_practice(_word_event(4), now=NOW)


@pytest.mark.asyncio
async def test_log_mistake_fills_timestamp(memory_store) -> None:
    engine = KnowledgeUpdateEngine(memory_store)
    entry = MistakeLogEntry(
        learner_id="learner-1",
        mistake_type=MistakeType.GRAMMAR,
        item="aorist",
        expected="έγραψα",
        actual="γράφσα",
    )

    await engine.log_mistake(entry, now=NOW)

    assert memory_store.writes == 1
    assert memory_store.mistakes[0].created_at == NOW
    assert entry.created_at is None
