"""Create-or-update logic for per-item retention state."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence, TypeVar

from src.engine.config import DEFAULT_CONFIG, EngineConfig
from src.engine.models import (
    ItemType,
    MistakeLogEntry,
    MistakeRecord,
    PracticeEvent,
    RetentionState,
)
from src.engine.pronunciation import PronunciationRecord
from src.engine.scheduler import (
    calculate_knowledge_level,
    calculate_next_schedule,
    clamp_level,
    clamp_quality,
)


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class KnowledgeStore(Protocol):
    """Narrow persistence contract the engine relies on."""

    async def get_retention_state(
        self, learner_id: str, item_type: ItemType, item_id: str
    ) -> Optional[RetentionState]:
        ...

    async def upsert_retention_state(self, state: RetentionState) -> None:
        ...

    async def list_retention_states(
        self,
        learner_id: str,
        item_type: Optional[ItemType] = None,
        due_before: Optional[datetime] = None,
    ) -> list[RetentionState]:
        ...

    async def add_mistake(self, entry: MistakeLogEntry) -> None:
        ...

    async def list_recent_mistakes(self, learner_id: str, limit: int) -> list[MistakeLogEntry]:
        ...

    async def add_pronunciation_record(self, record: PronunciationRecord) -> None:
        ...

    async def list_pronunciation_records(
        self, learner_id: str, limit: Optional[int] = None
    ) -> list[PronunciationRecord]:
        ...


def _append_bounded(items: Sequence[T], new_item: T, cap: int) -> list[T]:
    """Append and evict the oldest entries beyond ``cap``."""
    combined = [*items, new_item]
    return combined[-cap:] if cap > 0 else []


def _append_unique(items: Sequence[T], new_item: T, cap: int) -> list[T]:
    """Append, drop duplicates keeping the first occurrence, then bound."""
    distinct: list[T] = []
    for item in [*items, new_item]:
        if item not in distinct:
            distinct.append(item)
    return distinct[-cap:] if cap > 0 else []


def _running_average(previous: float, attempts: int, new_score: float) -> float:
    return (previous * attempts + new_score) / (attempts + 1)


def apply_practice(
    existing: Optional[RetentionState],
    event: PracticeEvent,
    *,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RetentionState:
    """Return the retention state that results from ``event``.

    ``existing`` is never mutated. When it is ``None`` a fresh state is built
    from the default ease factor with no prior repetitions or interval.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    scheduler_cfg = config.scheduler
    caps = config.retention
    quality = clamp_quality(event.quality, scheduler_cfg)
    suggested_level = clamp_level(event.suggested_level, scheduler_cfg)
    success = quality >= scheduler_cfg.success_quality

    if existing is None:
        base = RetentionState(
            learner_id=event.learner_id,
            item_id=event.item_id,
            item_type=event.item_type,
            ease_factor=scheduler_cfg.default_ease_factor,
            created_at=now,
        )
        level = suggested_level
    else:
        base = existing
        level = calculate_knowledge_level(
            existing.knowledge_level, quality, suggested_level, scheduler_cfg
        )

    schedule = calculate_next_schedule(
        quality=quality,
        current_ease=base.ease_factor,
        current_interval=base.interval_days,
        current_repetition=base.repetition_count,
        now=now,
        config=scheduler_cfg,
    )

    pronunciation_score = base.pronunciation_score
    pronunciation_attempts = base.pronunciation_attempts
    if event.pronunciation_score is not None:
        new_score = max(0.0, min(1.0, event.pronunciation_score))
        pronunciation_score = _running_average(
            base.pronunciation_score, base.pronunciation_attempts, new_score
        )
        pronunciation_attempts += 1

    contexts = list(base.recent_contexts)
    if event.context:
        contexts = _append_unique(contexts, event.context, caps.max_contexts)

    mistakes = list(base.recent_mistakes)
    notes = list(base.mistake_notes)
    if event.item_type is ItemType.RULE:
        if event.mistake_note:
            notes = _append_unique(notes, event.mistake_note, caps.max_grammar_notes)
    elif event.mistake_expected is not None and event.mistake_actual is not None:
        record = MistakeRecord(
            expected=event.mistake_expected,
            actual=event.mistake_actual,
            timestamp=now,
            context=event.context or "",
        )
        mistakes = _append_bounded(mistakes, record, caps.max_item_mistakes)

    return replace(
        base,
        knowledge_level=level,
        ease_factor=schedule.ease_factor,
        interval_days=schedule.interval_days,
        repetition_count=schedule.repetition,
        next_review_at=schedule.next_review_at,
        times_seen=base.times_seen + 1,
        times_correct=base.times_correct + (1 if success else 0),
        times_incorrect=base.times_incorrect + (0 if success else 1),
        last_seen=now,
        last_correct=now if success else base.last_correct,
        last_incorrect=base.last_incorrect if success else now,
        pronunciation_score=pronunciation_score,
        pronunciation_attempts=pronunciation_attempts,
        recent_mistakes=mistakes,
        recent_contexts=contexts,
        mistake_notes=notes,
        updated_at=now,
    )


class KnowledgeUpdateEngine:
    """Applies practice events to stored retention state.

    Each call performs one read and one write against the store. Store errors
    are propagated unchanged; retry policy belongs to the caller.
    """

    def __init__(self, store: KnowledgeStore, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self._store = store
        self._config = config

    async def record_practice(
        self, event: PracticeEvent, now: Optional[datetime] = None
    ) -> RetentionState:
        """Update (or create) the retention state for the practised item."""
        existing = await self._store.get_retention_state(
            event.learner_id, event.item_type, event.item_id
        )
        updated = apply_practice(existing, event, now=now, config=self._config)
        await self._store.upsert_retention_state(updated)

        LOGGER.debug(
            "Recorded %s practice for learner %s item %s: quality=%s level=%s interval=%.2f ef=%.2f.",
            event.item_type.value,
            event.learner_id,
            event.item_id,
            event.quality,
            updated.knowledge_level,
            updated.interval_days,
            updated.ease_factor,
        )
        return updated

    async def log_mistake(self, entry: MistakeLogEntry, now: Optional[datetime] = None) -> None:
        """Persist a session mistake for later pattern detection."""
        if entry.created_at is None:
            entry = replace(entry, created_at=now or datetime.now(timezone.utc))
        await self._store.add_mistake(entry)
        LOGGER.debug(
            "Logged %s mistake for learner %s on %r.",
            entry.mistake_type.value,
            entry.learner_id,
            entry.item,
        )
