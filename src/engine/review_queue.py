"""Prioritised review queues built from due retention states."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from src.engine.config import ReviewQueueConfig
from src.engine.models import ItemType, RetentionState


class ReviewPriority(enum.IntEnum):
    """Lower value means more urgent."""

    CRITICAL = 0
    IMPORTANT = 1
    SUPPORTING = 2
    MASTERY = 3


@dataclass(slots=True)
class ReviewQueueItem:
    item_id: str
    state: RetentionState
    priority: ReviewPriority
    overdue_days: int


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def overdue_days(next_review_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole calendar days (UTC) the review is past due, never negative."""
    if next_review_at is None:
        return 0
    if now is None:
        now = datetime.now(timezone.utc)
    days = (_as_utc(now).date() - _as_utc(next_review_at).date()).days
    return max(0, days)


def assign_priority(
    knowledge_level: int, overdue: int, config: Optional[ReviewQueueConfig] = None
) -> ReviewPriority:
    if config is None:
        config = ReviewQueueConfig()
    if knowledge_level <= config.critical_level_ceiling and overdue > config.critical_overdue_days:
        return ReviewPriority.CRITICAL
    low, high = config.important_levels
    if low <= knowledge_level <= high:
        return ReviewPriority.IMPORTANT
    low, high = config.supporting_levels
    if low <= knowledge_level <= high:
        return ReviewPriority.SUPPORTING
    return ReviewPriority.MASTERY


def default_queue_size(item_type: ItemType, config: Optional[ReviewQueueConfig] = None) -> int:
    """Per-session queue size for an item type."""
    if config is None:
        config = ReviewQueueConfig()
    if item_type is ItemType.RULE:
        return config.max_rules_per_review
    if item_type is ItemType.PHRASE:
        return config.max_phrases_per_review
    return config.max_words_per_review


def build_review_queue(
    candidates: Iterable[RetentionState],
    *,
    limit: int,
    now: Optional[datetime] = None,
    config: Optional[ReviewQueueConfig] = None,
) -> list[ReviewQueueItem]:
    """Order due items by priority, then by how long they are overdue.

    ``candidates`` are expected to be due already; the builder does not filter
    them again.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    items = []
    for state in candidates:
        overdue = overdue_days(state.next_review_at, now)
        items.append(
            ReviewQueueItem(
                item_id=state.item_id,
                state=state,
                priority=assign_priority(state.knowledge_level, overdue, config),
                overdue_days=overdue,
            )
        )

    items.sort(key=lambda item: (item.priority, -item.overdue_days))
    return items[: max(0, limit)]
