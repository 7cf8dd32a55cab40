"""Spaced-repetition scheduling helpers implementing a modified SM-2 algorithm.

Quality scale supplied by the evaluation source:

    0  complete failure, no recall
    1  incorrect, recognised after seeing the answer
    2  incorrect, but the answer felt familiar
    3  correct with significant difficulty
    4  correct with minor hesitation
    5  instant perfect recall

Out-of-range qualities and levels are clamped rather than rejected because the
grades come from an approximate upstream evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.engine.config import SchedulerConfig


_DEFAULT = SchedulerConfig()


@dataclass(slots=True)
class ReviewSchedule:
    """Calculated review data for an item after receiving a quality grade."""

    next_review_at: datetime
    ease_factor: float
    interval_days: float
    repetition: int


def clamp_quality(quality: int, config: SchedulerConfig = _DEFAULT) -> int:
    return max(0, min(config.max_quality, int(quality)))


def clamp_level(level: int, config: SchedulerConfig = _DEFAULT) -> int:
    return max(0, min(config.max_knowledge_level, int(level)))


def calculate_interval(
    repetition: int,
    quality: int,
    ease_factor: float,
    previous_interval: float,
    config: SchedulerConfig = _DEFAULT,
) -> float:
    """Return the next interval in days.

    ``repetition`` is the number of consecutive successful answers given before
    this one (0 for the first success after creation or a lapse).
    """
    if clamp_quality(quality, config) < config.success_quality:
        return config.failed_interval_days
    if repetition <= 0:
        return config.initial_interval_days
    if repetition == 1:
        return config.second_interval_days
    return max(0.0, previous_interval) * ease_factor


def calculate_ease_factor(
    current_ef: float,
    quality: int,
    config: SchedulerConfig = _DEFAULT,
) -> float:
    """Return the adjusted ease factor, never below the configured floor."""
    q = clamp_quality(quality, config)
    distance = config.max_quality - q
    new_ef = current_ef + (0.1 - distance * (0.08 + distance * 0.02))
    return max(config.min_ease_factor, new_ef)


def calculate_next_review(
    now: datetime,
    repetition: int,
    quality: int,
    ease_factor: float,
    previous_interval: float,
    config: SchedulerConfig = _DEFAULT,
) -> datetime:
    """Return the timestamp at which the item becomes due again."""
    interval = calculate_interval(repetition, quality, ease_factor, previous_interval, config)
    return now + timedelta(days=interval)


def calculate_knowledge_level(
    current_level: int,
    quality: int,
    suggested_level: int,
    config: SchedulerConfig = _DEFAULT,
) -> int:
    """Adjust the 0-7 knowledge level from the grade and the suggested level."""
    q = clamp_quality(quality, config)
    current = clamp_level(current_level, config)
    suggested = clamp_level(suggested_level, config)
    ceiling = config.max_knowledge_level

    if q == config.max_quality:
        return min(max(current, suggested) + 1, ceiling)
    if q == config.max_quality - 1:
        return min(max(current, suggested), ceiling)
    if q >= config.success_quality:
        return current
    return max(current - 1, 0)


def calculate_repetition_number(
    previous_count: int,
    quality: int,
    config: SchedulerConfig = _DEFAULT,
) -> int:
    """Return the consecutive-success counter after this answer."""
    if clamp_quality(quality, config) >= config.success_quality:
        return max(0, previous_count) + 1
    return 0


def apply_streak_bonus(
    consecutive_perfect: int,
    interval: float,
    config: SchedulerConfig = _DEFAULT,
) -> float:
    """Stretch the interval after a streak of perfect answers."""
    if consecutive_perfect >= config.streak_bonus_threshold:
        return interval * config.streak_bonus_multiplier
    return interval


def calculate_next_schedule(
    *,
    quality: int,
    current_ease: Optional[float],
    current_interval: Optional[float],
    current_repetition: Optional[int],
    now: Optional[datetime] = None,
    config: SchedulerConfig = _DEFAULT,
) -> ReviewSchedule:
    """Return the full next review schedule for an item.

    The new ease factor is computed first and then used for the interval, so a
    weak answer both shrinks the multiplier and the resulting spacing.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    ease = current_ease or config.default_ease_factor
    previous_repetition = max(0, current_repetition or 0)
    previous_interval = max(0.0, current_interval or 0.0)

    repetition = calculate_repetition_number(previous_repetition, quality, config)
    ease_factor = calculate_ease_factor(ease, quality, config)
    interval = calculate_interval(previous_repetition, quality, ease_factor, previous_interval, config)

    return ReviewSchedule(
        next_review_at=now + timedelta(days=interval),
        ease_factor=ease_factor,
        interval_days=interval,
        repetition=repetition,
    )
