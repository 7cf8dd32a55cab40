from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.engine.config import SchedulerConfig
from src.engine.scheduler import (
    apply_streak_bonus,
    calculate_ease_factor,
    calculate_interval,
    calculate_knowledge_level,
    calculate_next_review,
    calculate_next_schedule,
    calculate_repetition_number,
)


def test_first_successful_review_is_one_day() -> None:
    assert calculate_interval(repetition=0, quality=5, ease_factor=2.5, previous_interval=0) == 1.0


def test_second_successful_review_is_three_days() -> None:
    assert calculate_interval(repetition=1, quality=5, ease_factor=2.5, previous_interval=1.0) == 3.0


def test_failed_review_uses_fixed_half_day() -> None:
    assert calculate_interval(repetition=5, quality=0, ease_factor=2.5, previous_interval=30.0) == 0.5


def test_later_reviews_multiply_previous_interval() -> None:
    assert calculate_interval(repetition=2, quality=4, ease_factor=2.0, previous_interval=3.0) == pytest.approx(6.0)


def test_ease_factor_stays_at_floor() -> None:
    assert calculate_ease_factor(1.3, quality=0) == 1.3


@pytest.mark.parametrize("current_ef", [1.3, 1.7, 2.5, 3.2])
def test_ease_factor_floor_and_monotonic_in_quality(current_ef: float) -> None:
    results = [calculate_ease_factor(current_ef, quality) for quality in range(6)]

    assert all(value >= 1.3 for value in results)
    assert results == sorted(results)
    assert results[5] == pytest.approx(current_ef + 0.1)
    assert results[4] == pytest.approx(current_ef)


@pytest.mark.parametrize("quality", [-3, 0, 1, 2])
def test_failure_resets_repetition_and_interval(quality: int) -> None:
    assert calculate_repetition_number(7, quality) == 0
    for repetition in (0, 1, 4):
        for ease in (1.3, 2.5):
            assert calculate_interval(repetition, quality, ease, 12.0) == 0.5


def test_out_of_range_quality_is_clamped() -> None:
    assert calculate_ease_factor(2.5, 9) == calculate_ease_factor(2.5, 5)
    assert calculate_repetition_number(2, 42) == 3


def test_knowledge_level_rules() -> None:
    assert calculate_knowledge_level(3, 5, 2) == 4
    assert calculate_knowledge_level(3, 5, 5) == 6
    assert calculate_knowledge_level(7, 5, 7) == 7
    assert calculate_knowledge_level(2, 4, 4) == 4
    assert calculate_knowledge_level(5, 4, 1) == 5
    assert calculate_knowledge_level(4, 3, 7) == 4
    assert calculate_knowledge_level(4, 2, 7) == 3
    assert calculate_knowledge_level(0, 0, 0) == 0


@pytest.mark.parametrize("current", [-10, 0, 3, 7, 50])
@pytest.mark.parametrize("quality", [-1, 0, 3, 4, 5, 8])
@pytest.mark.parametrize("suggested", [-5, 0, 7, 99])
def test_knowledge_level_always_in_range(current: int, quality: int, suggested: int) -> None:
    assert 0 <= calculate_knowledge_level(current, quality, suggested) <= 7


def test_streak_bonus_after_three_perfect_answers() -> None:
    assert apply_streak_bonus(2, 10.0) == 10.0
    assert apply_streak_bonus(3, 10.0) == 15.0


def test_next_review_adds_interval() -> None:
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    due = calculate_next_review(now, repetition=1, quality=4, ease_factor=2.5, previous_interval=1.0)

    assert due == now + timedelta(days=3)


def test_successful_review_increases_interval() -> None:
    now = datetime.now(timezone.utc)
    schedule = calculate_next_schedule(
        quality=5,
        current_ease=2.5,
        current_interval=3.0,
        current_repetition=2,
        now=now,
    )

    assert schedule.repetition == 3
    assert schedule.ease_factor == pytest.approx(2.6)
    assert schedule.interval_days == pytest.approx(3.0 * 2.6)
    assert schedule.next_review_at == now + timedelta(days=schedule.interval_days)


def test_failed_review_resets_progress() -> None:
    now = datetime.now(timezone.utc)
    schedule = calculate_next_schedule(
        quality=1,
        current_ease=2.2,
        current_interval=10.0,
        current_repetition=4,
        now=now,
    )

    assert schedule.repetition == 0
    assert schedule.interval_days == 0.5
    assert schedule.next_review_at == now + timedelta(hours=12)
    assert schedule.ease_factor >= 1.3


def test_new_item_schedule_uses_defaults() -> None:
    now = datetime.now(timezone.utc)
    schedule = calculate_next_schedule(
        quality=4,
        current_ease=None,
        current_interval=None,
        current_repetition=None,
        now=now,
    )

    assert schedule.repetition == 1
    assert schedule.interval_days == 1.0
    assert schedule.ease_factor == pytest.approx(2.5)


def test_schedule_honours_custom_config() -> None:
    config = SchedulerConfig(failed_interval_days=0.25, min_ease_factor=1.5)
    schedule = calculate_next_schedule(
        quality=0,
        current_ease=1.5,
        current_interval=4.0,
        current_repetition=3,
        config=config,
    )

    assert schedule.interval_days == 0.25
    assert schedule.ease_factor == 1.5


def test_scheduler_functions_are_pure() -> None:
    first = (calculate_interval(3, 4, 2.1, 7.0), calculate_ease_factor(2.1, 3))
    second = (calculate_interval(3, 4, 2.1, 7.0), calculate_ease_factor(2.1, 3))

    assert first == second
