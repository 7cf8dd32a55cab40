"""Configuration helpers for the learning engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from src.engine.config import EngineConfig


def _read_int(name: str, default: int, minimum: int = 0) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be at least {minimum}.")
    return value


def _read_float(name: str, default: float, minimum: float = 0.0) -> float:
    try:
        value = float(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number.") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be at least {minimum}.")
    return value


def _engine_config_from_env() -> EngineConfig:
    base = EngineConfig()

    min_ease_factor = _read_float("SRS_MIN_EASE_FACTOR", base.scheduler.min_ease_factor, 1.0)
    default_ease_factor = _read_float(
        "SRS_DEFAULT_EASE_FACTOR", base.scheduler.default_ease_factor, min_ease_factor
    )
    scheduler = replace(
        base.scheduler,
        min_ease_factor=min_ease_factor,
        default_ease_factor=default_ease_factor,
        failed_interval_days=_read_float(
            "SRS_FAILED_INTERVAL_DAYS", base.scheduler.failed_interval_days
        ),
    )

    review_queue = replace(
        base.review_queue,
        max_words_per_review=_read_int(
            "SRS_MAX_WORDS_PER_REVIEW", base.review_queue.max_words_per_review, 1
        ),
        max_rules_per_review=_read_int(
            "SRS_MAX_RULES_PER_REVIEW", base.review_queue.max_rules_per_review, 1
        ),
        max_phrases_per_review=_read_int(
            "SRS_MAX_PHRASES_PER_REVIEW", base.review_queue.max_phrases_per_review, 1
        ),
    )

    error_rate = _read_float("STRATEGY_ERROR_RATE_THRESHOLD", base.strategy.error_rate_threshold)
    if error_rate > 1.0:
        raise RuntimeError("STRATEGY_ERROR_RATE_THRESHOLD must be between 0 and 1.")
    strategy = replace(
        base.strategy,
        srs_queue_threshold=_read_int(
            "STRATEGY_SRS_QUEUE_THRESHOLD", base.strategy.srs_queue_threshold
        ),
        weak_points_threshold=_read_int(
            "STRATEGY_WEAK_POINTS_THRESHOLD", base.strategy.weak_points_threshold
        ),
        change_time_threshold_min=_read_int(
            "STRATEGY_CHANGE_TIME_THRESHOLD_MIN", base.strategy.change_time_threshold_min, 1
        ),
        error_rate_threshold=error_rate,
    )

    weak_points = replace(
        base.weak_points,
        default_limit=_read_int("WEAK_POINTS_LIMIT", base.weak_points.default_limit, 1),
    )

    return replace(
        base,
        scheduler=scheduler,
        review_queue=review_queue,
        strategy=strategy,
        weak_points=weak_points,
    )


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    engine: EngineConfig

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", "Learning Engine"),
            app_env=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            engine=_engine_config_from_env(),
        )
