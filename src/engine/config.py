"""Tunable thresholds, defaults and caps used by the learning engine."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Constants of the modified SM-2 algorithm."""

    default_ease_factor: float = 2.5
    min_ease_factor: float = 1.3
    initial_interval_days: float = 1.0
    second_interval_days: float = 3.0
    failed_interval_days: float = 0.5
    streak_bonus_multiplier: float = 1.5
    streak_bonus_threshold: int = 3
    max_knowledge_level: int = 7
    max_quality: int = 5
    success_quality: int = 3


@dataclass(frozen=True, slots=True)
class RetentionConfig:
    """Caps for the bounded history lists kept on a retention state."""

    max_contexts: int = 10
    max_item_mistakes: int = 20
    max_grammar_notes: int = 15


@dataclass(frozen=True, slots=True)
class WeakPointConfig:
    """Rules used by the weak-point detector."""

    default_limit: int = 10
    weak_level_ceiling: int = 2
    grammar_min_practice: int = 3
    pronunciation_score_threshold: float = 0.5
    pronunciation_min_attempts: int = 5
    pattern_min_occurrences: int = 3
    pattern_severity_scale: float = 10.0
    recent_mistakes_window: int = 50
    max_knowledge_level: int = 7


@dataclass(frozen=True, slots=True)
class PronunciationConfig:
    """Scoring of pronunciation attempts and per-sound trends."""

    good_score: float = 0.7
    trend_window: int = 3
    trend_margin: float = 0.1
    max_example_words: int = 5
    recent_records_window: int = 200


@dataclass(frozen=True, slots=True)
class ReviewQueueConfig:
    """Priority boundaries and per-session queue sizes."""

    critical_level_ceiling: int = 2
    critical_overdue_days: int = 3
    important_levels: tuple[int, int] = (3, 4)
    supporting_levels: tuple[int, int] = (5, 6)
    max_words_per_review: int = 15
    max_rules_per_review: int = 10
    max_phrases_per_review: int = 5


@dataclass(frozen=True, slots=True)
class StrategyConfig:
    """Thresholds for initial strategy selection and mid-session switching."""

    srs_queue_threshold: int = 10
    weak_points_threshold: int = 5
    vocab_lead_ratio: float = 3.5
    grammar_lead_ratio: float = 0.5
    pronunciation_problem_threshold: int = 3
    change_time_threshold_min: int = 25
    error_rate_threshold: float = 0.6


@dataclass(frozen=True, slots=True)
class SnapshotConfig:
    """Limits applied when assembling a knowledge snapshot."""

    problem_words_limit: int = 5
    recent_new_words_limit: int = 10
    known_rules_limit: int = 10
    focus_areas_limit: int = 3
    suggested_session_minutes: int = 30


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Aggregate configuration handed to every engine component."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    weak_points: WeakPointConfig = field(default_factory=WeakPointConfig)
    pronunciation: PronunciationConfig = field(default_factory=PronunciationConfig)
    review_queue: ReviewQueueConfig = field(default_factory=ReviewQueueConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)


DEFAULT_CONFIG = EngineConfig()
