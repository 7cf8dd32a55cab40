"""Pronunciation attempt records and the phonetic targets derived from them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from src.engine.config import PronunciationConfig


class PronunciationTrend(str, enum.Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(slots=True)
class PronunciationRecord:
    """Score of one spoken attempt, with the sounds the evaluator flagged."""

    learner_id: str
    word: str
    score: float
    problem_sounds: list[str] = field(default_factory=list)
    recorded_at: Optional[datetime] = None


@dataclass(slots=True)
class PhoneticTarget:
    """Aggregated performance on one sound across recorded attempts."""

    sound: str
    total_attempts: int = 0
    successful_attempts: int = 0
    current_score: float = 0.0
    trend: PronunciationTrend = PronunciationTrend.STABLE
    in_words: list[str] = field(default_factory=list)


def _trend(scores: List[float], config: PronunciationConfig) -> PronunciationTrend:
    window = config.trend_window
    if window <= 0 or len(scores) < window:
        return PronunciationTrend.STABLE
    earlier = sum(scores[:window]) / window
    recent = sum(scores[-window:]) / window
    if recent > earlier + config.trend_margin:
        return PronunciationTrend.IMPROVING
    if recent < earlier - config.trend_margin:
        return PronunciationTrend.DECLINING
    return PronunciationTrend.STABLE


def derive_phonetic_targets(
    records: Iterable[PronunciationRecord], config: Optional[PronunciationConfig] = None
) -> list[PhoneticTarget]:
    """Group record scores by flagged sound; weakest sounds first.

    Records are expected oldest first so the trend compares the earliest and
    the latest attempts.
    """
    if config is None:
        config = PronunciationConfig()

    scores_by_sound: dict[str, list[float]] = {}
    words_by_sound: dict[str, list[str]] = {}

    for record in records:
        score = max(0.0, min(1.0, record.score))
        for sound in record.problem_sounds:
            scores_by_sound.setdefault(sound, []).append(score)
            words = words_by_sound.setdefault(sound, [])
            if record.word not in words:
                words.append(record.word)

    targets = [
        PhoneticTarget(
            sound=sound,
            total_attempts=len(scores),
            successful_attempts=sum(1 for score in scores if score >= config.good_score),
            current_score=sum(scores) / len(scores),
            trend=_trend(scores, config),
            in_words=words_by_sound[sound][: config.max_example_words],
        )
        for sound, scores in scores_by_sound.items()
    ]
    return sorted(targets, key=lambda target: target.current_score)


def overall_trend(targets: Iterable[PhoneticTarget]) -> PronunciationTrend:
    """Majority direction across all tracked sounds."""
    improving = declining = 0
    for target in targets:
        if target.trend is PronunciationTrend.IMPROVING:
            improving += 1
        elif target.trend is PronunciationTrend.DECLINING:
            declining += 1
    if improving > declining:
        return PronunciationTrend.IMPROVING
    if declining > improving:
        return PronunciationTrend.DECLINING
    return PronunciationTrend.STABLE
