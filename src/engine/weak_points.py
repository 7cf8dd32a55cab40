"""Detection of recurring trouble spots across vocabulary, grammar and speech."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from src.engine.config import WeakPointConfig
from src.engine.models import MistakeLogEntry, MistakeType, RetentionState
from src.engine.pronunciation import PhoneticTarget, PronunciationTrend


_PATTERN_CATEGORIES = {
    MistakeType.GRAMMAR: "grammar_pattern",
    MistakeType.WORD: "vocabulary_pattern",
    MistakeType.PRONUNCIATION: "pronunciation_pattern",
    MistakeType.PHRASE: "phrase_pattern",
}


@dataclass(frozen=True, slots=True)
class WeakPoint:
    description: str
    category: str
    severity: float


def _severity(value: float) -> float:
    return max(0.0, min(1.0, value))


def _vocabulary_weak_points(
    states: Iterable[RetentionState], config: WeakPointConfig
) -> list[WeakPoint]:
    found = []
    for state in states:
        if state.knowledge_level > config.weak_level_ceiling or not state.is_problem_item:
            continue
        severity = 1.0 - state.accuracy if state.times_correct > 0 else 1.0
        found.append(
            WeakPoint(
                description=(
                    f"Word '{state.item_id}': {state.times_incorrect} mistakes, "
                    f"{state.times_correct} correct"
                ),
                category="vocabulary",
                severity=_severity(severity),
            )
        )
    return found


def _grammar_weak_points(
    states: Iterable[RetentionState], config: WeakPointConfig
) -> list[WeakPoint]:
    found = []
    for state in states:
        if state.knowledge_level > config.weak_level_ceiling:
            continue
        if state.times_seen < config.grammar_min_practice:
            continue
        found.append(
            WeakPoint(
                description=(
                    f"Rule '{state.item_id}': level "
                    f"{state.knowledge_level}/{config.max_knowledge_level}"
                ),
                category="grammar",
                severity=_severity(1.0 - state.knowledge_level / config.max_knowledge_level),
            )
        )
    return found


def _pronunciation_weak_points(
    targets: Iterable[PhoneticTarget], config: WeakPointConfig
) -> list[WeakPoint]:
    found = []
    for target in targets:
        if (
            target.current_score < config.pronunciation_score_threshold
            and target.total_attempts > config.pronunciation_min_attempts
            and target.trend is not PronunciationTrend.IMPROVING
        ):
            found.append(
                WeakPoint(
                    description=(
                        f"Sound '{target.sound}': score {int(target.current_score * 100)}%"
                    ),
                    category="pronunciation",
                    severity=_severity(1.0 - target.current_score),
                )
            )
    return found


def _mistake_pattern_weak_points(
    mistakes: Iterable[MistakeLogEntry], config: WeakPointConfig
) -> list[WeakPoint]:
    groups: dict[tuple[MistakeType, str], int] = {}
    for mistake in mistakes:
        key = (mistake.mistake_type, mistake.item)
        groups[key] = groups.get(key, 0) + 1

    found = []
    for (mistake_type, item), count in groups.items():
        if count < config.pattern_min_occurrences:
            continue
        found.append(
            WeakPoint(
                description=f"Mistake pattern: {item} ({count} times)",
                category=_PATTERN_CATEGORIES[mistake_type],
                severity=_severity(min(count / config.pattern_severity_scale, 1.0)),
            )
        )
    return found


def detect_weak_points(
    vocabulary: Sequence[RetentionState] = (),
    grammar: Sequence[RetentionState] = (),
    phonetic_targets: Sequence[PhoneticTarget] = (),
    mistakes: Sequence[MistakeLogEntry] = (),
    *,
    limit: Optional[int] = None,
    config: Optional[WeakPointConfig] = None,
) -> list[WeakPoint]:
    """Return weak points ordered by descending severity.

    All rules are evaluated independently. Equal severities keep the order in
    which they were produced: vocabulary, grammar, pronunciation, then mistake
    patterns, each in input order.
    """
    if config is None:
        config = WeakPointConfig()
    if limit is None:
        limit = config.default_limit

    weak_points = [
        *_vocabulary_weak_points(vocabulary, config),
        *_grammar_weak_points(grammar, config),
        *_pronunciation_weak_points(phonetic_targets, config),
        *_mistake_pattern_weak_points(mistakes, config),
    ]
    weak_points.sort(key=lambda point: point.severity, reverse=True)
    return weak_points[: max(0, limit)]
