"""Assembly of a KnowledgeSnapshot from raw retention and mistake data."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from src.engine.config import DEFAULT_CONFIG, EngineConfig
from src.engine.models import MistakeLogEntry, RetentionState
from src.engine.pronunciation import (
    PhoneticTarget,
    PronunciationRecord,
    derive_phonetic_targets,
    overall_trend,
)
from src.engine.snapshot import (
    BookProgressSnapshot,
    GrammarSnapshot,
    KnowledgeSnapshot,
    KnownRuleInfo,
    ProblemWordInfo,
    PronunciationSnapshot,
    RecommendationsSnapshot,
    VocabularySnapshot,
)
from src.engine.strategy import StrategySelector
from src.engine.weak_points import detect_weak_points

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _by_level(states: Sequence[RetentionState]) -> dict[int, int]:
    return dict(sorted(Counter(state.knowledge_level for state in states).items()))


def _build_vocabulary(
    states: Sequence[RetentionState], now: datetime, config: EngineConfig
) -> VocabularySnapshot:
    problem = sorted(
        (state for state in states if state.is_problem_item),
        key=lambda state: (state.accuracy, -state.times_incorrect),
    )
    recent = sorted(
        (state for state in states if state.knowledge_level == 1),
        key=lambda state: state.created_at or _EPOCH,
        reverse=True,
    )
    return VocabularySnapshot(
        total_words=sum(1 for state in states if state.knowledge_level > 0),
        words_for_review_today=sum(1 for state in states if state.is_due(now)),
        by_level=_by_level(states),
        problem_words=[
            ProblemWordInfo(word=state.item_id, level=state.knowledge_level, attempts=state.times_seen)
            for state in problem[: config.snapshot.problem_words_limit]
        ],
        recent_new_words=[
            state.item_id for state in recent[: config.snapshot.recent_new_words_limit]
        ],
    )


def _build_grammar(
    states: Sequence[RetentionState], now: datetime, config: EngineConfig
) -> GrammarSnapshot:
    weak_cfg = config.weak_points
    practised = sorted(
        (state for state in states if state.knowledge_level > 0),
        key=lambda state: state.last_seen or _EPOCH,
        reverse=True,
    )
    return GrammarSnapshot(
        total_rules=len(practised),
        rules_for_review_today=sum(1 for state in states if state.is_due(now)),
        by_level=_by_level(states),
        known_rules=[
            KnownRuleInfo(rule=state.item_id, level=state.knowledge_level)
            for state in practised[: config.snapshot.known_rules_limit]
        ],
        problem_rules=[
            state.item_id
            for state in states
            if state.knowledge_level <= weak_cfg.weak_level_ceiling
            and state.times_seen >= weak_cfg.grammar_min_practice
        ],
    )


def _build_pronunciation(
    records: Sequence[PronunciationRecord],
    targets: Sequence[PhoneticTarget],
    config: EngineConfig,
) -> PronunciationSnapshot:
    good_score = config.pronunciation.good_score
    overall = sum(record.score for record in records) / len(records) if records else 0.0
    return PronunciationSnapshot(
        overall_score=overall,
        problem_sounds=[target.sound for target in targets if target.current_score < good_score],
        good_sounds=[target.sound for target in targets if target.current_score >= good_score],
        trend=overall_trend(targets),
    )


def _focus_areas(snapshot: KnowledgeSnapshot, limit: int) -> list[str]:
    areas = []
    if snapshot.vocabulary.words_for_review_today > 0:
        areas.append(f"Review {snapshot.vocabulary.words_for_review_today} words")
    if snapshot.grammar.problem_rules:
        areas.append(f"Problem rules: {', '.join(snapshot.grammar.problem_rules[:3])}")
    if snapshot.pronunciation.problem_sounds:
        areas.append(f"Sounds: {', '.join(snapshot.pronunciation.problem_sounds[:3])}")
    return areas[:limit]


def build_knowledge_snapshot(
    word_states: Sequence[RetentionState],
    rule_states: Sequence[RetentionState],
    pronunciation_records: Sequence[PronunciationRecord] = (),
    mistakes: Sequence[MistakeLogEntry] = (),
    *,
    book_progress: Optional[BookProgressSnapshot] = None,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    selector: Optional[StrategySelector] = None,
) -> KnowledgeSnapshot:
    """Aggregate the learner's state and attach a strategy recommendation."""
    if now is None:
        now = datetime.now(timezone.utc)
    if selector is None:
        selector = StrategySelector(config.strategy)

    targets = derive_phonetic_targets(pronunciation_records, config.pronunciation)
    snapshot = KnowledgeSnapshot(
        vocabulary=_build_vocabulary(word_states, now, config),
        grammar=_build_grammar(rule_states, now, config),
        pronunciation=_build_pronunciation(pronunciation_records, targets, config),
        book_progress=book_progress or BookProgressSnapshot(),
        weak_points=detect_weak_points(
            word_states, rule_states, targets, mistakes, config=config.weak_points
        ),
    )

    recommendation = selector.recommend(snapshot)
    return replace(
        snapshot,
        recommendations=RecommendationsSnapshot(
            primary_strategy=recommendation.primary,
            secondary_strategy=recommendation.secondary,
            reason=recommendation.reason,
            focus_areas=_focus_areas(snapshot, config.snapshot.focus_areas_limit),
            suggested_session_minutes=config.snapshot.suggested_session_minutes,
        ),
    )
