"""Selection of the pedagogical strategy for a session.

Initial selection, first match wins:

    1. due vocabulary + grammar above the SRS queue threshold   -> REPETITION
    2. weak points above threshold                             -> GAP_FILLING
    3. vocabulary far ahead of grammar                         -> GRAMMAR_DRILL
    4. grammar far ahead of vocabulary                         -> VOCABULARY_BOOST
    5. problem sounds above threshold                          -> PRONUNCIATION
    6. otherwise                                               -> LINEAR_BOOK

Mid-session, a switch is suggested after too long on one strategy, when the
recent error rate is high, or when a repetition queue has been drained.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.engine.config import StrategyConfig
from src.engine.models import LearningStrategy
from src.engine.snapshot import KnowledgeSnapshot


LOGGER = logging.getLogger(__name__)

_SECONDARY = {
    LearningStrategy.REPETITION: LearningStrategy.LINEAR_BOOK,
    LearningStrategy.GAP_FILLING: LearningStrategy.REPETITION,
    LearningStrategy.GRAMMAR_DRILL: LearningStrategy.LINEAR_BOOK,
    LearningStrategy.VOCABULARY_BOOST: LearningStrategy.LINEAR_BOOK,
    LearningStrategy.PRONUNCIATION: LearningStrategy.FREE_PRACTICE,
}

_FALLBACK_ROTATION = {
    LearningStrategy.REPETITION: LearningStrategy.LINEAR_BOOK,
    LearningStrategy.LINEAR_BOOK: LearningStrategy.FREE_PRACTICE,
    LearningStrategy.GAP_FILLING: LearningStrategy.LINEAR_BOOK,
    LearningStrategy.GRAMMAR_DRILL: LearningStrategy.FREE_PRACTICE,
    LearningStrategy.VOCABULARY_BOOST: LearningStrategy.REPETITION,
    LearningStrategy.PRONUNCIATION: LearningStrategy.FREE_PRACTICE,
    LearningStrategy.FREE_PRACTICE: LearningStrategy.LINEAR_BOOK,
    LearningStrategy.LISTENING: LearningStrategy.FREE_PRACTICE,
    LearningStrategy.ASSESSMENT: LearningStrategy.LINEAR_BOOK,
}


@dataclass(frozen=True, slots=True)
class StrategyRecommendation:
    primary: LearningStrategy
    secondary: LearningStrategy
    reason: str


def _count(value: int) -> int:
    return max(0, int(value))


def _rate(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class StrategySelector:
    """Stateless strategy decisions over a knowledge snapshot."""

    def __init__(self, config: Optional[StrategyConfig] = None) -> None:
        self._config = config or StrategyConfig()

    def _due_items(self, snapshot: KnowledgeSnapshot) -> int:
        return _count(snapshot.vocabulary.words_for_review_today) + _count(
            snapshot.grammar.rules_for_review_today
        )

    def _skill_ratio(self, snapshot: KnowledgeSnapshot) -> float:
        vocab_total = max(1, _count(snapshot.vocabulary.total_words))
        grammar_total = max(1, _count(snapshot.grammar.total_rules))
        return vocab_total / grammar_total

    def select_strategy(self, snapshot: KnowledgeSnapshot) -> LearningStrategy:
        """Pick the best-fitting strategy for the snapshot."""
        config = self._config

        if self._due_items(snapshot) > config.srs_queue_threshold:
            return LearningStrategy.REPETITION

        if len(snapshot.weak_points) > config.weak_points_threshold:
            return LearningStrategy.GAP_FILLING

        ratio = self._skill_ratio(snapshot)
        if ratio > config.vocab_lead_ratio:
            return LearningStrategy.GRAMMAR_DRILL
        if ratio < config.grammar_lead_ratio:
            return LearningStrategy.VOCABULARY_BOOST

        if len(snapshot.pronunciation.problem_sounds) > config.pronunciation_problem_threshold:
            return LearningStrategy.PRONUNCIATION

        return LearningStrategy.LINEAR_BOOK

    def recommend(self, snapshot: KnowledgeSnapshot) -> StrategyRecommendation:
        """Primary strategy with a distinct fallback and a readable reason."""
        primary = self.select_strategy(snapshot)
        secondary = _SECONDARY.get(primary, LearningStrategy.REPETITION)
        recommendation = StrategyRecommendation(
            primary=primary,
            secondary=secondary,
            reason=self.build_reason(primary, snapshot),
        )
        LOGGER.debug(
            "Selected strategy %s (secondary %s): %s",
            primary.value,
            secondary.value,
            recommendation.reason,
        )
        return recommendation

    def build_reason(self, strategy: LearningStrategy, snapshot: KnowledgeSnapshot) -> str:
        vocabulary = snapshot.vocabulary
        grammar = snapshot.grammar
        if strategy is LearningStrategy.REPETITION:
            return f"{self._due_items(snapshot)} items are due for review"
        if strategy is LearningStrategy.GAP_FILLING:
            return f"{len(snapshot.weak_points)} weak points detected"
        if strategy is LearningStrategy.GRAMMAR_DRILL:
            return (
                f"Vocabulary ({vocabulary.total_words} words) is ahead of grammar "
                f"({grammar.total_rules} rules)"
            )
        if strategy is LearningStrategy.VOCABULARY_BOOST:
            return (
                f"Grammar ({grammar.total_rules} rules) is ahead of vocabulary "
                f"({vocabulary.total_words} words)"
            )
        if strategy is LearningStrategy.PRONUNCIATION:
            sounds = ", ".join(snapshot.pronunciation.problem_sounds[:3])
            return f"Pronunciation problems: {sounds}"
        if strategy is LearningStrategy.LINEAR_BOOK:
            book = snapshot.book_progress
            return (
                f"Continue the book at chapter {book.current_chapter}, "
                f"lesson {book.current_lesson}"
            )
        if strategy is LearningStrategy.FREE_PRACTICE:
            return "Free conversation to consolidate covered material"
        if strategy is LearningStrategy.LISTENING:
            return "Listening practice to train comprehension"
        return "Assessment of the current level to adjust the programme"

    def should_switch_strategy(
        self,
        current_strategy: LearningStrategy,
        minutes_on_strategy: int,
        recent_error_rate: float,
        repetition_queue_drained: bool,
    ) -> bool:
        """Whether the running session should move to another strategy."""
        config = self._config
        if _count(minutes_on_strategy) >= config.change_time_threshold_min:
            return True
        if _rate(recent_error_rate) > config.error_rate_threshold:
            return True
        return current_strategy is LearningStrategy.REPETITION and repetition_queue_drained

    def next_strategy(
        self,
        current_strategy: LearningStrategy,
        recent_error_rate: float,
        snapshot: Optional[KnowledgeSnapshot] = None,
    ) -> LearningStrategy:
        """Strategy to switch to once a switch has been decided."""
        if _rate(recent_error_rate) > self._config.error_rate_threshold:
            return LearningStrategy.FREE_PRACTICE
        if snapshot is not None:
            return self.select_strategy(snapshot)
        return _FALLBACK_ROTATION[current_strategy]
