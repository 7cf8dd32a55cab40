"""Core data structures describing what a learner knows."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


class ItemType(str, enum.Enum):
    """Kinds of learnable items tracked by the engine."""

    WORD = "word"
    RULE = "rule"
    PHRASE = "phrase"


class MistakeType(str, enum.Enum):
    """Category of a logged mistake."""

    WORD = "word"
    GRAMMAR = "grammar"
    PRONUNCIATION = "pronunciation"
    PHRASE = "phrase"


class LearningStrategy(str, enum.Enum):
    """Pedagogical modes a session can run in."""

    LINEAR_BOOK = "LINEAR_BOOK"
    GAP_FILLING = "GAP_FILLING"
    REPETITION = "REPETITION"
    FREE_PRACTICE = "FREE_PRACTICE"
    PRONUNCIATION = "PRONUNCIATION"
    GRAMMAR_DRILL = "GRAMMAR_DRILL"
    VOCABULARY_BOOST = "VOCABULARY_BOOST"
    LISTENING = "LISTENING"
    ASSESSMENT = "ASSESSMENT"

    @property
    def description(self) -> str:
        return _STRATEGY_DESCRIPTIONS[self]

    @classmethod
    def from_string(cls, value: Optional[str]) -> "LearningStrategy":
        """Parse a strategy name, falling back to LINEAR_BOOK."""
        if value:
            normalized = value.strip().upper()
            for strategy in cls:
                if strategy.value == normalized:
                    return strategy
        return cls.LINEAR_BOOK


_STRATEGY_DESCRIPTIONS = {
    LearningStrategy.LINEAR_BOOK: "Work through the course book in order",
    LearningStrategy.GAP_FILLING: "Return to topics where gaps were detected",
    LearningStrategy.REPETITION: "Spaced repetition of accumulated material",
    LearningStrategy.FREE_PRACTICE: "Free conversation with corrections",
    LearningStrategy.PRONUNCIATION: "Focused pronunciation work",
    LearningStrategy.GRAMMAR_DRILL: "Intensive drilling of a grammar rule",
    LearningStrategy.VOCABULARY_BOOST: "Intensive vocabulary expansion",
    LearningStrategy.LISTENING: "Listening comprehension practice",
    LearningStrategy.ASSESSMENT: "Assessment of the current level",
}


@dataclass(slots=True)
class MistakeRecord:
    """A single expected/actual pair remembered on a word or phrase."""

    expected: str
    actual: str
    timestamp: datetime
    context: str = ""


@dataclass(slots=True)
class RetentionState:
    """Spaced-repetition state of one item for one learner."""

    learner_id: str
    item_id: str
    item_type: ItemType
    knowledge_level: int = 0
    ease_factor: float = 2.5
    interval_days: float = 0.0
    repetition_count: int = 0
    next_review_at: Optional[datetime] = None
    times_seen: int = 0
    times_correct: int = 0
    times_incorrect: int = 0
    last_seen: Optional[datetime] = None
    last_correct: Optional[datetime] = None
    last_incorrect: Optional[datetime] = None
    pronunciation_score: float = 0.0
    pronunciation_attempts: int = 0
    recent_mistakes: list[MistakeRecord] = field(default_factory=list)
    recent_contexts: list[str] = field(default_factory=list)
    mistake_notes: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def accuracy(self) -> float:
        """Share of correct answers, 0 when the item was never answered."""
        answered = self.times_correct + self.times_incorrect
        if answered == 0:
            return 0.0
        return self.times_correct / answered

    @property
    def is_known(self) -> bool:
        return self.knowledge_level >= 4

    @property
    def is_active(self) -> bool:
        return self.knowledge_level >= 5

    @property
    def is_mastered(self) -> bool:
        return self.knowledge_level >= 7

    @property
    def is_problem_item(self) -> bool:
        """More errors than successes after at least three encounters."""
        return self.times_incorrect > self.times_correct and self.times_seen >= 3

    def is_due(self, now: Optional[datetime] = None) -> bool:
        """Return whether the item has reached its scheduled review time."""
        if self.next_review_at is None:
            return False
        if now is None:
            now = datetime.now(timezone.utc)
        return now >= self.next_review_at


@dataclass(slots=True)
class PracticeEvent:
    """Outcome of one exercise, as graded by the evaluation source."""

    learner_id: str
    item_id: str
    item_type: ItemType
    quality: int
    suggested_level: int
    pronunciation_score: Optional[float] = None
    context: Optional[str] = None
    mistake_expected: Optional[str] = None
    mistake_actual: Optional[str] = None
    mistake_note: Optional[str] = None


@dataclass(slots=True)
class MistakeLogEntry:
    """A mistake logged during a session, used for pattern detection."""

    learner_id: str
    mistake_type: MistakeType
    item: str
    expected: str
    actual: str
    context: str = ""
    explanation: str = ""
    session_id: Optional[str] = None
    created_at: Optional[datetime] = None
