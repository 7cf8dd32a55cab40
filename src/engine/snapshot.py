"""Read-model describing a learner's aggregate knowledge state."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from src.engine.models import LearningStrategy
from src.engine.pronunciation import PronunciationTrend
from src.engine.weak_points import WeakPoint


@dataclass(slots=True)
class ProblemWordInfo:
    word: str
    level: int
    attempts: int


@dataclass(slots=True)
class VocabularySnapshot:
    total_words: int = 0
    words_for_review_today: int = 0
    by_level: dict[int, int] = field(default_factory=dict)
    problem_words: list[ProblemWordInfo] = field(default_factory=list)
    recent_new_words: list[str] = field(default_factory=list)


@dataclass(slots=True)
class KnownRuleInfo:
    rule: str
    level: int


@dataclass(slots=True)
class GrammarSnapshot:
    total_rules: int = 0
    rules_for_review_today: int = 0
    by_level: dict[int, int] = field(default_factory=dict)
    known_rules: list[KnownRuleInfo] = field(default_factory=list)
    problem_rules: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PronunciationSnapshot:
    overall_score: float = 0.0
    problem_sounds: list[str] = field(default_factory=list)
    good_sounds: list[str] = field(default_factory=list)
    trend: PronunciationTrend = PronunciationTrend.STABLE


@dataclass(slots=True)
class BookProgressSnapshot:
    """Position in the course book; supplied by the caller."""

    current_chapter: int = 1
    current_lesson: int = 1
    total_chapters: int = 0
    completion_percentage: float = 0.0
    current_topic: str = ""


@dataclass(slots=True)
class RecommendationsSnapshot:
    primary_strategy: LearningStrategy
    secondary_strategy: LearningStrategy
    reason: str
    focus_areas: list[str] = field(default_factory=list)
    suggested_session_minutes: int = 30


@dataclass(slots=True)
class KnowledgeSnapshot:
    """Everything the strategy selector and the session context need.

    Snapshots are rebuilt for every session or context refresh and never
    mutated by the engine.
    """

    vocabulary: VocabularySnapshot = field(default_factory=VocabularySnapshot)
    grammar: GrammarSnapshot = field(default_factory=GrammarSnapshot)
    pronunciation: PronunciationSnapshot = field(default_factory=PronunciationSnapshot)
    book_progress: BookProgressSnapshot = field(default_factory=BookProgressSnapshot)
    weak_points: list[WeakPoint] = field(default_factory=list)
    recommendations: Optional[RecommendationsSnapshot] = None

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible representation for the session context."""
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
