"""Spaced-repetition and strategy-selection engine."""

from .config import EngineConfig
from .knowledge import KnowledgeStore, KnowledgeUpdateEngine, apply_practice
from .models import (
    ItemType,
    LearningStrategy,
    MistakeLogEntry,
    MistakeType,
    PracticeEvent,
    RetentionState,
)
from .service import KnowledgeService
from .strategy import StrategySelector

__all__ = [
    "EngineConfig",
    "ItemType",
    "KnowledgeService",
    "KnowledgeStore",
    "KnowledgeUpdateEngine",
    "LearningStrategy",
    "MistakeLogEntry",
    "MistakeType",
    "PracticeEvent",
    "RetentionState",
    "StrategySelector",
    "apply_practice",
]
