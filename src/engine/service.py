"""High-level entry points combining the store with the engine components."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from src.engine.config import DEFAULT_CONFIG, EngineConfig
from src.engine.knowledge import KnowledgeStore, KnowledgeUpdateEngine
from src.engine.models import ItemType, MistakeLogEntry, PracticeEvent, RetentionState
from src.engine.pronunciation import PronunciationRecord, derive_phonetic_targets
from src.engine.review_queue import ReviewQueueItem, build_review_queue, default_queue_size
from src.engine.snapshot import BookProgressSnapshot, KnowledgeSnapshot
from src.engine.strategy import StrategyRecommendation, StrategySelector
from src.engine.summary import build_knowledge_snapshot
from src.engine.weak_points import WeakPoint, detect_weak_points


LOGGER = logging.getLogger(__name__)


class KnowledgeService:
    """Reads fresh data from the store for every call; nothing is cached."""

    def __init__(self, store: KnowledgeStore, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self._store = store
        self._config = config
        self._updates = KnowledgeUpdateEngine(store, config)
        self.selector = StrategySelector(config.strategy)

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def record_practice(
        self, event: PracticeEvent, now: Optional[datetime] = None
    ) -> RetentionState:
        return await self._updates.record_practice(event, now=now)

    async def log_mistake(self, entry: MistakeLogEntry, now: Optional[datetime] = None) -> None:
        await self._updates.log_mistake(entry, now=now)

    async def record_pronunciation(
        self, record: PronunciationRecord, now: Optional[datetime] = None
    ) -> None:
        """Store one pronunciation attempt; scores are clamped to [0, 1]."""
        record = replace(
            record,
            score=max(0.0, min(1.0, record.score)),
            recorded_at=record.recorded_at or now or datetime.now(timezone.utc),
        )
        await self._store.add_pronunciation_record(record)

    async def get_review_queue(
        self,
        learner_id: str,
        item_type: ItemType,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[ReviewQueueItem]:
        """Due items of one type, most urgent first."""
        if now is None:
            now = datetime.now(timezone.utc)
        if limit is None:
            limit = default_queue_size(item_type, self._config.review_queue)

        due = await self._store.list_retention_states(learner_id, item_type, due_before=now)
        queue = build_review_queue(due, limit=limit, now=now, config=self._config.review_queue)
        LOGGER.debug(
            "Built %s review queue for learner %s: %s of %s due items.",
            item_type.value,
            learner_id,
            len(queue),
            len(due),
        )
        return queue

    async def get_weak_points(
        self, learner_id: str, limit: Optional[int] = None
    ) -> list[WeakPoint]:
        weak_cfg = self._config.weak_points
        words = await self._store.list_retention_states(learner_id, ItemType.WORD)
        rules = await self._store.list_retention_states(learner_id, ItemType.RULE)
        records = await self._store.list_pronunciation_records(
            learner_id, self._config.pronunciation.recent_records_window
        )
        mistakes = await self._store.list_recent_mistakes(
            learner_id, weak_cfg.recent_mistakes_window
        )
        return detect_weak_points(
            words,
            rules,
            derive_phonetic_targets(records, self._config.pronunciation),
            mistakes,
            limit=limit,
            config=weak_cfg,
        )

    async def build_snapshot(
        self,
        learner_id: str,
        book_progress: Optional[BookProgressSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> KnowledgeSnapshot:
        """Assemble a fresh knowledge snapshot including the recommendation."""
        words = await self._store.list_retention_states(learner_id, ItemType.WORD)
        rules = await self._store.list_retention_states(learner_id, ItemType.RULE)
        records = await self._store.list_pronunciation_records(
            learner_id, self._config.pronunciation.recent_records_window
        )
        mistakes = await self._store.list_recent_mistakes(
            learner_id, self._config.weak_points.recent_mistakes_window
        )
        snapshot = build_knowledge_snapshot(
            words,
            rules,
            records,
            mistakes,
            book_progress=book_progress,
            now=now,
            config=self._config,
            selector=self.selector,
        )
        LOGGER.info(
            "Knowledge snapshot for learner %s: %s words, %s rules, %s weak points.",
            learner_id,
            snapshot.vocabulary.total_words,
            snapshot.grammar.total_rules,
            len(snapshot.weak_points),
        )
        return snapshot

    async def recommend_strategy(
        self,
        learner_id: str,
        book_progress: Optional[BookProgressSnapshot] = None,
        now: Optional[datetime] = None,
    ) -> StrategyRecommendation:
        snapshot = await self.build_snapshot(learner_id, book_progress, now=now)
        return self.selector.recommend(snapshot)
