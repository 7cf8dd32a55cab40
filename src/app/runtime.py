"""Bootstrap logic for embedding the learning engine in an application."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.app.settings import AppSettings
from src.db import get_session_factory, run_migrations_if_needed
from src.db.knowledge import SqlKnowledgeStore
from src.engine import KnowledgeService


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_knowledge_service(
    settings: AppSettings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> KnowledgeService:
    """Prepare the database and return a service bound to it."""
    _configure_logging(settings.log_level)

    if session_factory is None:
        try:
            run_migrations_if_needed()
        except Exception:
            LOGGER.exception("Database migrations failed. Aborting startup.")
            raise
        session_factory = get_session_factory()

    store = SqlKnowledgeStore(session_factory)
    LOGGER.info("Learning engine for %s ready in %s mode.", settings.app_name, settings.app_env)
    return KnowledgeService(store, settings.engine)
