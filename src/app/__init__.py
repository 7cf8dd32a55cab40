"""Application bootstrap helpers for the learning engine."""

from .runtime import build_knowledge_service
from .settings import AppSettings

__all__ = ["build_knowledge_service", "AppSettings"]
