"""Retrieval components."""

from .service import ContextManager, RetrievalConfig

__all__ = ["ContextManager", "RetrievalConfig"]
