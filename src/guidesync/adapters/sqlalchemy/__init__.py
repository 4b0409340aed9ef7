"""SQLAlchemy adapter package for guidesync."""

from __future__ import annotations

from .cache_backend import SqlAlchemyCacheBackend, document_table, metadata

__all__ = ["SqlAlchemyCacheBackend", "document_table", "metadata"]
