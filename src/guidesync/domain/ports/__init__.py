"""Domain port definitions for adapters."""

from __future__ import annotations

from .cache import CacheBackend, CachedDocument
from .catalog import CatalogEntry, CodexCatalog, GuideCatalog
from .fetching import DocumentFetcher
from .parsing import DocumentParser
from .write_back import WriteBackExecutor

__all__ = [
    "CacheBackend",
    "CachedDocument",
    "CatalogEntry",
    "CodexCatalog",
    "DocumentFetcher",
    "DocumentParser",
    "GuideCatalog",
    "WriteBackExecutor",
]
