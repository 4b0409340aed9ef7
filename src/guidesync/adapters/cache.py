"""Document cache store with an injectable backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from guidesync.adapters.sqlalchemy import SqlAlchemyCacheBackend

if TYPE_CHECKING:
    from types import TracebackType

    from guidesync.config.http_resilience import CacheConfig
    from guidesync.domain.ports.cache import CacheBackend, CachedDocument

log = logging.getLogger(__name__)


class MemoryCacheBackend:
    """Dict-backed cache used by tests and ``backend = "memory"``."""

    def __init__(self) -> None:
        self._documents: dict[str, CachedDocument] = {}
        self.closed = False

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, identity: str) -> CachedDocument | None:
        return self._documents.get(identity)

    def put(self, document: CachedDocument, *, replace: bool = False) -> bool:
        if document.identity in self._documents and not replace:
            return False
        self._documents[document.identity] = document
        return True

    def delete(self, identity: str) -> int:
        return 1 if self._documents.pop(identity, None) is not None else 0

    def delete_prefix(self, url_prefix: str) -> int:
        doomed = [key for key, doc in self._documents.items() if doc.url.startswith(url_prefix)]
        for key in doomed:
            del self._documents[key]
        return len(doomed)

    def clear(self) -> int:
        count = len(self._documents)
        self._documents.clear()
        return count

    def close(self) -> None:
        self.closed = True


class CacheStore:
    """Explicit cache object, opened at run start and closed at run end."""

    def __init__(self, backend: CacheBackend) -> None:
        self._backend = backend
        self._closed = False

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def get(self, identity: str) -> CachedDocument | None:
        return self._backend.get(identity)

    def put(self, document: CachedDocument, *, replace: bool = False) -> bool:
        return self._backend.put(document, replace=replace)

    def invalidate(self, identity: str) -> int:
        return self._backend.delete(identity)

    def invalidate_prefix(self, url_prefix: str) -> int:
        return self._backend.delete_prefix(url_prefix)

    def clear(self) -> int:
        count = self._backend.clear()
        log.info("Cleared %d cached documents", count)
        return count

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._backend.close()


def open_cache(config: CacheConfig, *, default_path: str | None = None) -> CacheStore:
    """Build a ``CacheStore`` for ``config``; SQLite needs a path."""

    if config.backend == "memory":
        return CacheStore(MemoryCacheBackend())
    if config.backend != "sqlite":
        raise ValueError(f"Unsupported cache backend: {config.backend}")

    path = config.sqlite_path or default_path
    if path is None:
        raise ValueError("SQLite cache backend needs a path")
    return CacheStore(SqlAlchemyCacheBackend(database_uri=f"sqlite+pysqlite:///{path}"))
