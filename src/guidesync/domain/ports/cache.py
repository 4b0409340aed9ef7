"""Port for the persistent document cache."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class CachedDocument:
    identity: str
    method: str
    url: str
    status_code: int
    text: str


@runtime_checkable
class CacheBackend(Protocol):
    """Key-value store from request identity to document body.

    ``put`` must not overwrite an existing entry unless ``replace`` is set:
    otherwise the first writer wins.
    """

    def get(self, identity: str) -> CachedDocument | None: ...

    def put(self, document: CachedDocument, *, replace: bool = False) -> bool: ...

    def delete(self, identity: str) -> int: ...

    def delete_prefix(self, url_prefix: str) -> int: ...

    def clear(self) -> int: ...

    def close(self) -> None: ...


__all__ = ["CacheBackend", "CachedDocument"]
