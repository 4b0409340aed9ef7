"""Ports for reading remote documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from guidesync.domain.model import FetchRequest, RemoteDocument


@runtime_checkable
class DocumentFetcher(Protocol):
    """Resolve a request to a document, raising ``FetchError`` on failure."""

    async def fetch(self, request: FetchRequest) -> RemoteDocument: ...


__all__ = ["DocumentFetcher"]
