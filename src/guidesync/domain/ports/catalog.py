"""Ports for discovering and loading the documents of each source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from guidesync.domain.model import EntityKind, NormalizedEntity, RemoteDocument


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """One row of a source's listing: its local id and display label."""

    local_id: str
    label: str


class GuideCatalog(Protocol):
    async def list_entries(self, kind: EntityKind) -> list[CatalogEntry]: ...

    async def load_form(self, kind: EntityKind, local_id: str) -> RemoteDocument: ...

    async def list_metadata(self, kind: EntityKind) -> list[NormalizedEntity]: ...


class CodexCatalog(Protocol):
    async def list_identifiers(self, kind: EntityKind) -> list[str]: ...

    async def load_page(self, identifier: str) -> RemoteDocument: ...


__all__ = ["CatalogEntry", "CodexCatalog", "GuideCatalog"]
