"""Port for per-kind, per-dialect document parsers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from guidesync.domain.model import EntityKind, NormalizedEntity, Origin, RemoteDocument


@runtime_checkable
class DocumentParser(Protocol):
    """Pure conversion of one document into one normalized record.

    Implementations raise ``ParseError`` naming the offending field.
    """

    kind: EntityKind
    origin: Origin

    def parse(self, document: RemoteDocument) -> NormalizedEntity: ...


__all__ = ["DocumentParser"]
