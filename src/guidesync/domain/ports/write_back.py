"""Port for executing corrections against the guide."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from guidesync.domain.model import WriteBackRequest
    from guidesync.domain.reconciliation.matching import ReferenceIndex


class WriteBackExecutor(Protocol):
    """Submit one ``WriteBackRequest``; raise ``WriteBackError`` when rejected."""

    async def apply(self, request: WriteBackRequest, index: ReferenceIndex) -> None: ...


__all__ = ["WriteBackExecutor"]
