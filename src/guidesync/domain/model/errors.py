"""Error taxonomy for the reconciliation pipeline.

Every error is attributed to the single document, entity or write-back it
concerns so the pipeline can collect it and keep going.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .documents import FetchRequest
    from .records import WriteBackRequest


class GuidesyncError(Exception):
    """Base class for all pipeline errors."""


class FetchError(GuidesyncError):
    """Transport failure or non-success status for one request."""

    def __init__(
        self,
        request: FetchRequest,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(f"{request.method} {request.url}: {message}")
        self.request = request
        self.status_code = status_code
        self.body = body
        self.retryable = retryable


class ParseError(GuidesyncError):
    """A document could not be converted into its declared schema."""

    def __init__(self, field: str, fragment: str, *, locator: str | None = None) -> None:
        where = f" in {locator}" if locator else ""
        super().__init__(f"cannot parse field {field!r}{where}: {fragment!r}")
        self.field = field
        self.fragment = fragment
        self.locator = locator

    def at(self, locator: str) -> ParseError:
        """Return a copy attributed to ``locator`` unless one is already set."""

        if self.locator is not None:
            return self
        return ParseError(self.field, self.fragment, locator=locator)


class MatchError(GuidesyncError):
    def __init__(self, kind: str, identifier: str, reason: str) -> None:
        super().__init__(f"{kind} {identifier}: {reason}")
        self.kind = kind
        self.identifier = identifier
        self.reason = reason


class SchemaError(GuidesyncError):
    """No write-back can be built for this kind or field."""

    def __init__(self, kind: str, field: str | None, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field


class WriteBackError(GuidesyncError):
    """The guide rejected a mutation."""

    def __init__(
        self,
        request: WriteBackRequest,
        reason: str,
        *,
        field_errors: Sequence[str] = (),
    ) -> None:
        details = f" ({'; '.join(field_errors)})" if field_errors else ""
        super().__init__(f"{request.kind} {request.identifier}: {reason}{details}")
        self.request = request
        self.reason = reason
        self.field_errors = tuple(field_errors)
