"""Collaborators shared by every phase of a reconciliation run."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from guidesync.config.http_resilience import RetryPolicy
from guidesync.domain.model import FetchError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from guidesync.domain.model import EntityKind
    from guidesync.domain.ports import (
        CodexCatalog,
        DocumentParser,
        GuideCatalog,
        WriteBackExecutor,
    )
    from guidesync.domain.reconciliation import PolicyTable

log = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True, kw_only=True)
class PipelineContext:
    guide: GuideCatalog
    codex: CodexCatalog
    guide_parsers: Mapping[EntityKind, DocumentParser]
    codex_parsers: Mapping[EntityKind, DocumentParser]
    policy: PolicyTable
    executor: WriteBackExecutor | None = None
    apply_write_backs: bool = False
    max_concurrency: int = 8
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Sleep = asyncio.sleep

    async def with_retries[T](self, func: Callable[[], Awaitable[T]], *, what: str) -> T:
        """Await ``func``, retrying retryable ``FetchError``s per ``self.retry``."""

        attempt = 0
        while True:
            try:
                return await func()
            except FetchError as exc:
                attempt += 1
                if not exc.retryable or attempt > self.retry.total:
                    raise
                wait = self.retry.backoff(attempt)
                log.warning(
                    "Retrying %s (attempt %d/%d) in %.1fs: %s",
                    what,
                    attempt,
                    self.retry.total,
                    wait,
                    exc,
                )
                await self.sleep(wait)
