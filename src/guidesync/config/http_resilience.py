"""Configuration types for resilient HTTP clients."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_REPLAY_HOSTS = frozenset({"localhost", "127.0.0.1"})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Caller-side retry policy for retryable fetch failures.

    The fetcher itself never retries; the pipeline consults this policy when a
    ``FetchError`` is flagged as retryable.
    """

    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 60.0
    backoff_jitter: float = 1.0
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )

    def backoff(self, attempt: int) -> float:
        """Return the wait in seconds before retry number ``attempt`` (1-based)."""

        if attempt < 1 or self.backoff_factor <= 0:
            return 0.0
        wait = self.backoff_factor * (2 ** (attempt - 1))
        if self.backoff_jitter > 0:
            wait += random.uniform(0, self.backoff_jitter)  # noqa: S311
        return min(wait, self.max_backoff_wait)


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    enabled: bool = True
    backend: Literal["sqlite", "memory"] = "sqlite"
    sqlite_path: str | None = None
    replay_hosts: frozenset[str] = DEFAULT_REPLAY_HOSTS


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    ratelimit: RateLimit | None = None
    default_headers: Mapping[str, str] | None = None
