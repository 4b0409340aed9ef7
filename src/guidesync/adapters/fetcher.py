"""Cache-first document fetcher."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx
from sqlalchemy.exc import SQLAlchemyError

from guidesync.config.http_resilience import DEFAULT_REPLAY_HOSTS, RetryPolicy
from guidesync.domain.model import FetchError, RemoteDocument
from guidesync.domain.ports.cache import CachedDocument

if TYPE_CHECKING:
    from collections.abc import Mapping

    from guidesync.domain.model import FetchRequest

    from .cache import CacheStore
    from .http_resilience import ResilientClient

log = logging.getLogger(__name__)


class CachedFetcher:
    """Serve documents from the cache, fetching and storing them on a miss.

    Concurrent fetches of the same identity are serialized so only the first
    one hits the network; the per-identity lock is dropped once nobody waits
    on it. Requests to replay hosts bypass the cache entirely.
    ``use_cache=False`` skips the cache read and replaces the stored entry.
    The fetcher never retries: callers decide based on ``FetchError.retryable``.
    """

    def __init__(
        self,
        client: ResilientClient,
        cache: CacheStore | None = None,
        *,
        max_concurrency: int = 8,
        replay_hosts: frozenset[str] = DEFAULT_REPLAY_HOSTS,
        retryable_statuses: frozenset[int] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiting: dict[str, int] = {}
        self._replay_hosts = replay_hosts
        self._retryable_statuses = (
            retryable_statuses
            if retryable_statuses is not None
            else RetryPolicy().status_forcelist
        )
        self._headers = dict(headers) if headers else None
        self.network_calls = 0

    @property
    def cache(self) -> CacheStore | None:
        return self._cache

    def is_cacheable(self, request: FetchRequest) -> bool:
        return self._cache is not None and request.host not in self._replay_hosts

    async def fetch(self, request: FetchRequest) -> RemoteDocument:
        if not self.is_cacheable(request):
            return await self._fetch_network(request)

        identity = request.identity
        lock = self._locks.setdefault(identity, asyncio.Lock())
        self._waiting[identity] = self._waiting.get(identity, 0) + 1
        try:
            async with lock:
                if request.use_cache:
                    cached = self._read_cache(identity)
                    if cached is not None:
                        return RemoteDocument(
                            request, cached.status_code, cached.text, from_cache=True
                        )
                document = await self._fetch_network(request)
                self._write_cache(request, document)
                return document
        finally:
            self._release(identity)

    def _release(self, identity: str) -> None:
        remaining = self._waiting[identity] - 1
        if remaining:
            self._waiting[identity] = remaining
            return
        del self._waiting[identity]
        del self._locks[identity]

    def invalidate(self, request: FetchRequest) -> None:
        if self._cache is not None:
            self._cache.invalidate(request.identity)

    async def _fetch_network(self, request: FetchRequest) -> RemoteDocument:
        async with self._semaphore:
            self.network_calls += 1
            try:
                response = await self._client.request(
                    request.method,
                    request.url,
                    content=request.body,
                    headers=self._headers_for(request),
                )
            except httpx.TimeoutException as exc:
                raise FetchError(request, f"timed out: {exc}", retryable=True) from exc
            except httpx.TransportError as exc:
                raise FetchError(request, f"transport failure: {exc}", retryable=True) from exc

        if not response.is_success:
            raise FetchError(
                request,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
                retryable=response.status_code in self._retryable_statuses,
            )
        log.debug("Fetched %s %s (%d)", request.method, request.url, response.status_code)
        return RemoteDocument(request, response.status_code, response.text)

    def _headers_for(self, request: FetchRequest) -> dict[str, str] | None:
        if request.body is None:
            return self._headers
        return {
            **(self._headers or {}),
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def _read_cache(self, identity: str) -> CachedDocument | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(identity)
        except SQLAlchemyError as exc:
            log.warning("Cache read failed for %s: %s", identity, exc)
            return None

    def _write_cache(self, request: FetchRequest, document: RemoteDocument) -> None:
        if self._cache is None:
            return
        try:
            self._cache.put(
                CachedDocument(
                    identity=request.identity,
                    method=request.method.upper(),
                    url=request.url,
                    status_code=document.status_code,
                    text=document.text,
                ),
                replace=not request.use_cache,
            )
        except (SQLAlchemyError, OSError) as exc:
            log.warning("Cache write failed for %s: %s", request.url, exc)
