"""Remote read boundary: requests and the documents they yield."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from urllib.parse import urlsplit


@dataclass(frozen=True, slots=True)
class FetchRequest:
    method: str
    url: str
    body: str | None = None
    use_cache: bool = True

    @property
    def identity(self) -> str:
        """Stable cache key derived from method, URL and canonical body."""

        canonical = "\n".join((self.method.upper(), self.url, self.body or ""))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname or ""

    @classmethod
    def get(cls, url: str, *, use_cache: bool = True) -> FetchRequest:
        return cls("GET", url, None, use_cache)


@dataclass(frozen=True, slots=True)
class RemoteDocument:
    request: FetchRequest
    status_code: int
    text: str
    from_cache: bool = False

    @property
    def url(self) -> str:
        return self.request.url
