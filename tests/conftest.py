from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from guidesync.adapters.cache import CacheStore, MemoryCacheBackend
from guidesync.domain.reconciliation import PolicyTable

if TYPE_CHECKING:
    from collections.abc import Iterator

_ENV_VARS = (
    "GUIDESYNC_GUIDE_URL",
    "GUIDESYNC_CODEX_URL",
    "GUIDESYNC_GUIDE_COOKIE",
    "GUIDESYNC_DATA_DIR",
    "GUIDESYNC_POLICY_PATH",
    "GUIDESYNC_MAX_CONCURRENCY",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_cache() -> Iterator[CacheStore]:
    with CacheStore(MemoryCacheBackend()) as store:
        yield store


@pytest.fixture(scope="session")
def default_policy() -> PolicyTable:
    return PolicyTable.load()
