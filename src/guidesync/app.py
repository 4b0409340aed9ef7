"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from guidesync.adapters.cache import open_cache
from guidesync.adapters.codex import CODEX_PARSERS, CodexCatalogClient
from guidesync.adapters.fetcher import CachedFetcher
from guidesync.adapters.guide import GUIDE_PARSERS, GuideAdminClient, GuideCatalogClient
from guidesync.adapters.http_resilience import ResilientClient
from guidesync.config import (
    CacheConfig,
    get_codex_config,
    get_guide_config,
    get_pipeline_config,
    get_storage_config,
)
from guidesync.domain.model import ENTITY_KINDS, METADATA_KINDS, EntityKind
from guidesync.domain.pipeline import PipelineContext, ReconciliationPipeline
from guidesync.domain.reconciliation import PolicyTable

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    import httpx

    from guidesync.adapters.cache import CacheStore
    from guidesync.config import CodexConfig, GuideConfig, PipelineConfig, StorageConfig
    from guidesync.domain.pipeline import ReconciliationReport
    from guidesync.domain.reconciliation import PolicyRow


log = getLogger(__name__)

ALL_KINDS: tuple[EntityKind, ...] = (*ENTITY_KINDS, *sorted(METADATA_KINDS))


def parse_kinds(names: Iterable[str] | None) -> tuple[EntityKind, ...]:
    """``None`` or an empty selection means every kind."""

    if not names:
        return ALL_KINDS
    kinds: list[EntityKind] = []
    for name in names:
        try:
            kind = EntityKind(name.strip().lower())
        except ValueError:
            choices = ", ".join(ALL_KINDS)
            raise ValueError(f"Unknown kind {name!r} (choose from {choices})") from None
        if kind not in kinds:
            kinds.append(kind)
    return tuple(kinds)


def load_policy(path: Path | None = None) -> PolicyTable:
    effective = path if path is not None else get_pipeline_config().policy_path
    return PolicyTable.load(effective)


def describe_policy(path: Path | None = None) -> list[PolicyRow]:
    return list(load_policy(path).describe())


def clear_cache(
    *,
    prefix: str | None = None,
    storage: StorageConfig | None = None,
    cache: CacheConfig | None = None,
) -> int:
    """Drop cached documents, all of them or those whose URL starts with ``prefix``."""

    storage_config = storage or get_storage_config()
    with open_cache(
        cache or CacheConfig(), default_path=str(storage_config.cache_path())
    ) as store:
        if prefix:
            count = store.invalidate_prefix(prefix)
            log.info("Invalidated %d cached documents under %s", count, prefix)
            return count
        return store.clear()


def run_reconciliation(
    *,
    kinds: Iterable[str] | None = None,
    apply_write_backs: bool = False,
    guide: GuideConfig | None = None,
    codex: CodexConfig | None = None,
    storage: StorageConfig | None = None,
    pipeline: PipelineConfig | None = None,
    cache: CacheConfig | None = None,
    guide_transport: httpx.AsyncBaseTransport | None = None,
    codex_transport: httpx.AsyncBaseTransport | None = None,
) -> ReconciliationReport:
    """Reconcile the guide against the codex using the configured adapters."""

    if kinds is None and pipeline is not None:
        kinds = pipeline.kinds
    selected = parse_kinds(kinds)
    pipeline_config = pipeline or get_pipeline_config(
        apply_write_backs=apply_write_backs, kinds=tuple(selected)
    )
    policy = PolicyTable.load(pipeline_config.policy_path)
    guide_config = guide or get_guide_config()
    codex_config = codex or get_codex_config()
    storage_config = storage or get_storage_config()
    cache_config = cache or CacheConfig()

    log.info(
        "Starting reconciliation: kinds=%s, apply_write_backs=%s, policy=%s",
        ",".join(selected),
        pipeline_config.apply_write_backs,
        policy.source,
    )
    return asyncio.run(
        _reconcile(
            selected,
            policy=policy,
            guide_config=guide_config,
            codex_config=codex_config,
            pipeline_config=pipeline_config,
            cache_config=cache_config,
            cache_path=(
                str(storage_config.cache_path()) if cache_config.backend == "sqlite" else None
            ),
            guide_transport=guide_transport,
            codex_transport=codex_transport,
        )
    )


async def _reconcile(
    kinds: tuple[EntityKind, ...],
    *,
    policy: PolicyTable,
    guide_config: GuideConfig,
    codex_config: CodexConfig,
    pipeline_config: PipelineConfig,
    cache_config: CacheConfig,
    cache_path: str | None,
    guide_transport: httpx.AsyncBaseTransport | None,
    codex_transport: httpx.AsyncBaseTransport | None,
) -> ReconciliationReport:
    cache = open_cache(cache_config, default_path=cache_path) if cache_config.enabled else None
    try:
        async with (
            ResilientClient(guide_config.resilience, transport=guide_transport) as guide_client,
            ResilientClient(codex_config.resilience, transport=codex_transport) as codex_client,
        ):
            guide_fetcher = _fetcher(guide_client, cache, pipeline_config, cache_config)
            codex_fetcher = _fetcher(codex_client, cache, pipeline_config, cache_config)
            guide_catalog = GuideCatalogClient(guide_fetcher, guide_config.base_url)

            context = PipelineContext(
                guide=guide_catalog,
                codex=CodexCatalogClient(codex_fetcher, codex_config.base_url),
                guide_parsers=GUIDE_PARSERS,
                codex_parsers=CODEX_PARSERS,
                policy=policy,
                executor=GuideAdminClient(guide_client, guide_fetcher, guide_catalog),
                apply_write_backs=pipeline_config.apply_write_backs,
                max_concurrency=pipeline_config.max_concurrency,
                retry=pipeline_config.retry,
            )
            state = await ReconciliationPipeline().run(kinds, context=context)
    finally:
        if cache is not None:
            cache.close()

    if state.report is None:
        raise RuntimeError("the pipeline finished without a report")
    return state.report


def _fetcher(
    client: ResilientClient,
    cache: CacheStore | None,
    pipeline_config: PipelineConfig,
    cache_config: CacheConfig,
) -> CachedFetcher:
    return CachedFetcher(
        client,
        cache,
        max_concurrency=pipeline_config.max_concurrency,
        replay_hosts=cache_config.replay_hosts,
        retryable_statuses=pipeline_config.retry.status_forcelist,
    )
