"""Pipeline phases: fetch, parse, match, diff, classify, write back, report.

Each phase walks the kinds that are still active and isolates failures per
kind: a kind whose stage raised is marked failed and skipped afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from guidesync.domain.model import (
    METADATA_KINDS,
    Disposition,
    EntityKind,
    FetchError,
    GuidesyncError,
    ParseError,
    SchemaError,
    WriteBackError,
)
from guidesync.domain.reconciliation import (
    ReferenceIndex,
    attach_dropped_by,
    build_write_back,
    classify_all,
    derive_codex_metadata,
    diff,
    match,
    resolve_references,
)

from .report import build_report, log_report
from .state import FetchFailure, ParseFailure, PipelineStage, WriteBackFailure

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from guidesync.domain.model import (
        FieldValue,
        NormalizedEntity,
        RemoteDocument,
        WriteBackRequest,
    )
    from guidesync.domain.ports import DocumentParser, WriteBackExecutor

    from .context import PipelineContext
    from .state import KindRun, RunState

log = logging.getLogger(__name__)


class PipelinePhase(Protocol):
    """Contract implemented by each reconciliation phase."""

    name: PipelineStage

    async def run(self, state: RunState, *, context: PipelineContext) -> None: ...


async def for_each_kind(
    state: RunState,
    stage: PipelineStage,
    func: Callable[[KindRun], Awaitable[None]],
) -> None:
    """Run ``func`` for every active kind, recording failures on the kind."""

    for run in state.active():
        run.stage = stage
        try:
            await func(run)
        except GuidesyncError as exc:
            log.warning("%s failed while %s: %s", run.kind, stage, exc)
            run.fail(stage, exc)
        except Exception as exc:
            log.exception("%s failed while %s", run.kind, stage)
            run.fail(stage, exc)


@dataclass(slots=True)
class FetchPhase:
    name: PipelineStage = PipelineStage.FETCHING

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        await self._fetch_guide_metadata(state, context)

        async def fetch_kind(run: KindRun) -> None:
            if run.kind in METADATA_KINDS:
                return
            kind = run.kind
            entries = await context.with_retries(
                lambda: context.guide.list_entries(kind), what=f"guide {kind} list"
            )
            identifiers = await context.with_retries(
                lambda: context.codex.list_identifiers(kind), what=f"codex {kind} list"
            )
            log.info(
                "Fetching %d guide and %d codex %s documents",
                len(entries),
                len(identifiers),
                kind,
            )
            guide_documents = await asyncio.gather(
                *(
                    _load(
                        run,
                        context,
                        f"guide {kind} {entry.local_id}",
                        _bind(context.guide.load_form, kind, entry.local_id),
                    )
                    for entry in entries
                )
            )
            codex_documents = await asyncio.gather(
                *(
                    _load(
                        run,
                        context,
                        f"codex {identifier}",
                        _bind(context.codex.load_page, identifier),
                    )
                    for identifier in identifiers
                )
            )
            run.guide_documents = [doc for doc in guide_documents if doc is not None]
            run.codex_documents = [doc for doc in codex_documents if doc is not None]

        await for_each_kind(state, self.name, fetch_kind)

    async def _fetch_guide_metadata(self, state: RunState, context: PipelineContext) -> None:
        for kind in sorted(METADATA_KINDS):
            try:
                records = await context.with_retries(
                    _bind(context.guide.list_metadata, kind), what=f"guide {kind} list"
                )
            except GuidesyncError as exc:
                log.warning("Cannot list guide %s metadata: %s", kind, exc)
                state.errors.append(exc)
                if kind in state.kinds:
                    state.kinds[kind].fail(self.name, exc)
                continue
            state.guide_metadata[kind] = records


@dataclass(slots=True)
class ParsePhase:
    name: PipelineStage = PipelineStage.PARSING

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        async def parse_kind(run: KindRun) -> None:
            if run.kind in METADATA_KINDS:
                run.guide_records = list(state.guide_metadata.get(run.kind, ()))
                return
            run.guide_records = _parse_all(
                run, context.guide_parsers[run.kind], run.guide_documents
            )
            run.codex_records = _parse_all(
                run, context.codex_parsers[run.kind], run.codex_documents
            )
            log.info(
                "Parsed %d guide and %d codex %s records (%d failures)",
                len(run.guide_records),
                len(run.codex_records),
                run.kind,
                len(run.parse_failures),
            )

        await for_each_kind(state, self.name, parse_kind)


@dataclass(slots=True)
class MatchPhase:
    name: PipelineStage = PipelineStage.MATCHING

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        guide_records = [
            record
            for run in state.kinds.values()
            if run.kind not in METADATA_KINDS
            for record in run.guide_records
        ]
        metadata = [record for records in state.guide_metadata.values() for record in records]
        state.index = index = ReferenceIndex.build(guide_records, metadata)
        state.codex_metadata = derive_codex_metadata(
            record
            for run in state.kinds.values()
            if run.kind not in METADATA_KINDS
            for record in run.codex_records
        )

        async def match_kind(run: KindRun) -> None:
            if run.kind in METADATA_KINDS:
                run.codex_records = list(state.codex_metadata.get(run.kind, ()))
            else:
                run.guide_records = [
                    resolve_references(record, index) for record in run.guide_records
                ]
            monsters = state.kinds.get(EntityKind.MONSTER)
            if run.kind is EntityKind.ITEM and monsters is not None and not monsters.failed:
                run.guide_records = attach_dropped_by(
                    run.guide_records,
                    (resolve_references(record, index) for record in monsters.guide_records),
                )
            result = match(run.kind, run.guide_records, run.codex_records, policy=context.policy)
            if run.kind in METADATA_KINDS:
                # Codex metadata only covers what fetched pages reference.
                result.guide_orphans = []
            for error in result.errors:
                log.warning("Match error: %s", error)
            run.match = result
            log.info(
                "Matched %d %s pairs (%d guide orphans, %d codex orphans)",
                len(result.pairs),
                run.kind,
                len(result.guide_orphans),
                len(result.codex_orphans),
            )

        await for_each_kind(state, self.name, match_kind)


@dataclass(slots=True)
class DiffPhase:
    name: PipelineStage = PipelineStage.DIFFING

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        del context

        async def diff_kind(run: KindRun) -> None:
            if run.match is None:
                return
            for pair in run.match.pairs:
                found = diff(pair)
                if found:
                    run.discrepancies.extend(found)
                else:
                    run.reconciled.append(pair.identifier)

        await for_each_kind(state, self.name, diff_kind)


@dataclass(slots=True)
class ClassifyPhase:
    name: PipelineStage = PipelineStage.CLASSIFYING

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        async def classify_kind(run: KindRun) -> None:
            run.discrepancies = classify_all(run.discrepancies, context.policy)

        await for_each_kind(state, self.name, classify_kind)


@dataclass(slots=True)
class WriteBackPhase:
    """Apply auto-correctable discrepancies, one entity at a time.

    Requests for one entity run sequentially under that entity's lock;
    different entities run concurrently up to ``max_concurrency``.
    """

    name: PipelineStage = PipelineStage.APPLYING_WRITE_BACKS
    _locks: dict[tuple[EntityKind, str], asyncio.Lock] = field(default_factory=dict)

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        executor = context.executor
        if not context.apply_write_backs or executor is None:
            log.info("Dry run: no write-backs applied")
            return
        index = state.index or ReferenceIndex()
        semaphore = asyncio.Semaphore(context.max_concurrency)

        async def apply_kind(run: KindRun) -> None:
            if run.match is None:
                return
            guides = {pair.identifier: pair.guide for pair in run.match.pairs}
            auto = [d for d in run.discrepancies if d.disposition is Disposition.AUTO]
            corrections: dict[str, dict[str, FieldValue]] = defaultdict(dict)
            for discrepancy in auto:
                corrections[discrepancy.identifier][discrepancy.field] = discrepancy.codex_value

            requests: dict[str, list[WriteBackRequest]] = defaultdict(list)
            for discrepancy in auto:
                try:
                    request = build_write_back(
                        discrepancy,
                        guides[discrepancy.identifier],
                        context.policy.mutations,
                        corrections=corrections[discrepancy.identifier],
                    )
                except SchemaError as exc:
                    log.warning("Cannot build write-back: %s", exc)
                    run.write_back_failures.append(
                        WriteBackFailure(run.kind, discrepancy.identifier, exc.field, exc)
                    )
                    continue
                requests[discrepancy.identifier].append(request)

            async def apply_entity(identifier: str, batch: list[WriteBackRequest]) -> None:
                async with semaphore, self._lock(run.kind, identifier):
                    for request in batch:
                        await self._apply(run, executor, request, index)

            await asyncio.gather(
                *(apply_entity(identifier, batch) for identifier, batch in requests.items())
            )

        await for_each_kind(state, self.name, apply_kind)

    def _lock(self, kind: EntityKind, identifier: str) -> asyncio.Lock:
        key = (kind, identifier)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def _apply(
        self,
        run: KindRun,
        executor: WriteBackExecutor,
        request: WriteBackRequest,
        index: ReferenceIndex,
    ) -> None:
        try:
            await executor.apply(request, index)
        except (WriteBackError, FetchError, ParseError) as exc:
            log.warning("Write-back failed: %s", exc)
            run.write_back_failures.append(
                WriteBackFailure(request.kind, request.identifier, request.field, exc)
            )
            return
        log.info("Corrected %s %s.%s", request.kind, request.identifier, request.field)
        run.applied.append(request)


@dataclass(slots=True)
class ReportPhase:
    name: PipelineStage = PipelineStage.REPORTING

    async def run(self, state: RunState, *, context: PipelineContext) -> None:
        del context
        for run in state.kinds.values():
            if not run.failed:
                run.stage = self.name
        state.report = build_report(state)
        log_report(state.report)


def default_phases() -> tuple[PipelinePhase, ...]:
    return (
        FetchPhase(),
        ParsePhase(),
        MatchPhase(),
        DiffPhase(),
        ClassifyPhase(),
        WriteBackPhase(),
    )


def _bind[**P, T](
    func: Callable[P, Awaitable[T]], *args: P.args, **kwargs: P.kwargs
) -> Callable[[], Awaitable[T]]:
    def call() -> Awaitable[T]:
        return func(*args, **kwargs)

    return call


async def _load(
    run: KindRun,
    context: PipelineContext,
    locator: str,
    func: Callable[[], Awaitable[RemoteDocument]],
) -> RemoteDocument | None:
    try:
        return await context.with_retries(func, what=locator)
    except FetchError as exc:
        log.warning("Cannot fetch %s: %s", locator, exc)
        run.fetch_failures.append(FetchFailure(locator, exc))
        return None


def _parse_all(
    run: KindRun,
    parser: DocumentParser,
    documents: list[RemoteDocument],
) -> list[NormalizedEntity]:
    records: list[NormalizedEntity] = []
    for document in documents:
        try:
            records.append(parser.parse(document))
        except ParseError as exc:
            located = exc.at(document.url)
            log.warning("Cannot parse %s: %s", document.url, located)
            run.parse_failures.append(ParseFailure(document.url, located.field, located))
    return records
