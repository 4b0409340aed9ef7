"""Mutable per-run state threaded through the pipeline phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from guidesync.domain.model import (
        Discrepancy,
        EntityKind,
        FetchError,
        GuidesyncError,
        NormalizedEntity,
        ParseError,
        RemoteDocument,
        WriteBackRequest,
    )
    from guidesync.domain.reconciliation import MatchResult, ReferenceIndex

    from .report import ReconciliationReport


class PipelineStage(StrEnum):
    PENDING = "pending"
    FETCHING = "fetching"
    PARSING = "parsing"
    MATCHING = "matching"
    DIFFING = "diffing"
    CLASSIFYING = "classifying"
    APPLYING_WRITE_BACKS = "applying_write_backs"
    REPORTING = "reporting"


@dataclass(frozen=True, slots=True)
class FetchFailure:
    locator: str
    error: FetchError


@dataclass(frozen=True, slots=True)
class ParseFailure:
    locator: str
    field: str
    error: ParseError


@dataclass(frozen=True, slots=True)
class WriteBackFailure:
    kind: EntityKind
    identifier: str
    field: str | None
    error: GuidesyncError


@dataclass(slots=True)
class KindRun:
    """Everything one kind accumulates on its way through the stages."""

    kind: EntityKind
    stage: PipelineStage = PipelineStage.PENDING
    failed_stage: PipelineStage | None = None
    error: BaseException | None = None

    guide_documents: list[RemoteDocument] = field(default_factory=list["RemoteDocument"])
    codex_documents: list[RemoteDocument] = field(default_factory=list["RemoteDocument"])
    guide_records: list[NormalizedEntity] = field(default_factory=list["NormalizedEntity"])
    codex_records: list[NormalizedEntity] = field(default_factory=list["NormalizedEntity"])
    fetch_failures: list[FetchFailure] = field(default_factory=list[FetchFailure])
    parse_failures: list[ParseFailure] = field(default_factory=list[ParseFailure])
    match: MatchResult | None = None
    discrepancies: list[Discrepancy] = field(default_factory=list["Discrepancy"])
    reconciled: list[str] = field(default_factory=list[str])
    applied: list[WriteBackRequest] = field(default_factory=list["WriteBackRequest"])
    write_back_failures: list[WriteBackFailure] = field(default_factory=list[WriteBackFailure])

    @property
    def failed(self) -> bool:
        return self.failed_stage is not None

    def fail(self, stage: PipelineStage, error: BaseException) -> None:
        self.failed_stage = stage
        self.error = error


@dataclass(slots=True)
class RunState:
    kinds: dict[EntityKind, KindRun] = field(default_factory=dict["EntityKind", KindRun])
    guide_metadata: dict[EntityKind, list[NormalizedEntity]] = field(
        default_factory=dict["EntityKind", list["NormalizedEntity"]]
    )
    codex_metadata: dict[EntityKind, list[NormalizedEntity]] = field(
        default_factory=dict["EntityKind", list["NormalizedEntity"]]
    )
    index: ReferenceIndex | None = None
    errors: list[GuidesyncError] = field(default_factory=list["GuidesyncError"])
    fatal_error: BaseException | None = None
    report: ReconciliationReport | None = None

    @classmethod
    def for_kinds(cls, kinds: Iterable[EntityKind]) -> RunState:
        return cls(kinds={kind: KindRun(kind) for kind in kinds})

    def active(self) -> Iterator[KindRun]:
        """Kind runs that have not failed, in insertion order."""

        return (run for run in list(self.kinds.values()) if not run.failed)
