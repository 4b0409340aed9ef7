"""In-memory run report and its log rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from guidesync.domain.model import Disposition

if TYPE_CHECKING:
    from guidesync.domain.model import Discrepancy, EntityKind, MatchError, WriteBackRequest

    from .state import FetchFailure, KindRun, ParseFailure, RunState, WriteBackFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KindReport:
    kind: EntityKind
    stage: str
    failed_stage: str | None = None
    error: str | None = None
    reconciled: tuple[str, ...] = ()
    auto: tuple[Discrepancy, ...] = ()
    needs_review: tuple[Discrepancy, ...] = ()
    ignored_count: int = 0
    parse_failures: tuple[ParseFailure, ...] = ()
    fetch_failures: tuple[FetchFailure, ...] = ()
    guide_orphans: tuple[str, ...] = ()
    codex_orphans: tuple[str, ...] = ()
    match_errors: tuple[MatchError, ...] = ()
    applied: tuple[WriteBackRequest, ...] = ()
    write_back_failures: tuple[WriteBackFailure, ...] = ()

    @property
    def discrepancies(self) -> tuple[Discrepancy, ...]:
        """Reported discrepancies; ignored ones are only counted."""

        return (*self.auto, *self.needs_review)

    def summary(self) -> dict[str, int]:
        return {
            "reconciled": len(self.reconciled),
            "auto": len(self.auto),
            "needs_review": len(self.needs_review),
            "ignored": self.ignored_count,
            "parse_failures": len(self.parse_failures),
            "fetch_failures": len(self.fetch_failures),
            "guide_orphans": len(self.guide_orphans),
            "codex_orphans": len(self.codex_orphans),
            "match_errors": len(self.match_errors),
            "applied": len(self.applied),
            "write_back_failures": len(self.write_back_failures),
        }


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    kinds: tuple[KindReport, ...] = ()
    errors: tuple[str, ...] = ()
    fatal_error: str | None = None

    def for_kind(self, kind: EntityKind) -> KindReport:
        for report in self.kinds:
            if report.kind == kind:
                return report
        raise KeyError(kind)

    @property
    def failed_kinds(self) -> tuple[EntityKind, ...]:
        return tuple(report.kind for report in self.kinds if report.failed_stage is not None)

    def summary(self) -> dict[str, int]:
        """Counts summed over every kind."""

        totals: dict[str, int] = {}
        for report in self.kinds:
            for key, count in report.summary().items():
                totals[key] = totals.get(key, 0) + count
        totals["failed_kinds"] = len(self.failed_kinds)
        return totals


def build_report(state: RunState) -> ReconciliationReport:
    return ReconciliationReport(
        kinds=tuple(_kind_report(run) for run in state.kinds.values()),
        errors=tuple(str(error) for error in state.errors),
        fatal_error=None if state.fatal_error is None else repr(state.fatal_error),
    )


def _kind_report(run: KindRun) -> KindReport:
    by_disposition: dict[Disposition | None, list[Discrepancy]] = {}
    for discrepancy in run.discrepancies:
        by_disposition.setdefault(discrepancy.disposition, []).append(discrepancy)
    match = run.match
    return KindReport(
        kind=run.kind,
        stage=str(run.stage),
        failed_stage=None if run.failed_stage is None else str(run.failed_stage),
        error=None if run.error is None else str(run.error),
        reconciled=tuple(run.reconciled),
        auto=tuple(by_disposition.get(Disposition.AUTO, ())),
        # Unclassified discrepancies (classification failed) still need a human.
        needs_review=(
            *by_disposition.get(Disposition.NEEDS_REVIEW, ()),
            *by_disposition.get(None, ()),
        ),
        ignored_count=len(by_disposition.get(Disposition.IGNORED, ())),
        parse_failures=tuple(run.parse_failures),
        fetch_failures=tuple(run.fetch_failures),
        guide_orphans=tuple(match.guide_orphans) if match else (),
        codex_orphans=tuple(match.codex_orphans) if match else (),
        match_errors=tuple(match.errors) if match else (),
        applied=tuple(run.applied),
        write_back_failures=tuple(run.write_back_failures),
    )


def log_report(report: ReconciliationReport, *, logger: logging.Logger | None = None) -> None:
    """Log one summary line per kind, then the items that need attention."""

    out = logger or log
    for kind_report in report.kinds:
        counts = ", ".join(f"{key}={value}" for key, value in kind_report.summary().items())
        if kind_report.failed_stage is not None:
            out.warning(
                "%s: failed while %s (%s); %s",
                kind_report.kind,
                kind_report.failed_stage,
                kind_report.error,
                counts,
            )
        else:
            out.info("%s: %s", kind_report.kind, counts)
        for discrepancy in kind_report.discrepancies:
            out.info(
                "  %s %s.%s: guide=%r codex=%r [%s]",
                discrepancy.disposition or Disposition.NEEDS_REVIEW,
                discrepancy.identifier,
                discrepancy.field,
                discrepancy.guide_value,
                discrepancy.codex_value,
                discrepancy.reason or "",
            )
        for failure in kind_report.parse_failures:
            out.warning(
                "  parse failure %s field=%s: %s", failure.locator, failure.field, failure.error
            )
        for identifier in kind_report.guide_orphans:
            out.info("  only in guide: %s", identifier)
        for identifier in kind_report.codex_orphans:
            out.info("  only in codex: %s", identifier)
    for error in report.errors:
        out.warning("Run error: %s", error)
    if report.fatal_error is not None:
        out.error("Run aborted: %s", report.fatal_error)
    out.info("Summary: %s", report.summary())
