"""Reconciliation pipeline: phases, state and report."""

from __future__ import annotations

from .context import PipelineContext
from .orchestrator import ReconciliationPipeline
from .phases import (
    ClassifyPhase,
    DiffPhase,
    FetchPhase,
    MatchPhase,
    ParsePhase,
    PipelinePhase,
    ReportPhase,
    WriteBackPhase,
    default_phases,
)
from .report import KindReport, ReconciliationReport, build_report, log_report
from .state import KindRun, PipelineStage, RunState

__all__ = [
    "ClassifyPhase",
    "DiffPhase",
    "FetchPhase",
    "KindReport",
    "KindRun",
    "MatchPhase",
    "ParsePhase",
    "PipelineContext",
    "PipelinePhase",
    "PipelineStage",
    "ReconciliationPipeline",
    "ReconciliationReport",
    "ReportPhase",
    "RunState",
    "WriteBackPhase",
    "build_report",
    "default_phases",
    "log_report",
]
