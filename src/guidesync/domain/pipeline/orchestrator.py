"""Phase-based orchestrator for the reconciliation pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .phases import PipelinePhase, ReportPhase, default_phases
from .state import RunState

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from guidesync.domain.model import EntityKind

    from .context import PipelineContext

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationPipeline:
    """Compose and execute the ordered pipeline phases.

    The reporting phase runs last and always runs: when a phase raises, the
    error is recorded on the state, the remaining phases are skipped and the
    report reflects whatever succeeded.
    """

    phases: Sequence[PipelinePhase] = field(default_factory=default_phases)
    report_phase: PipelinePhase = field(default_factory=ReportPhase)

    def with_phase(self, phase: PipelinePhase) -> ReconciliationPipeline:
        """Return a new pipeline appending ``phase`` before reporting."""

        return ReconciliationPipeline(phases=(*self.phases, phase), report_phase=self.report_phase)

    async def run(
        self,
        kinds: Iterable[EntityKind],
        *,
        context: PipelineContext,
    ) -> RunState:
        state = RunState.for_kinds(kinds)
        try:
            for phase in self.phases:
                log.info("Pipeline phase: %s", phase.name)
                await phase.run(state, context=context)
        except Exception as exc:
            log.exception("Pipeline aborted during a phase")
            state.fatal_error = exc
        finally:
            await self.report_phase.run(state, context=context)
        return state
