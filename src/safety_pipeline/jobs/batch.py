"""
Batch Analysis Job.

Runs one pipeline over many requests, pacing consecutive runs so the
model service is not flooded. The orchestrator never raises, so every
request yields an outcome; requests whose run aborted are reported in
``failed``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from safety_pipeline.config.models import PacingSettings
from safety_pipeline.domain.entities import PipelineOutcome, PipelineRequest
from safety_pipeline.pipeline.orchestrator import PipelineOrchestrator
from safety_pipeline.resilience.errors import PipelineFatalError
from safety_pipeline.resilience.pacing import Pacer, PartialResult, handle_partial_failure

logger = logging.getLogger(__name__)


class BatchAnalysisJob:
    """Paced sequential runs of one orchestrator."""

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        pacing: Optional[PacingSettings] = None,
        pacer: Optional[Pacer] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.pacing = pacing or PacingSettings()
        self.pacer = pacer or Pacer(self.pacing.interval_seconds)

    def run(self, requests: Iterable[PipelineRequest]) -> PartialResult[PipelineOutcome]:
        """
        Run every request.

        Raises:
            RuntimeError: If the share of aborted runs exceeds the configured limit
        """
        return handle_partial_failure(
            requests,
            self._run_one,
            pacer=self.pacer,
            min_success_rate=self.pacing.min_success_rate,
            operation_name=f"Batch {self.orchestrator.definition.name}",
        )

    def _run_one(self, request: PipelineRequest) -> PipelineOutcome:
        outcome = self.orchestrator.run_request(request)
        if outcome.fatal_error:
            raise PipelineFatalError(
                f"Run {outcome.analysis_id} aborted: {outcome.fatal_error}"
            )
        return outcome
