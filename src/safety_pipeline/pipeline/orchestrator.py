"""
Pipeline Orchestrator - Main Coordinator.

The PipelineOrchestrator runs an ordered list of stage contracts,
threading each stage's payload into the PipelineContext before the next
stage builds its prompt, and assembles the PipelineOutcome.

Design Notes:
    - Strictly sequential; never aborts early (failed stages contribute
      their fallback payload)
    - One audit record per stage; sink failures are logged and counted
    - Anything escaping the StageRunner is caught here once and turned
      into a single-paragraph error report
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from safety_pipeline.contracts.base import StageContract
from safety_pipeline.domain.entities import (
    AuditRecord,
    PipelineOutcome,
    PipelineRequest,
    StageResult,
)
from safety_pipeline.interfaces.audit_logger import AuditLogger
from safety_pipeline.interfaces.audit_sink import AuditSink
from safety_pipeline.interfaces.metrics_collector import MetricsCollector
from safety_pipeline.pipeline.context import PipelineContext
from safety_pipeline.pipeline.stage_runner import StageRunner
from safety_pipeline.resilience.errors import PipelineFatalError

logger = logging.getLogger(__name__)

Summarizer = Callable[[PipelineContext], Dict[str, Any]]
ErrorReporter = Callable[[Exception, PipelineContext], str]


def default_error_report(error: Exception, context: PipelineContext) -> str:
    """Single-paragraph report used when a run cannot complete."""
    source_id = context.payload.get("id", "Unknown")
    return (
        "ANALYSIS SYSTEM ERROR: the analysis pipeline encountered an error and "
        f"could not complete ({error}). Input ID: {source_id}. "
        f"Stages completed: {len(context)}. "
        "Please review the system logs and try again."
    )


@dataclass
class PipelineDefinition:
    """Ordered stages plus the pipeline-specific hooks."""

    name: str
    version: str
    contracts: List[StageContract]
    agent_type: Optional[str] = None
    summarize: Optional[Summarizer] = None
    error_report: ErrorReporter = default_error_report
    description: str = ""
    tags: List[str] = field(default_factory=list)

    @property
    def stage_count(self) -> int:
        return len(self.contracts)

    @property
    def stage_keys(self) -> List[str]:
        return [c.key for c in self.contracts]


class PipelineOrchestrator:
    """Runs a pipeline definition end to end."""

    def __init__(
        self,
        definition: PipelineDefinition,
        runner: StageRunner,
        audit_logger: AuditLogger,
        metrics_collector: MetricsCollector,
        audit_sink: Optional[AuditSink] = None,
    ) -> None:
        """
        Initialize orchestrator with all dependencies.

        Args:
            definition: Stages and hooks of the pipeline
            runner: Stage runner (owns the model adapter)
            audit_logger: For run events
            metrics_collector: For performance metrics
            audit_sink: Optional store for per-stage audit records
        """
        if not definition.contracts:
            raise ValueError(f"Pipeline '{definition.name}' has no stages")
        self.definition = definition
        self.runner = runner
        self.audit_logger = audit_logger
        self.metrics_collector = metrics_collector
        self.audit_sink = audit_sink

    def run(
        self,
        payload: Optional[Dict[str, Any]] = None,
        reference: Optional[Dict[str, Any]] = None,
        analysis_id: Optional[str] = None,
    ) -> PipelineOutcome:
        """
        Execute all stages in order.

        Args:
            payload: Domain payload (checklist / questionnaire / update)
            reference: Optional reference data (weather, statistics, baseline)
            analysis_id: Optional run identifier; generated when omitted

        Returns:
            PipelineOutcome with one StageResult per stage and a non-empty
            report. Never raises.
        """
        return self.run_request(
            PipelineRequest(
                payload=payload or {},
                reference=reference or {},
                analysis_id=analysis_id,
            )
        )

    def run_request(self, request: PipelineRequest) -> PipelineOutcome:
        """Execute all stages for a PipelineRequest."""
        start_time = time.perf_counter()
        analysis_id = request.analysis_id or str(uuid.uuid4())
        tags = {"pipeline": self.definition.name}
        stage_results: List[StageResult] = []
        context = PipelineContext(request.payload, request.reference, analysis_id)

        try:
            self.audit_logger.set_correlation_id(analysis_id)
            logger.info(
                f"Starting {self.definition.name} ({self.definition.stage_count} stages), "
                f"analysis={analysis_id}"
            )

            for contract in self.definition.contracts:
                stage_results.append(self._execute_stage(contract, context, analysis_id))

            report = self._final_report(context)
            duration = time.perf_counter() - start_time
            metadata = self._build_metadata(analysis_id, stage_results, duration)
            if self.definition.summarize is not None:
                metadata.update(self.definition.summarize(context))

            self.metrics_collector.record_timing("pipeline_total_seconds", duration, tags)
            logger.info(
                f"Completed {self.definition.name}: "
                f"{sum(r.success for r in stage_results)}/{len(stage_results)} "
                f"stages succeeded ({duration:.2f}s)"
            )
            return PipelineOutcome(
                analysis_id=analysis_id,
                pipeline=self.definition.name,
                stage_results=stage_results,
                report=report,
                metadata=metadata,
            )
        except Exception as e:
            return self._fatal_outcome(e, context, analysis_id, stage_results, start_time)

    def _execute_stage(
        self,
        contract: StageContract,
        context: PipelineContext,
        analysis_id: str,
    ) -> StageResult:
        """Run one stage, thread its payload and write its audit record."""
        tags = {"pipeline": self.definition.name, "stage": contract.key}
        self.audit_logger.log_stage_start(
            contract.name, {"stage_id": contract.stage_id, "stage_key": contract.key}
        )

        result = self.runner.run(contract, context)
        context.add(contract.key, result.payload)

        self.audit_logger.log_stage_end(
            contract.name,
            result.success,
            result.execution_time_ms / 1000.0,
            {"stage_id": contract.stage_id, "model": result.model},
        )
        self.metrics_collector.record_timing(
            "stage_duration_seconds", result.execution_time_ms / 1000.0, tags
        )
        if not result.success:
            self.metrics_collector.record_count("stage_fallbacks_total", 1, tags)
            self.audit_logger.log_anomaly(
                f"{contract.name} used its fallback: {result.error_message}",
                severity="WARNING",
                context={"stage_id": contract.stage_id},
            )

        self._write_audit(analysis_id, result)
        return result

    def _write_audit(self, analysis_id: str, result: StageResult) -> None:
        """Persist the stage; sink failures never abort the run."""
        if self.audit_sink is None:
            return
        record = AuditRecord.from_stage_result(
            analysis_id, result, agent_type=self.definition.agent_type
        )
        try:
            self.audit_sink.append(record)
        except Exception as e:
            logger.error(f"Audit write failed for {result.stage_id}: {e}")
            self.metrics_collector.record_count(
                "audit_write_failures_total", 1, {"pipeline": self.definition.name}
            )
            self.audit_logger.log_anomaly(
                f"Audit write failed for {result.stage_id}: {e}",
                severity="ERROR",
                context={"analysis_id": analysis_id},
            )

    def _final_report(self, context: PipelineContext) -> str:
        """Narrative text of the last (synthesis) stage."""
        last = self.definition.contracts[-1]
        report = last.report_text(context.get(last.key))
        if not report or not report.strip():
            raise PipelineFatalError(
                f"Final stage {last.stage_id} produced no report", stage_id=last.stage_id
            )
        return report

    def _fatal_outcome(
        self,
        error: Exception,
        context: PipelineContext,
        analysis_id: str,
        stage_results: Sequence[StageResult],
        start_time: float,
    ) -> PipelineOutcome:
        """Convert an escaped error into an outcome with an error report."""
        logger.error(f"{self.definition.name} failed: {error}", exc_info=True)
        self.metrics_collector.record_count(
            "pipeline_fatal_total", 1, {"pipeline": self.definition.name}
        )
        self.audit_logger.log_anomaly(
            f"Pipeline {self.definition.name} aborted: {error}",
            severity="CRITICAL",
            context={"completed_stages": len(stage_results)},
        )

        try:
            report = self.definition.error_report(error, context)
        except Exception as e:
            logger.error(f"Error report hook failed: {e}")
            report = ""
        if not report.strip():
            report = default_error_report(error, context)

        duration = time.perf_counter() - start_time
        metadata = self._build_metadata(analysis_id, stage_results, duration)
        if self.definition.summarize is not None:
            try:
                metadata.update(self.definition.summarize(context))
            except Exception as e:
                logger.warning(f"Summary unavailable after failure: {e}")
        return PipelineOutcome(
            analysis_id=analysis_id,
            pipeline=self.definition.name,
            stage_results=list(stage_results),
            report=report,
            metadata=metadata,
            fatal_error=f"{type(error).__name__}: {error}",
        )

    def _build_metadata(
        self,
        analysis_id: str,
        stage_results: Sequence[StageResult],
        duration: float,
    ) -> Dict[str, Any]:
        """Build run metadata."""
        return {
            "analysisId": analysis_id,
            "pipeline": self.definition.name,
            "pipelineVersion": self.definition.version,
            "timestamp": datetime.now().isoformat(),
            "executionTimeMs": int(duration * 1000),
            "stagesCompleted": len(stage_results),
            "stagesSucceeded": sum(1 for r in stage_results if r.success),
            "stages": {
                r.stage_key: {
                    "stageId": r.stage_id,
                    "name": r.stage_name,
                    "model": r.model,
                    "temperature": r.temperature,
                    "maxTokens": r.max_tokens,
                    "executionTimeMs": r.execution_time_ms,
                    "responseLength": len(r.raw_model_text),
                    "success": r.success,
                }
                for r in stage_results
            },
        }
