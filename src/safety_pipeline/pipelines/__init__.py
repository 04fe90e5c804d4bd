"""
Pipelines Package - The Three Call Sites.

Pipelines:
    - safety_analysis: checklist -> job hazard analysis report
    - emergency_plan: questionnaire -> emergency action plan document
    - comparison: baseline + update -> GO / NO-GO comparison report

Example:
    >>> from safety_pipeline.adapters import GeminiModelAdapter
    >>> orchestrator = build_orchestrator("safety_analysis", GeminiModelAdapter())
    >>> outcome = orchestrator.run(checklist, reference={"weather": weather})
    >>> print(outcome.report)
"""

from __future__ import annotations

from typing import Optional

from safety_pipeline.adapters.console_logger import ConsoleAuditLogger
from safety_pipeline.adapters.metrics_collector import InMemoryMetricsCollector
from safety_pipeline.config.models import EngineConfig
from safety_pipeline.interfaces.audit_logger import AuditLogger
from safety_pipeline.interfaces.audit_sink import AuditSink
from safety_pipeline.interfaces.metrics_collector import MetricsCollector
from safety_pipeline.interfaces.model_adapter import ModelAdapter
from safety_pipeline.pipeline.orchestrator import PipelineOrchestrator
from safety_pipeline.pipeline.stage_runner import StageRunner
from safety_pipeline.registry.pipeline_registry import PipelineRegistry, default_registry


def build_orchestrator(
    name: str,
    model: ModelAdapter,
    config: Optional[EngineConfig] = None,
    audit_logger: Optional[AuditLogger] = None,
    metrics_collector: Optional[MetricsCollector] = None,
    audit_sink: Optional[AuditSink] = None,
    registry: Optional[PipelineRegistry] = None,
) -> PipelineOrchestrator:
    """
    Create an orchestrator for a registered pipeline.

    Args:
        name: Pipeline name ("safety_analysis", "emergency_plan", "comparison")
        model: Model adapter shared by all stages
        config: Engine configuration (defaults when omitted)
        audit_logger: Run event logger (quiet console logger by default)
        metrics_collector: Metrics sink (in-memory by default)
        audit_sink: Optional per-stage record store
        registry: Pipeline registry (built-in pipelines by default)

    Raises:
        KeyError: If the pipeline is not registered
    """
    registry = registry or default_registry()
    definition = registry.create(name, config or EngineConfig())
    return PipelineOrchestrator(
        definition=definition,
        runner=StageRunner(model),
        audit_logger=audit_logger or ConsoleAuditLogger(verbose=False),
        metrics_collector=metrics_collector or InMemoryMetricsCollector(),
        audit_sink=audit_sink,
    )


__all__ = ["build_orchestrator"]
