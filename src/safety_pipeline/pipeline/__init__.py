"""
Pipeline Package - Orchestration and Stage Execution.

Components:
    - PipelineContext: Append-only store of stage payloads
    - StageRunner: Runs one stage contract, never throws
    - PipelineOrchestrator: Runs a PipelineDefinition end to end
"""

from safety_pipeline.pipeline.context import PipelineContext
from safety_pipeline.pipeline.orchestrator import (
    PipelineDefinition,
    PipelineOrchestrator,
    default_error_report,
)
from safety_pipeline.pipeline.stage_runner import StageRunner

__all__ = [
    "PipelineContext",
    "PipelineDefinition",
    "PipelineOrchestrator",
    "StageRunner",
    "default_error_report",
]
