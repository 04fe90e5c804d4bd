"""
Core Domain Entities.

This module defines the entities the pipeline engine operates on: the
caller's request, the per-stage result, the aggregated outcome of a run
and the write-once audit record.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class StageKind(str, Enum):
    """How a stage produces its payload."""

    STRUCTURED = "structured"  # model text -> JSON payload
    TEXTUAL = "textual"  # model text used as-is
    FAN_OUT = "fan_out"  # one model call per item
    DETERMINISTIC = "deterministic"  # no model call


class PipelineRequest(BaseModel):
    """Input for a pipeline run."""

    payload: Dict[str, Any] = Field(
        default_factory=dict, description="Checklist/questionnaire responses"
    )
    reference: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional reference data (weather, industry statistics, baseline)",
    )
    analysis_id: Optional[str] = Field(
        default=None, description="Caller supplied analysis identifier"
    )

    model_config = {"frozen": True}


class StageResult(BaseModel):
    """Result of a single stage; payload is always present."""

    stage_id: str
    stage_key: str
    stage_name: str
    stage_kind: StageKind = StageKind.STRUCTURED
    payload: Any
    raw_model_text: str = ""
    success: bool
    error_message: Optional[str] = None
    execution_time_ms: int = Field(default=0, ge=0)
    temperature: float = 0.0
    max_tokens: int = 0
    model: Optional[str] = None
    purpose: str = ""

    @property
    def used_fallback(self) -> bool:
        """True when the payload came from the stage fallback."""
        return not self.success


class PipelineOutcome(BaseModel):
    """Complete result of a pipeline run."""

    analysis_id: str
    pipeline: str
    stage_results: List[StageResult] = Field(default_factory=list)
    report: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    fatal_error: Optional[str] = None

    @property
    def succeeded_stages(self) -> int:
        """Number of stages that produced a model-derived payload."""
        return sum(1 for r in self.stage_results if r.success)

    @property
    def all_succeeded(self) -> bool:
        """True when no stage fell back."""
        return bool(self.stage_results) and all(r.success for r in self.stage_results)

    def get_stage(self, stage_key: str) -> Optional[StageResult]:
        """Find a stage result by its context key."""
        for result in self.stage_results:
            if result.stage_key == stage_key:
                return result
        return None

    def to_output(self) -> Dict[str, Any]:
        """
        Render the caller-facing output object.

        Returns:
            ``{"stage_1": ..., "stage_N": ..., "report": ..., "metadata": ...}``
        """
        output: Dict[str, Any] = {}
        for index, result in enumerate(self.stage_results, start=1):
            output[f"stage_{index}"] = result.payload
        output["report"] = self.report
        output["metadata"] = self.metadata
        return output


class AuditRecord(BaseModel):
    """One persisted copy of a stage result, write-once."""

    analysis_id: str
    stage_id: str
    stage_name: str
    stage_kind: str
    payload: Any
    temperature: float
    max_tokens: int
    execution_time_ms: int
    purpose: str = ""
    model: Optional[str] = None
    success: bool
    agent_type: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True, "protected_namespaces": ()}

    @classmethod
    def from_stage_result(
        cls,
        analysis_id: str,
        result: StageResult,
        agent_type: Optional[str] = None,
    ) -> "AuditRecord":
        """Build the audit copy of a stage result."""
        return cls(
            analysis_id=analysis_id,
            stage_id=result.stage_id,
            stage_name=result.stage_name,
            stage_kind=result.stage_kind.value,
            payload=result.payload,
            temperature=result.temperature,
            max_tokens=result.max_tokens,
            execution_time_ms=result.execution_time_ms,
            purpose=result.purpose,
            model=result.model,
            success=result.success,
            agent_type=agent_type,
        )

    def to_persistence_dict(self) -> Dict[str, Any]:
        """Row shape expected by the external audit store."""
        return {
            "analysisId": self.analysis_id,
            "stageId": self.stage_id,
            "stageName": self.stage_name,
            "stageKind": self.stage_kind,
            "agentId": self.stage_id,
            "agentType": self.agent_type,
            "outputData": self.payload,
            "executionMetadata": {
                "temperature": self.temperature,
                "maxTokens": self.max_tokens,
                "executionTimeMs": self.execution_time_ms,
                "purpose": self.purpose,
                "model": self.model,
            },
            "success": self.success,
            "createdAt": self.created_at.isoformat(),
        }
