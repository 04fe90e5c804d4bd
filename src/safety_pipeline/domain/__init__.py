"""
Domain Layer - Entities and Stage Payloads.

Entities:
    - PipelineRequest, StageResult, PipelineOutcome, AuditRecord

Payloads:
    - One pydantic model per stage output (validation, risk assessment,
      prediction, decision, ...), validated before entering the context
"""

from safety_pipeline.domain.entities import (
    AuditRecord,
    PipelineOutcome,
    PipelineRequest,
    StageKind,
    StageResult,
)
from safety_pipeline.domain.questionnaire import EmergencyQuestionnaire

__all__ = [
    "AuditRecord",
    "EmergencyQuestionnaire",
    "PipelineOutcome",
    "PipelineRequest",
    "StageKind",
    "StageResult",
]
