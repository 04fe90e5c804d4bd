"""
Safety Analysis Pipeline.

Checklist validation -> risk assessment -> incident prediction -> report
synthesis. The report is the markdown rendering of the synthesized job
hazard analysis.
"""

from __future__ import annotations

from typing import Any, Dict

from safety_pipeline.config.models import EngineConfig
from safety_pipeline.contracts import reference
from safety_pipeline.contracts.prediction import IncidentPredictionContract
from safety_pipeline.contracts.risk_assessment import RiskAssessmentContract
from safety_pipeline.contracts.safety_report import (
    SafetyReportContract,
    fallback_report_text,
)
from safety_pipeline.contracts.validation import ChecklistValidationContract
from safety_pipeline.pipeline.context import PipelineContext
from safety_pipeline.pipeline.orchestrator import PipelineDefinition

NAME = "safety_analysis"
VERSION = "multi-agent-v1.0-hybrid"
AGENT_TYPE = "multi_agent_safety"
DESCRIPTION = "Job hazard analysis of a site safety checklist"


def summarize(context: PipelineContext) -> Dict[str, Any]:
    """Headline figures of a safety analysis run."""
    validation = context.get("validation") or {}
    risk = context.get("risk_assessment") or {}
    prediction = context.get("prediction") or {}
    scores = [h.get("riskScore", 0) for h in risk.get("hazards", [])]
    return {
        "dataQuality": validation.get("dataQuality"),
        "qualityScore": validation.get("qualityScore"),
        "topRiskScore": max(scores) if scores else None,
        "predictionConfidence": prediction.get("confidence"),
        "weatherPresent": bool(reference.weather(context)),
    }


def error_report(error: Exception, context: PipelineContext) -> str:
    text = fallback_report_text(error, context.payload, bool(reference.weather(context)))
    return " ".join(text.split())


def build_definition(config: EngineConfig) -> PipelineDefinition:
    """Stage contracts wired to the configured stage settings."""
    stages = config.safety_analysis
    return PipelineDefinition(
        name=NAME,
        version=VERSION,
        contracts=[
            ChecklistValidationContract(stages.validation, config.validation_rules),
            RiskAssessmentContract(stages.risk_assessment),
            IncidentPredictionContract(stages.prediction),
            SafetyReportContract(stages.synthesis),
        ],
        agent_type=AGENT_TYPE,
        summarize=summarize,
        error_report=error_report,
        description=DESCRIPTION,
        tags=["checklist", "jha"],
    )
