"""
Comparison Pipeline.

Delta validation -> risk comparison -> decision -> comparison report.
Compares an update against a baseline job hazard analysis and decides
whether work may continue.
"""

from __future__ import annotations

from typing import Any, Dict, List

from safety_pipeline.config.models import EngineConfig
from safety_pipeline.contracts.comparison_report import ComparisonReportContract
from safety_pipeline.contracts.decision import DecisionContract
from safety_pipeline.contracts.delta_validation import (
    DeltaValidationContract,
    comparison_input,
)
from safety_pipeline.contracts.risk_comparison import RiskComparisonContract
from safety_pipeline.pipeline.context import PipelineContext
from safety_pipeline.pipeline.orchestrator import PipelineDefinition

NAME = "comparison"
VERSION = "comparison-v1.0"
AGENT_TYPE = "jha_comparison"
DESCRIPTION = "Baseline JHA versus reported update, with GO / NO-GO decision"

MAX_HIGHLIGHTS = 5


def _highlights(comparison: Dict[str, Any]) -> List[str]:
    entries = comparison.get("newHazards", []) + comparison.get("degradations", [])
    texts = []
    for entry in entries:
        label = entry.get("hazard") or entry.get("category")
        if label:
            texts.append(str(label))
    return texts[:MAX_HIGHLIGHTS]


def summarize(context: PipelineContext) -> Dict[str, Any]:
    """Headline figures of a comparison run."""
    data = comparison_input(context)
    comparison = context.get("risk_comparison") or {}
    decision = context.get("decision") or {}
    return {
        "baselineId": data.baseline.id,
        "baselineRiskScore": data.baseline.risk_score,
        "currentRiskScore": comparison.get("currentRiskScore"),
        "riskScoreDelta": comparison.get("riskScoreDelta"),
        "changedCategories": data.delta.changed_categories,
        "goNoGoDecision": decision.get("decision"),
        "decisionReason": decision.get("reasoning"),
        "changeHighlights": _highlights(comparison),
    }


def build_definition(config: EngineConfig) -> PipelineDefinition:
    """Stage contracts wired to the configured stage settings."""
    stages = config.comparison
    return PipelineDefinition(
        name=NAME,
        version=VERSION,
        contracts=[
            DeltaValidationContract(stages.delta_validation),
            RiskComparisonContract(stages.risk_comparison),
            DecisionContract(stages.decision),
            ComparisonReportContract(stages.synthesis),
        ],
        agent_type=AGENT_TYPE,
        summarize=summarize,
        description=DESCRIPTION,
        tags=["jha", "update", "decision"],
    )
