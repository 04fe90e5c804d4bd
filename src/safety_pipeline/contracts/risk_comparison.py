"""
Risk Comparison Stage.

Second stage of the comparison pipeline: recomputes the risk score under
current conditions and lists what improved, what degraded and which
hazards are new.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.contracts.delta_validation import comparison_input, reported
from safety_pipeline.domain.payloads import RiskComparisonPayload

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

# Used when the baseline carries no score
DEFAULT_BASELINE_SCORE = 60


class RiskComparisonContract(StageContract):
    """Compare baseline risks with current conditions."""

    stage_id = "comparison_agent_2"
    key = "risk_comparison"
    name = "Risk Comparator"
    output_schema = RiskComparisonPayload

    def build_prompt(self, context: PipelineContext) -> str:
        data = comparison_input(context)
        baseline, delta = data.baseline, data.delta
        score = baseline.risk_score if baseline.risk_score is not None else "Unknown"

        return f"""You are a construction safety risk assessor. Compare baseline JHA risks with current conditions.

BASELINE JHA:
{baseline.query}
Original Risk Score: {score}/100

VALIDATED CHANGES:
{to_prompt_json(context.get("delta_validation", {}))}

CURRENT CONDITIONS:
- Wind Speed: {delta.new_wind_speed or 'Unknown'}
- Crew Changes: {'Yes' if delta.new_crew_members else 'No'}
- New Hazards: {reported(delta.new_hazards) if delta.new_hazards else 'None reported'}

TASK:
1. Calculate the new risk score (0-100) based on the changes
2. Identify which risks improved
3. Identify which risks degraded
4. List new hazards introduced, each with a severity (low, medium, high, critical)
5. Assess the impact of each change category

Use plain numbers (no leading "+") for all deltas.

Return JSON:
{{
  "currentRiskScore": 65,
  "riskScoreDelta": 5,
  "improvements": [{{"category": "fall protection", "impact": "New harnesses", "riskReduction": -10}}],
  "degradations": [{{"category": "weather", "impact": "Wind increased to 18mph", "riskIncrease": 15}}],
  "newHazards": [{{"hazard": "Icy surfaces", "severity": "high", "riskScore": 20}}],
  "categoryImpacts": {{
    "weather": {{"change": "degraded", "riskDelta": 15}},
    "personnel": {{"change": "improved", "riskDelta": -5}}
  }}
}}"""

    def score(
        self, payload: RiskComparisonPayload, context: PipelineContext
    ) -> RiskComparisonPayload:
        """Recompute the delta against the baseline when one is known."""
        baseline_score = comparison_input(context).baseline.risk_score
        if baseline_score is None:
            return payload
        delta = round(payload.current_risk_score - baseline_score, 1)
        return payload.model_copy(update={"risk_score_delta": delta})

    def fallback(self, context: PipelineContext) -> RiskComparisonPayload:
        """Carry the baseline score forward unchanged."""
        baseline_score = comparison_input(context).baseline.risk_score
        current = DEFAULT_BASELINE_SCORE if baseline_score is None else baseline_score
        return RiskComparisonPayload(current_risk_score=current, risk_score_delta=0.0)
