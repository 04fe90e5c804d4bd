"""
Risk Assessment Stage.

Second stage of the safety analysis. The model quantifies hazards from the
checklist and the validation findings; hazards are then ranked by risk
score so the top hazard drives the prediction stage.

Risk levels (by score):
    - EXTREME: 95-100
    - HIGH: 75-94
    - MEDIUM: 50-74
    - LOW: 25-49
    - MINIMAL: below 25
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from safety_pipeline.contracts import reference
from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.domain.payloads import (
    RiskAssessmentPayload,
    RiskHazard,
    RiskSummary,
)

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

FALLBACK_HAZARD_NAME = "Generic construction hazard - risk assessment failed"
FALLBACK_RISK_SCORE = 50


def risk_level(score: int) -> str:
    """Map a 1-100 risk score to its level."""
    if score >= 95:
        return "EXTREME"
    if score >= 75:
        return "HIGH"
    if score >= 50:
        return "MEDIUM"
    if score >= 25:
        return "LOW"
    return "MINIMAL"


class RiskAssessmentContract(StageContract):
    """Quantify hazards and rank them by risk score."""

    stage_id = "safety_agent_2"
    key = "risk_assessment"
    name = "Risk Assessor"
    output_schema = RiskAssessmentPayload

    def build_prompt(self, context: PipelineContext) -> str:
        industry = reference.industry_profile(context)
        weather = reference.weather(context)
        validation = context.get("validation", {})

        return f"""You are a construction risk assessment specialist using OSHA incident data.
Identify and quantify the hazards in this job, using the validation findings.

CHECKLIST DATA:
{to_prompt_json(context.payload)}

VALIDATION FINDINGS:
{to_prompt_json(validation)}

WEATHER:
{to_prompt_json(weather) if weather else "Not available"}

INDUSTRY STATISTICS:
- Industry: {industry['industryName']} (NAICS {industry['naicsCode']})
- Injury rate: {industry['injuryRate']} per 100 workers
- Total recordable cases: {industry['totalCases']}
- Source: {industry['dataSource']}

PROBABILITY CALCULATION:
Start from the industry baseline rate and apply multipliers:
- Hazard multiplier: 1.0-3.0 depending on exposure
- Control multiplier: 0.3 (engineering) to 2.0 (no controls)
- Weather multiplier: 1.0-2.0
- Experience multiplier: 0.8 (experienced crew) to 1.5 (new crew)
Express the final probability as a fraction between 0 and 1.

CONSEQUENCE:
Fatal (x10), Critical (x7), Serious (x4), Minor (x1)

RISK SCORE (1-100) = probability x consequence weight, normalized.
Classification: 95-100 EXTREME, 75-94 HIGH, 50-74 MEDIUM, 25-49 LOW, below 25 MINIMAL.

For each hazard list the controls in the checklist that are inadequate and
the OSHA requirement that applies.

OUTPUT REQUIREMENTS:
Respond ONLY with valid JSON:

{{
  "riskSummary": {{"overallRiskLevel": "HIGH", "highestRiskScore": 88, "industryContext": "..."}},
  "hazards": [
    {{
      "name": "Fall from roof edge",
      "category": "Falls",
      "probability": 0.12,
      "consequence": "Fatal",
      "riskScore": 88,
      "oshaContext": "Falls are the leading cause of construction fatalities",
      "inadequateControls": ["No guardrails on north edge"],
      "recommendedControls": ["Install guardrails"],
      "regulatoryRequirement": "29 CFR 1926.501"
    }}
  ],
  "topThreats": ["..."],
  "weatherImpact": "...",
  "immediateActions": ["..."]
}}"""

    def score(
        self, payload: RiskAssessmentPayload, context: PipelineContext
    ) -> RiskAssessmentPayload:
        """Rank hazards, assign levels and recompute the summary."""
        ranked = sorted(payload.hazards, key=lambda h: h.risk_score, reverse=True)
        hazards = [
            h.model_copy(update={"risk_level": risk_level(h.risk_score)}) for h in ranked
        ]
        top = hazards[0]
        summary = payload.risk_summary or RiskSummary()
        summary = summary.model_copy(
            update={
                "highest_risk_score": top.risk_score,
                "overall_risk_level": risk_level(top.risk_score),
            }
        )
        top_threats = payload.top_threats or [h.name for h in hazards[:3]]
        osha_data = payload.osha_data or reference.industry_profile(context)
        return payload.model_copy(
            update={
                "hazards": hazards,
                "risk_summary": summary,
                "top_threats": top_threats,
                "osha_data": osha_data,
            }
        )

    def fallback(self, context: PipelineContext) -> RiskAssessmentPayload:
        """Single generic hazard at the midpoint score."""
        payload = RiskAssessmentPayload(
            risk_summary=RiskSummary(
                overall_risk_level="MEDIUM",
                highest_risk_score=FALLBACK_RISK_SCORE,
                industry_context="Risk assessment failed - using baseline",
            ),
            hazards=[
                RiskHazard(
                    name=FALLBACK_HAZARD_NAME,
                    category="Other",
                    probability=0.1,
                    consequence="Serious",
                    risk_score=FALLBACK_RISK_SCORE,
                    osha_context="Risk assessment unavailable",
                    inadequate_controls=["Unable to assess controls"],
                )
            ],
            top_threats=["Risk assessment failed"],
            osha_data=reference.industry_profile(context),
        )
        return self.score(payload, context)
