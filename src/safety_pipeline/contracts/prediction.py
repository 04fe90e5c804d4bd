"""
Incident Prediction Stage.

Third stage of the safety analysis. Builds the most likely incident
scenario around the top-ranked hazard: causal chain, leading indicators
and interventions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from safety_pipeline.contracts import reference
from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.contracts.checklist import find_answer
from safety_pipeline.domain.payloads import (
    CausalStage,
    LeadingIndicator,
    PredictionPayload,
    RiskAssessmentPayload,
)

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

FALLBACK_INDICATORS = [
    "Workers bypassing required controls",
    "Changes in site or weather conditions",
    "Near-miss reports for the identified hazard",
]


def confidence_from_probability(probability: float) -> str:
    """HIGH for >= 80, MEDIUM for 40-79, LOW below 40."""
    if probability >= 80:
        return "HIGH"
    if probability >= 40:
        return "MEDIUM"
    return "LOW"


def top_hazard(context: PipelineContext) -> Optional[Dict[str, Any]]:
    """Highest scoring hazard from the risk assessment payload."""
    assessment = context.get("risk_assessment")
    if not assessment:
        return None
    hazards = context.typed("risk_assessment", RiskAssessmentPayload)
    return hazards.top_hazard.to_payload()


class IncidentPredictionContract(StageContract):
    """Predict the most likely incident for the top hazard."""

    stage_id = "safety_agent_3"
    key = "prediction"
    name = "Incident Predictor"
    output_schema = PredictionPayload

    def build_prompt(self, context: PipelineContext) -> str:
        hazard = top_hazard(context) or {}
        payload = context.payload
        hours = find_answer(payload, ["hoursWorked", "hours worked", "shift length"], "8")
        days = find_answer(
            payload, ["consecutiveDays", "consecutive days", "days worked"], "1"
        )
        fatigue = reference.calculate_fatigue(hours, days)
        high_risk_time = reference.is_high_risk_time()
        weather = reference.weather(context)

        return f"""You are an incident prediction specialist for construction safety.
Predict the most likely incident for the TOP HAZARD below and explain how it would unfold.

TOP HAZARD:
{to_prompt_json(hazard)}

ALL RISK FINDINGS:
{to_prompt_json(context.get("risk_assessment", {}))}

HUMAN FACTORS:
- Fatigue level: {fatigue}
- High-risk time of day: {"YES" if high_risk_time else "NO"}

WEATHER:
{to_prompt_json(weather) if weather else "Not available"}

REQUIREMENTS:
1. Name the incident and the timeframe in which it is most likely.
2. Give its probability (0-100) and your confidence (HIGH, MEDIUM, LOW).
3. Build the causal chain from root cause to injury, in order.
4. List 3-5 leading indicators a supervisor can observe on site.
5. Recommend preventive and mitigative interventions and the single best one.

OUTPUT REQUIREMENTS:
Respond ONLY with valid JSON:

{{
  "incidentName": "Fall from unprotected roof edge",
  "timeframe": "Next 2-4 hours of work",
  "probability": 35,
  "confidence": "MEDIUM",
  "causalChain": [{{"stage": "Root cause", "description": "..."}}],
  "leadingIndicators": [
    {{"indicator": "...", "type": "BEHAVIORAL", "whereToLook": "...", "whatToSee": "...", "threshold": "...", "actionRequired": "..."}}
  ],
  "interventions": {{
    "preventive": [{{"action": "...", "feasibility": "HIGH"}}],
    "mitigative": [{{"action": "..."}}],
    "recommended": "..."
  }},
  "singleBestIntervention": "...",
  "oshaPatternMatch": {{"similarIncidents": "...", "commonFactors": "..."}}
}}"""

    def score(
        self, payload: PredictionPayload, context: PipelineContext
    ) -> PredictionPayload:
        """Re-derive confidence from probability and backfill the intervention."""
        update: Dict[str, Any] = {}
        if payload.probability is not None:
            update["confidence"] = confidence_from_probability(payload.probability)
        if not payload.single_best_intervention and payload.interventions:
            if payload.interventions.recommended:
                update["single_best_intervention"] = payload.interventions.recommended
        return payload.model_copy(update=update) if update else payload

    def fallback(self, context: PipelineContext) -> PredictionPayload:
        """LOW confidence stub built around the top hazard."""
        hazard = top_hazard(context) or {}
        return PredictionPayload(
            incident_name=hazard.get("name") or "Incident prediction unavailable",
            confidence="LOW",
            causal_chain=[
                CausalStage(
                    stage="Prediction Failed",
                    description="Unable to build causal chain - incident prediction unavailable",
                )
            ],
            leading_indicators=[LeadingIndicator(indicator=i) for i in FALLBACK_INDICATORS],
            single_best_intervention="Unable to determine intervention",
        )
