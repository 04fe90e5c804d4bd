"""
Checklist Validation Stage.

First stage of the safety analysis. The model reviews checklist and weather
data; the deterministic ChecklistInspector then fixes the score band, so the
reported qualityScore always agrees with the gaps actually found.

Data quality levels (from the final score):
    - HIGH: 8-10
    - MEDIUM: 4-7
    - LOW: 1-3
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from safety_pipeline.config.models import StageSettings, ValidationRules
from safety_pipeline.contracts import reference
from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.contracts.checklist import (
    ChecklistInspector,
    clamp_to_band,
    find_answer,
    quality_level,
)
from safety_pipeline.domain.payloads import ValidationPayload

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

VALIDATOR_FAILED_CONCERN = "Data validation failed - proceeding with caution"
WEATHER_MISSING_CONCERN = "Weather data unavailable - conditions could not be assessed"

# (work type keywords, heading, critical fields)
TRADE_FIELDS: List[Tuple[Tuple[str, ...], str, Tuple[str, ...]]] = [
    (
        ("electric",),
        "Electrical Trade Critical Fields",
        (
            "LOTO (Lock-Out Tag-Out) procedures with specific energy sources",
            "Arc flash PPE category (0-4) with calorie rating",
            "Voltage testing procedure (must use rated test equipment)",
            "Qualified person certifications (NFPA 70E or equivalent)",
            "Energized work permit (if working on live circuits)",
        ),
    ),
    (
        ("roof",),
        "Roofing Trade Critical Fields",
        (
            "Fall protection system type (guardrails, nets, or PFAS)",
            "Roof edge setback distance (minimum 6 feet from edge)",
            "Weather monitoring for high winds/rain (specific wind speed limits)",
            "Ladder tie-off and 3-point contact",
            "Material storage away from roof edge",
        ),
    ),
    (
        ("scaffold", "height", "fall"),
        "Work at Height Critical Fields",
        (
            "Fall protection anchor points with 5,000lb capacity certification",
            "Competent person inspection of harnesses/lanyards (signed & dated)",
            "Rescue plan with 6-minute response time capability",
            "Scaffold load rating and capacity placard visible",
            'Guardrail height 42" +/- 3" with midrail and toeboard',
        ),
    ),
    (
        ("crane", "lift", "hoist"),
        "Crane/Lifting Critical Fields",
        (
            "Crane operator certification (CCO or NCCCO)",
            "Load chart present and load within rated capacity",
            "Wind speed monitoring with specific mph stop-work limit",
            "Swing radius barricaded and exclusion zone marked",
            "Signal person identified and hand signals reviewed",
        ),
    ),
    (
        ("concrete", "masonry"),
        "Concrete/Masonry Critical Fields",
        (
            "Form integrity inspection before pour (signed by engineer)",
            "Shoring/reshoring plan for multi-level structures",
            "Silica exposure control (wet methods or HEPA vacuum)",
            "Vibration tool anti-vibration gloves and time limits",
            "Reinforcement bar impalement protection (caps on vertical rebar)",
        ),
    ),
    (
        ("excavat", "trench"),
        "Excavation/Trenching Critical Fields",
        (
            "Competent person daily trench inspection (atmospheric testing)",
            "Soil type classification (Type A/B/C) with shoring/sloping accordingly",
            "Ladder within 25 feet of workers at all times",
            "Utility locate (call 811) with marked lines on site",
            "Spoil pile setback minimum 2 feet from edge",
        ),
    ),
]

GENERAL_FIELDS = (
    "General Construction Critical Fields",
    (
        "Site-specific hazard assessment (minimum 3 hazards identified)",
        "Emergency assembly point with marked route",
        "First aid kit location and trained first aid provider on site",
        "Competent person for each major hazard category identified by name",
    ),
)


def trade_specific_fields(work_type: str) -> str:
    """Prompt block listing the critical fields for a work type."""
    lowered = (work_type or "").lower()
    heading, fields = GENERAL_FIELDS
    for keywords, trade_heading, trade_fields in TRADE_FIELDS:
        if any(k in lowered for k in keywords):
            heading, fields = trade_heading, trade_fields
            break
    lines = [f"   {heading}:"] + [f"   - {f}" for f in fields]
    return "\n".join(lines)


def work_type_of(payload: dict) -> str:
    return find_answer(
        payload, ["workType", "work type", "task description"], "General Construction"
    )


class ChecklistValidationContract(StageContract):
    """Validate checklist completeness and response quality."""

    stage_id = "safety_agent_1"
    key = "validation"
    name = "Data Validator"
    output_schema = ValidationPayload

    def __init__(self, settings: StageSettings, rules: ValidationRules) -> None:
        super().__init__(settings)
        self.inspector = ChecklistInspector(rules)

    def build_prompt(self, context: PipelineContext) -> str:
        industry = reference.industry_profile(context)
        weather = reference.weather(context)
        critical = "\n".join(
            f"   - {rule.name}" for rule in self.inspector.rules.critical_fields
        )
        if weather:
            weather_block = (
                f"   Current Conditions: {to_prompt_json(weather)}\n"
                "   Flag if:\n"
                "   - Temp < 32F or > 95F AND no heat/cold stress plan\n"
                "   - Wind > 25mph AND work involves cranes/scaffolding\n"
                "   - Rain/snow present AND no slip prevention measures"
            )
        else:
            weather_block = "   Weather data unavailable - FLAG as CRITICAL concern"

        return f"""You are a construction safety data validator with expertise in OSHA 1926 standards.
Analyze the provided checklist and weather data for completeness, quality, and safety adequacy.

INPUT DATA:
Checklist: {to_prompt_json(context.payload)}
Industry: NAICS {industry['naicsCode']} ({industry['industryName']})
Baseline Injury Rate: {industry['injuryRate']} per 100 workers

VALIDATION REQUIREMENTS:

1. CRITICAL FIELD VERIFICATION:
   Universal Critical Fields:
{critical}

{trade_specific_fields(work_type_of(context.payload))}

2. RESPONSE QUALITY CHECK:
   - Flag "No response", "N/A", "Same" and one-word answers for critical fields
   - Flag contradictory or generic answers ("be careful" is not a control)

3. WEATHER RISK ASSESSMENT:
{weather_block}

4. SCORING:
   10 = no gaps
   7-9 = minor gaps
   4-6 = significant gaps in critical fields
   1-3 = insufficient to proceed

OUTPUT REQUIREMENTS:
Respond ONLY with valid JSON:

{{
  "qualityScore": <number 1-10>,
  "dataQuality": "HIGH|MEDIUM|LOW",
  "missingCritical": ["field name"],
  "insufficientResponses": [{{"field": "PPE Requirements", "issue": "One-word response"}}],
  "weatherPresent": <true|false>,
  "weatherRisks": ["risk"],
  "concerns": {{"CRITICAL": [], "HIGH": [], "MEDIUM": [], "LOW": []}},
  "tradeSpecificGaps": ["gap"],
  "recommendedAction": "PROCEED|REQUEST_CLARIFICATION|REJECT_UNSAFE"
}}"""

    def score(
        self, payload: ValidationPayload, context: PipelineContext
    ) -> ValidationPayload:
        """Clamp the model's score into the band the checklist supports."""
        inspection = self.inspector.inspect(context.payload)
        band = inspection.score_band()
        quality_score = clamp_to_band(payload.quality_score, band)

        missing = list(inspection.missing_critical)
        missing += [m for m in payload.missing_critical if m not in missing]

        concerns = list(payload.concerns)
        has_weather = bool(reference.weather(context))
        if not has_weather and WEATHER_MISSING_CONCERN not in concerns:
            concerns.append(WEATHER_MISSING_CONCERN)
        if inspection.no_answer_fields:
            concerns.append(
                "No answer provided for: " + ", ".join(inspection.no_answer_fields[:10])
            )

        return payload.model_copy(
            update={
                "quality_score": quality_score,
                "data_quality": quality_level(quality_score),
                "missing_critical": missing,
                "concerns": concerns,
                "no_responses": inspection.no_answer_fields,
                "weather_present": has_weather,
            }
        )

    def fallback(self, context: PipelineContext) -> ValidationPayload:
        """Neutral result that never claims high confidence."""
        return ValidationPayload(
            quality_score=5,
            data_quality="MEDIUM",
            missing_critical=["Unable to parse validation"],
            concerns=[VALIDATOR_FAILED_CONCERN],
            weather_present=bool(reference.weather(context)),
        )
