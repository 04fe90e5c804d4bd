"""
Emergency Classification Stage.

Second stage of the emergency action plan generator. The model decides
which emergency procedures the site needs; the classification rules are
then merged in so the mandatory procedures (fire, medical, general
evacuation) and every rule-triggered procedure are always present.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List

from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.contracts.eap_validation import questionnaire_of
from safety_pipeline.domain.payloads import ClassificationPayload, RequiredEmergency
from safety_pipeline.domain.questionnaire import EmergencyQuestionnaire

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

# Work above this height (feet) needs a fall rescue procedure
FALL_RESCUE_HEIGHT_FT = 6

MANDATORY_REASON = "Required for all EAPs per OSHA 1926.35"


@dataclass(frozen=True)
class EmergencyRule:
    """A procedure type and the site condition that requires it."""

    type: str
    priority: str
    osha_reference: str
    reason: str
    critical_details: tuple
    applies: Callable[[EmergencyQuestionnaire], bool]


def _always(q: EmergencyQuestionnaire) -> bool:
    return True


def _needs_fall_rescue(q: EmergencyQuestionnaire) -> bool:
    return (
        (q.building_height or 0) > FALL_RESCUE_HEIGHT_FT
        or (q.work_elevation or 0) > FALL_RESCUE_HEIGHT_FT
        or q.hazards.fall_from_height
        or q.hazards.swing_stage
        or q.has_equipment("swing stage")
    )


def _severe_weather(q: EmergencyQuestionnaire) -> bool:
    concerns = " ".join(q.weather_concerns).lower()
    return "tornado" in concerns or "severe storm" in concerns


MANDATORY_RULES = [
    EmergencyRule(
        "fire_emergency", "critical", "29 CFR 1926.35(b)", MANDATORY_REASON,
        ("Evacuation procedures", "Fire extinguisher use"), _always,
    ),
    EmergencyRule(
        "medical_emergency", "critical", "29 CFR 1926.35(b)(4)", MANDATORY_REASON,
        ("First aid", "EMS notification"), _always,
    ),
    EmergencyRule(
        "general_evacuation", "critical", "29 CFR 1926.35(a)", MANDATORY_REASON,
        ("Evacuation routes", "Assembly points", "Head count"), _always,
    ),
]

CONDITIONAL_RULES = [
    EmergencyRule(
        "fall_from_height_rescue", "critical", "29 CFR 1926.502(d)(20)",
        "Work at height above 6 feet or suspended access equipment on site",
        ("6-minute rescue window", "Suspension trauma prevention"),
        _needs_fall_rescue,
    ),
    EmergencyRule(
        "confined_space_rescue", "critical", "29 CFR 1926.1211",
        "Confined space entry on site",
        ("Atmospheric testing", "Non-entry rescue"),
        lambda q: q.hazards.confined_space,
    ),
    EmergencyRule(
        "crane_emergency", "critical", "29 CFR 1926.1400",
        "Crane operations on site",
        ("Load securing", "Power line contact"),
        lambda q: q.hazards.crane_operations or q.has_equipment("crane"),
    ),
    EmergencyRule(
        "swing_stage_rescue", "critical", "29 CFR 1926.451",
        "Swing stage (suspended scaffold) in use",
        ("Stranded platform rescue", "Suspension trauma prevention"),
        lambda q: q.hazards.swing_stage or q.has_equipment("swing stage"),
    ),
    EmergencyRule(
        "severe_weather", "medium", "29 CFR 1926.35(b)(1)",
        "Tornado or severe storm risk at this location",
        ("Shelter locations", "Weather monitoring"),
        _severe_weather,
    ),
    EmergencyRule(
        "hazmat_spill", "high", "29 CFR 1926.65",
        "Hazardous materials stored or used on site",
        ("Spill containment", "SDS access"),
        lambda q: q.hazards.hazardous_materials,
    ),
    EmergencyRule(
        "structural_collapse", "high", "29 CFR 1926.651",
        "Excavation or demolition work on site",
        ("Trench collapse rescue", "Secondary collapse prevention"),
        lambda q: q.hazards.excavation or q.hazards.demolition,
    ),
    EmergencyRule(
        "electrical_emergency", "high", "29 CFR 1926.416",
        "High voltage electrical work on site",
        ("De-energize before rescue", "Arc flash boundaries"),
        lambda q: q.hazards.electrical_high_voltage,
    ),
    EmergencyRule(
        "hot_work_fire_watch", "medium", "29 CFR 1926.352",
        "Welding, cutting or other hot work on site",
        ("30-minute fire watch", "Combustible clearance"),
        lambda q: q.hazards.hot_work,
    ),
]


def _emergency(rule: EmergencyRule) -> RequiredEmergency:
    return RequiredEmergency(
        type=rule.type,
        reason=rule.reason,
        osha_reference=rule.osha_reference,
        critical_details=list(rule.critical_details),
        priority=rule.priority,
    )


def classify_by_rules(q: EmergencyQuestionnaire) -> List[RequiredEmergency]:
    """Mandatory procedures plus those triggered by site characteristics."""
    return [
        _emergency(rule)
        for rule in MANDATORY_RULES + CONDITIONAL_RULES
        if rule.applies(q)
    ]


class EmergencyClassificationContract(StageContract):
    """Classify required emergency procedures for the site."""

    stage_id = "eap_agent_2"
    key = "emergency_classification"
    name = "Emergency Classifier"
    output_schema = ClassificationPayload

    def build_prompt(self, context: PipelineContext) -> str:
        q = questionnaire_of(context)
        return f"""You are an OSHA emergency planning specialist. Determine which emergency procedures are REQUIRED for this site.

SITE CHARACTERISTICS:
- Company: {q.company_name}
- Site Type: {q.site_type}
- Building Height: {q.building_height or 'N/A'} feet
- Work Elevation: {q.work_elevation or 'N/A'} feet
- Project: {q.project_description}
- Construction Phase: {q.construction_phase or 'N/A'}

HAZARDS PRESENT:
{to_prompt_json(q.hazards.model_dump(by_alias=True))}

EQUIPMENT IN USE:
{', '.join(q.equipment) or 'None listed'}

WEATHER CONCERNS:
{', '.join(q.weather_concerns) or 'None listed'}

CLASSIFICATION RULES:
ALWAYS REQUIRED (every EAP must have):
- Fire emergency
- Medical emergency
- General evacuation

CONDITIONALLY REQUIRED:
- Fall from height rescue: IF buildingHeight >6ft OR workElevation >6ft OR fallFromHeight=true OR swing stage equipment present
- Confined space rescue: IF confinedSpace=true
- Crane emergency: IF craneOperations=true OR "crane" in equipment list
- Swing stage rescue: IF swingStage=true OR "swing stage" in equipment
- Tornado/severe weather: IF weatherConcerns includes tornado/severe storms
- Hazmat spill: IF hazardousMaterials=true
- Structural collapse: IF excavation=true OR demolition=true
- Electrical emergency: IF electricalHighVoltage=true
- Hot work fire watch: IF hotWork=true

PRIORITY LEVELS:
- critical: could result in death if not addressed (fall rescue, confined space, crane)
- high: significant injury risk (electrical, hazmat, structural)
- medium: important but lower immediate risk (weather, hot work)

OUTPUT REQUIREMENTS:
Respond with ONLY valid JSON:

{{
  "requiredEmergencies": [
    {{
      "type": "fall_from_height_rescue",
      "reason": "Work at 90 feet with swing stage operations",
      "oshaReference": "29 CFR 1926.502(d)(20)",
      "criticalDetails": ["6-minute rescue window", "Suspension trauma prevention"],
      "priority": "critical"
    }}
  ],
  "optionalEmergencies": ["extreme_heat_protocol"],
  "totalProcedures": 4
}}"""

    def score(
        self, payload: ClassificationPayload, context: PipelineContext
    ) -> ClassificationPayload:
        """Merge in mandatory and rule-triggered procedures, mandatory first."""
        by_type = {}
        for emergency in classify_by_rules(questionnaire_of(context)):
            by_type[emergency.type] = emergency
        for emergency in payload.required_emergencies:
            # Model detail wins for types the rules also require
            by_type[emergency.type] = emergency

        mandatory = [r.type for r in MANDATORY_RULES]
        ordered = [by_type[t] for t in mandatory] + [
            e for t, e in by_type.items() if t not in mandatory
        ]
        optional = [o for o in payload.optional_emergencies if o not in by_type]
        return payload.model_copy(
            update={
                "required_emergencies": ordered,
                "optional_emergencies": optional,
                "total_procedures": len(ordered),
            }
        )

    def fallback(self, context: PipelineContext) -> ClassificationPayload:
        """The rule-based classification alone."""
        try:
            required = classify_by_rules(questionnaire_of(context))
        except ValueError:
            required = [_emergency(rule) for rule in MANDATORY_RULES]
        return ClassificationPayload(
            required_emergencies=required, total_procedures=len(required)
        )
