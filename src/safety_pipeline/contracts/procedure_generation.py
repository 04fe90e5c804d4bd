"""
Procedure Generation Stage.

Third stage of the emergency action plan generator. One model call per
required emergency; an emergency whose call fails gets a template
procedure built from the questionnaire instead.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

from safety_pipeline.contracts.base import FanOutStageContract, validate_payload
from safety_pipeline.contracts.eap_validation import questionnaire_of
from safety_pipeline.contracts.emergency_classification import classify_by_rules
from safety_pipeline.domain.payloads import (
    ClassificationPayload,
    EmergencyProcedure,
    ProcedureSetPayload,
    RequiredEmergency,
)
from safety_pipeline.domain.questionnaire import EmergencyQuestionnaire

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

RULE = "=" * 43


def _or(value: Any, default: str) -> str:
    return str(value) if value not in (None, "", []) else default


def _fire_procedure(q: EmergencyQuestionnaire) -> EmergencyProcedure:
    alarms = " or ".join(q.alarm_systems) or "site alarm"
    steps = f"""{RULE}
FIRE EMERGENCY PROCEDURE
Per OSHA 29 CFR 1926.35(b) & 1926.150
{RULE}

**IMMEDIATE ACTIONS:**

1. **DISCOVER FIRE**
   - Sound alarm: {alarms}
   - Call 911
   - Notify Emergency Coordinator: {q.emergency_coordinator.name} ({q.emergency_coordinator.phone})

2. **FIRE ASSESSMENT**
   IF SMALL AND SAFE TO FIGHT (trained personnel only):
   - Use nearest Type ABC extinguisher, PASS method: Pull, Aim, Squeeze, Sweep
   - Keep exit route behind you
   IF LARGE OR SPREADING:
   - DO NOT ATTEMPT TO FIGHT, evacuate immediately

3. **EVACUATION**
   - Close doors behind you (do not lock), use stairs, NEVER elevators
   - Proceed to Primary Assembly: {q.primary_assembly.location}
   - If blocked, use Secondary: {q.secondary_assembly.location}

4. **ASSEMBLY & ACCOUNTABILITY**
   - Report to Emergency Coordinator
   - Do NOT re-enter until the Fire Department clears the site

**SITE-SPECIFIC INFORMATION:**
- Building Height: {_or(q.building_height, 'N/A')} feet
- Fire Department: {q.fire_station.phone}
- Nearest Hospital: {q.nearest_hospital.name} ({q.nearest_hospital.phone})"""
    return EmergencyProcedure(
        emergency_type="fire_emergency",
        title="FIRE EMERGENCY PROCEDURE",
        when_applicable="Any fire, smoke, or burning smell detected on site",
        procedure_steps=steps,
        site_specific_factors=(
            f"{q.building_type}, {', '.join(q.equipment) or 'general equipment'}, "
            f"{q.total_employees} workers on site"
        ),
        equipment_needed="Fire extinguishers (Type ABC), alarm systems, emergency lighting",
        training_required="Annual fire safety training, fire extinguisher use, evacuation drills",
        osha_reference="29 CFR 1926.35(b), 29 CFR 1926.150",
    )


def _medical_procedure(q: EmergencyQuestionnaire) -> EmergencyProcedure:
    hospital = q.nearest_hospital
    eta = math.ceil(hospital.distance * 2) if hospital.distance else "Unknown"
    steps = f"""{RULE}
MEDICAL EMERGENCY PROCEDURE
Per OSHA 29 CFR 1926.35(b)(4) & 1926.50
{RULE}

**IMMEDIATE ACTIONS:**

1. **ASSESS SITUATION**
   - Check scene safety BEFORE approaching the victim
   - Determine severity: life-threatening vs non-emergency

2. **CALL FOR HELP**
   LIFE-THREATENING (unconscious, not breathing, severe bleeding, chest pain, fall from >6 feet):
   - Call 911 IMMEDIATELY
   - Notify Emergency Coordinator: {q.emergency_coordinator.name} at {q.emergency_coordinator.phone}
   - Send a runner to meet the ambulance at the site entrance
   NON-EMERGENCY:
   - Provide first aid from the site first aid kit and contact the Emergency Coordinator

3. **PROVIDE FIRST AID**
   - Only if trained in first aid/CPR, use gloves
   - Do NOT move the victim unless in immediate danger

4. **HOSPITAL INFORMATION**
   - Nearest: {hospital.name}
   - Address: {_or(hospital.address, 'See contact list')}
   - Phone: {hospital.phone}
   - Distance: {hospital.distance:g} miles (ETA approximately {eta} minutes)

5. **DOCUMENTATION**
   - OSHA 300 log within 7 days if recordable
   - Incident investigation within 24 hours

**EMERGENCY CONTACTS:**
- Emergency Coordinator: {q.emergency_coordinator.name} - {q.emergency_coordinator.phone}
- Alternate: {q.alternate_coordinator.name} - {q.alternate_coordinator.phone}
- EMS: 911
- Poison Control: 1-800-222-1222"""
    return EmergencyProcedure(
        emergency_type="medical_emergency",
        title="MEDICAL EMERGENCY PROCEDURE",
        when_applicable="Any injury, illness, or medical emergency requiring immediate attention",
        procedure_steps=steps,
        site_specific_factors=(
            f"{q.total_employees} workers, {_or(q.building_height, 'N/A')}ft elevation, "
            f"rescue capability: {_or(q.rescue_capability, 'not specified')}"
        ),
        equipment_needed=(
            "First aid kits, AED, emergency eye wash, trauma supplies, communication devices"
        ),
        training_required=(
            "First aid/CPR certification, bloodborne pathogen training, emergency response drills"
        ),
        osha_reference="29 CFR 1926.35(b)(4), 29 CFR 1926.50",
    )


def _evacuation_procedure(q: EmergencyQuestionnaire) -> EmergencyProcedure:
    alarms = " or ".join(q.alarm_systems) or "site alarm"
    steps = f"""{RULE}
GENERAL EVACUATION PROCEDURE
Per OSHA 29 CFR 1926.35(a)
{RULE}

**EVACUATION TRIGGERS:**
- Fire or explosion, hazardous material release, structural collapse
- Severe weather, gas leak or utility failure
- Any order from the Emergency Coordinator

**EVACUATION STEPS:**

1. **ALARM ACTIVATION**
   - Emergency Coordinator activates: {alarms}
   - Continuous alarm = EVACUATE IMMEDIATELY

2. **IMMEDIATE ACTIONS**
   - Stop work, shut down equipment only if there is no delay
   - Assist injured or disabled personnel

3. **EVACUATION ROUTES**
   - Use the nearest marked exit, walk, use stairs, NEVER elevators
   - Do not return for any reason

4. **ASSEMBLY AREAS**
   PRIMARY: {q.primary_assembly.location} (GPS: {_or(q.primary_assembly.gps_coordinates, 'See site map')})
   SECONDARY: {q.secondary_assembly.location} (GPS: {_or(q.secondary_assembly.gps_coordinates, 'See site map')})

5. **ACCOUNTABILITY**
   - Supervisors take headcount and report missing personnel IMMEDIATELY
   - Do NOT re-enter to search

6. **COMMUNICATION**
   - Radio channel: {_or(q.radio_channel, 'Channel 1')}

7. **ALL CLEAR**
   - Return only when the Emergency Coordinator announces all clear

**SPECIAL CONSIDERATIONS:**
- Building Height: {_or(q.building_height, 'N/A')} feet
- Total Employees: {q.total_employees}
- Equipment on Site: {', '.join(q.equipment) or 'None listed'}
- Site Type: {q.site_type}"""
    return EmergencyProcedure(
        emergency_type="general_evacuation",
        title="GENERAL EVACUATION PROCEDURE",
        when_applicable="Any emergency requiring personnel to leave the worksite",
        procedure_steps=steps,
        site_specific_factors=(
            f"{q.building_type}, {q.project_description}, outdoor assembly areas"
        ),
        equipment_needed=(
            "Alarm systems, emergency lighting, evacuation maps, assembly area signs, radios"
        ),
        training_required=(
            "Quarterly evacuation drills, evacuation route familiarization, "
            "assembly area procedures"
        ),
        osha_reference="29 CFR 1926.35(a)",
    )


_TEMPLATES = {
    "fire_emergency": _fire_procedure,
    "medical_emergency": _medical_procedure,
    "general_evacuation": _evacuation_procedure,
}


def template_procedure(
    emergency: RequiredEmergency, q: EmergencyQuestionnaire
) -> EmergencyProcedure:
    """OSHA template for mandatory types, a placeholder procedure otherwise."""
    builder = _TEMPLATES.get(emergency.type)
    if builder is not None:
        return builder(q)
    reference = emergency.osha_reference or q.osha_standard
    return EmergencyProcedure(
        emergency_type=emergency.type,
        title=emergency.type.replace("_", " ").upper(),
        when_applicable=emergency.reason,
        procedure_steps=(
            "This procedure must be developed based on site-specific hazards and "
            f"OSHA requirements.\n\nRefer to: {reference}"
        ),
        site_specific_factors=q.project_description,
        equipment_needed="Per OSHA requirements",
        training_required="Per OSHA requirements",
        osha_reference=reference,
    )


class ProcedureGenerationContract(FanOutStageContract):
    """Write one site-specific procedure per required emergency."""

    stage_id = "eap_agent_3"
    key = "procedures"
    name = "Procedure Generator"
    output_schema = ProcedureSetPayload
    item_schema = EmergencyProcedure

    def items(self, context: PipelineContext) -> List[RequiredEmergency]:
        classification = context.typed("emergency_classification", ClassificationPayload)
        return list(classification.required_emergencies)

    def build_item_prompt(
        self, item: RequiredEmergency, context: PipelineContext
    ) -> str:
        q = questionnaire_of(context)
        response_time = (
            f" - {q.fire_station.estimated_response_time:g} min response"
            if q.fire_station.estimated_response_time
            else ""
        )
        return f"""You are writing a site-specific emergency procedure for an OSHA-compliant Emergency Action Plan.

SITE INFORMATION:
Company: {q.company_name}
Location: {q.site_address}, {q.city}, {q.state}
Project: {q.project_description}
Building: {q.building_type}
Height: {_or(q.building_height, 'N/A')} feet
Workers: {q.total_employees}

Emergency Coordinator: {q.emergency_coordinator.name} ({q.emergency_coordinator.phone})
Assembly Point: {q.primary_assembly.location}
Nearest Hospital: {q.nearest_hospital.name} - {q.nearest_hospital.distance:g} miles ({q.nearest_hospital.phone})
Fire Department: {q.fire_station.phone}{response_time}

Alarm Systems: {', '.join(q.alarm_systems) or 'Not specified'}
Radio Channel: {_or(q.radio_channel, 'Not specified')}

EMERGENCY TYPE: {item.type}
WHY REQUIRED: {item.reason}
OSHA REFERENCE: {item.osha_reference}
CRITICAL DETAILS: {'; '.join(item.critical_details)}

REQUIREMENTS FOR THIS PROCEDURE:
1. Use ACTUAL site details (real names, addresses, phone numbers, distances)
2. Write STEP-BY-STEP procedures with specific timings where critical
3. Include SITE-SPECIFIC challenges (wind, access, equipment locations)
4. Specify EXACT equipment and where it is located
5. Name SPECIFIC personnel with their roles
6. Include ALTERNATIVE plans if the primary plan fails
7. Add VERIFICATION methods to ensure the procedure works

OUTPUT REQUIREMENTS:
Respond with ONLY valid JSON:

{{
  "emergencyType": "{item.type}",
  "title": "FALL FROM HEIGHT RESCUE PROCEDURE",
  "whenApplicable": "Any worker suspended in fall arrest system",
  "procedureSteps": "Full formatted procedure text - use \\n for line breaks",
  "siteSpecificFactors": "Wind conditions, access, coordination with the fire station",
  "equipmentNeeded": "Rescue kit, descent device, trauma straps",
  "trainingRequired": "Quarterly rescue drills",
  "oshaReference": "{item.osha_reference}"
}}"""

    def parse_item(
        self, value: Dict[str, Any], item: RequiredEmergency, context: PipelineContext
    ) -> EmergencyProcedure:
        data = dict(value)
        data.setdefault("emergencyType", item.type)
        data.setdefault("oshaReference", item.osha_reference)
        return validate_payload(self.item_schema, data, self.stage_id)

    def item_fallback(
        self, item: RequiredEmergency, context: PipelineContext
    ) -> EmergencyProcedure:
        return template_procedure(item, questionnaire_of(context))

    def combine(
        self,
        outcomes: List[Tuple[RequiredEmergency, EmergencyProcedure, bool]],
        context: PipelineContext,
    ) -> ProcedureSetPayload:
        return ProcedureSetPayload(
            procedures=[procedure for _, procedure, _ in outcomes],
            generated=[item.type for item, _, generated in outcomes if generated],
            fallbacks=[item.type for item, _, generated in outcomes if not generated],
        )

    def fallback(self, context: PipelineContext) -> ProcedureSetPayload:
        """Template procedures for the rule-based classification."""
        q = questionnaire_of(context)
        emergencies = classify_by_rules(q)
        return ProcedureSetPayload(
            procedures=[template_procedure(e, q) for e in emergencies],
            fallbacks=[e.type for e in emergencies],
        )
