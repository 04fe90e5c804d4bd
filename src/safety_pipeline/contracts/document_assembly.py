"""
Document Assembly Stage.

Final stage of the emergency action plan generator. No model call: the
plan sections are filled from the questionnaire and the generated
procedures.

Completeness score:
    - +50 when the questionnaire is complete
    - +20 when no required field is missing
    - +30 when at least 3 procedures were produced
    - capped at 100
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from safety_pipeline.contracts.base import StageContract
from safety_pipeline.contracts.eap_validation import questionnaire_of
from safety_pipeline.domain.entities import StageKind
from safety_pipeline.domain.payloads import (
    EmergencyPlanDocument,
    EmergencyProcedure,
    PlanValidationPayload,
    ProcedureSetPayload,
)
from safety_pipeline.domain.questionnaire import EmergencyQuestionnaire

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

DOCUMENT_VERSION = "1.0"
RULE = "=" * 43
MIN_COMPLIANT_PROCEDURES = 2


def calculate_completeness(
    validation: PlanValidationPayload, procedure_count: int
) -> int:
    score = 0
    if validation.complete:
        score += 50
    if not validation.missing_required:
        score += 20
    if procedure_count >= 3:
        score += 30
    return min(score, 100)


def _heading(title: str) -> str:
    return f"{RULE}\n{title}\n{RULE}"


def _lines(*parts: Optional[str]) -> str:
    """Join parts with newlines, skipping missing ones."""
    return "\n".join(p for p in parts if p is not None)


def _hazard_label(name: str) -> str:
    words = name.replace("_", " ").strip()
    return words[:1].upper() + words[1:]


def _date(value: datetime) -> str:
    return value.strftime("%B %d, %Y")


def cover_page(q: EmergencyQuestionnaire, created: datetime) -> str:
    site_type = {
        "construction": "Construction",
        "general_industry": "General Industry",
    }.get(q.site_type, "Maritime")
    return _lines(
        _heading("EMERGENCY ACTION PLAN"),
        "",
        q.company_name,
        q.project_description,
        "",
        "Site Location:",
        q.site_address,
        f"{q.city}, {q.state} {q.zip_code}",
        "",
        f"Date Created: {_date(created)}",
        f"Document Version: {DOCUMENT_VERSION}",
        "",
        f"Site Type: {site_type}",
        f"Building Type: {q.building_type}",
        f"Building Height: {q.building_height:g} feet" if q.building_height else None,
        f"Work Elevation: {q.work_elevation:g} feet" if q.work_elevation else None,
        f"Number of Workers: {q.total_employees}",
        "",
        "This Emergency Action Plan complies with OSHA Standard:",
        q.osha_standard,
        "",
        f"Emergency Coordinator: {q.emergency_coordinator.name}",
        f"Phone: {q.emergency_coordinator.phone}",
    )


SECTION_TITLES = [
    "Company Policy",
    "Assignment of Responsibilities",
    "Emergency Reporting Procedures",
    "Evacuation Procedures",
    "Employee Accounting",
    "Critical Operations Shutdown",
    "Rescue and Medical Duties",
    "Emergency Contact Information",
    "Specific Emergency Procedures",
    "Alarm Systems",
    "Training Requirements",
    "Plan Review and Updates",
]


def table_of_contents() -> str:
    entries = [f"Section {i}: {title}" for i, title in enumerate(SECTION_TITLES, start=1)]
    return _lines(
        _heading("TABLE OF CONTENTS"),
        "",
        *entries,
        "",
        "Attachments:",
        "- Appendix A: Evacuation Route Maps",
        "- Appendix B: Training Roster",
        "- Appendix C: Equipment Inspection Logs",
        "- Appendix D: Coordination Letters",
        "- Appendix E: Site-Specific Information",
    )


def policy_section(q: EmergencyQuestionnaire) -> str:
    hazards = [
        f"- {_hazard_label(name)}"
        for name, present in q.hazards.model_dump().items()
        if present is True
    ]
    phase = f" working on {q.construction_phase}" if q.construction_phase else ""
    return _lines(
        _heading("SECTION 1: COMPANY POLICY"),
        "",
        "The objective of this Emergency Action Plan is to comply with the "
        "Occupational Safety and Health Administration's (OSHA) Emergency Action "
        f"Plans Standard, {q.osha_standard}, and to prepare employees for dealing "
        "with emergency situations.",
        "",
        "This plan applies to all emergencies that may reasonably be expected to "
        f"occur at {q.company_name} operations located at {q.site_address}, "
        f"{q.city}, {q.state}.",
        "",
        "**Scope of Coverage:**",
        f"This plan covers {q.total_employees} employees{phase} at the {q.building_type}.",
        "",
        "**Hazards Addressed:**",
        "\n".join(hazards) or "- General construction hazards",
        "",
        "**Plan Availability:**",
        "- Posted at the main site entrance",
        "- Available in the site office for employee review",
        "- Discussed during new employee orientation",
    )


def responsibilities_section(q: EmergencyQuestionnaire) -> str:
    primary, alternate = q.emergency_coordinator, q.alternate_coordinator
    return _lines(
        _heading("SECTION 2: ASSIGNMENT OF RESPONSIBILITIES"),
        "",
        "**Emergency Coordinator:**",
        f"Name: {primary.name}",
        f"Title: {primary.title}",
        f"Phone: {primary.phone}",
        "",
        "**Responsibilities:**",
        "- Manage and maintain this Emergency Action Plan",
        "- Coordinate with local emergency responders (fire, police, EMS)",
        "- Maintain all training records and conduct emergency drills",
        "- Authority to order evacuation or work stoppage",
        "",
        "**Alternate Emergency Coordinator:**",
        f"Name: {alternate.name}",
        f"Title: {alternate.title}",
        f"Phone: {alternate.phone}",
        "",
        "The Alternate Emergency Coordinator assumes all responsibilities when the "
        "Emergency Coordinator is unavailable.",
    )


def reporting_section(q: EmergencyQuestionnaire) -> str:
    alarms = "\n".join(f"- {a}" for a in q.alarm_systems) or "- Verbal alert"
    radio = (
        f'**Radio Protocol:** Broadcast "EMERGENCY - [type] at [location]" on {q.radio_channel}'
        if q.radio_channel
        else None
    )
    return _lines(
        _heading("SECTION 3: EMERGENCY REPORTING PROCEDURES"),
        "",
        "**Step 1: Alert Others**",
        alarms,
        radio,
        "",
        "**Step 2: Call for Help**",
        "- Life-threatening emergencies: Call 911 FIRST",
        f"- All emergencies: Notify Emergency Coordinator: {q.emergency_coordinator.phone}",
        "",
        "**Step 3: Provide Information**",
        "1. Type of emergency",
        f"2. Exact location: {q.full_address}",
        "3. Number of people involved or injured",
        "4. Your name and callback number",
        "5. Any immediate hazards",
        "",
        "**Step 4: Meet Emergency Responders**",
        "- A designated person meets responders at the main entrance",
    )


def evacuation_section(q: EmergencyQuestionnaire) -> str:
    stairs = " - Use stairs only" if (q.building_height or 0) > 30 else ""
    return _lines(
        _heading("SECTION 4: EVACUATION PROCEDURES"),
        "",
        "**Primary Assembly Point:**",
        q.primary_assembly.location,
        f"GPS: {q.primary_assembly.gps_coordinates}" if q.primary_assembly.gps_coordinates else None,
        "",
        "**Secondary Assembly Point:**",
        q.secondary_assembly.location,
        f"GPS: {q.secondary_assembly.gps_coordinates}"
        if q.secondary_assembly.gps_coordinates
        else None,
        "",
        "Use the secondary assembly point if the primary is unsafe or inaccessible.",
        "",
        "**When Evacuation is Ordered:**",
        "1. Stop work immediately, secure tools only if safe (< 30 seconds)",
        "2. Alert nearby workers",
        f"3. Use the nearest safe exit, DO NOT USE ELEVATORS{stairs}",
        "4. Proceed to the assembly area and report for head count",
        '5. DO NOT leave or re-enter until "All Clear"',
        "",
        "**Who Can Order Evacuation:**",
        f"- Emergency Coordinator: {q.emergency_coordinator.name}",
        f"- Alternate Coordinator: {q.alternate_coordinator.name}",
        "- Any employee observing immediate danger",
    )


def accounting_section(q: EmergencyQuestionnaire) -> str:
    return _lines(
        _heading("SECTION 5: EMPLOYEE ACCOUNTING"),
        "",
        f"All {q.total_employees} employees are accounted for after evacuation.",
        "",
        "- Daily sign-in sheet maintained at the site entrance",
        "- Supervisors conduct head counts of their crews",
        "- Missing persons reported immediately to the Emergency Coordinator",
        "- DO NOT re-enter to search, inform emergency responders",
        f"- Radio communication: {q.radio_channel or 'As available'}",
        "",
        'Only the Emergency Coordinator or fire department can give "All Clear".',
    )


def critical_operations_section(q: EmergencyQuestionnaire) -> str:
    immediate = [
        "- **Cranes:** Set load down, engage brake, shut down engine"
        if q.hazards.crane_operations
        else None,
        "- **Hot Work:** Extinguish torches, shut off gas valves" if q.hazards.hot_work else None,
        "- **Electrical:** De-energize if safe to do so"
        if q.hazards.electrical_high_voltage
        else None,
        "- **Power Tools:** Drop tools, leave powered equipment where it is",
        "- **DO NOT DELAY** evacuation to shut down equipment",
    ]
    return _lines(
        _heading("SECTION 6: CRITICAL OPERATIONS SHUTDOWN"),
        "",
        "**Equipment at This Site:**",
        ", ".join(q.equipment) or "Various construction equipment",
        "",
        "**IMMEDIATE (0-30 seconds):**",
        *immediate,
        "",
        "**Designated Shutdown Personnel:**",
        f"Emergency Coordinator: {q.emergency_coordinator.name}",
        f"Alternate: {q.alternate_coordinator.name}",
    )


def _is_rescue(procedure: EmergencyProcedure) -> bool:
    kind = procedure.emergency_type
    return "rescue" in kind or "fall" in kind or "confined" in kind


def rescue_medical_section(
    q: EmergencyQuestionnaire, procedures: List[EmergencyProcedure]
) -> str:
    rescue_provider = {
        "local_fire_ems": "Local Fire Department/EMS",
        "trained_employees": "Trained Employee Rescue Team",
    }.get(q.rescue_capability or "", "Contracted Rescue Service")
    rescue = [
        f"**{p.title}**\nWhen Applicable: {p.when_applicable}\n"
        f"Equipment Needed: {p.equipment_needed}\nSee Section 9 for detailed procedures."
        for p in procedures
        if _is_rescue(p)
    ]
    hospital = q.nearest_hospital
    return _lines(
        _heading("SECTION 7: RESCUE AND MEDICAL DUTIES"),
        "",
        "**Rescue Service Provider:**",
        rescue_provider,
        "",
        "**Life-Threatening Emergencies:**",
        "- Call 911 immediately",
        "- Begin CPR if trained and necessary",
        "- DO NOT move the patient unless in immediate danger",
        "",
        "**Nearest Medical Facility:**",
        hospital.name,
        hospital.address,
        f"Distance: {hospital.distance:g} miles",
        f"Phone: {hospital.phone}",
        "",
        "**Specialized Rescue Procedures:**",
        "\n\n".join(rescue) or "Standard emergency response procedures apply.",
    )


def contacts_section(q: EmergencyQuestionnaire) -> str:
    fire = q.fire_station
    return _lines(
        _heading("SECTION 8: EMERGENCY CONTACT INFORMATION"),
        "",
        "**EMERGENCY: CALL 911 FIRST FOR LIFE-THREATENING SITUATIONS**",
        "",
        f"Emergency Coordinator: {q.emergency_coordinator.name} - {q.emergency_coordinator.phone}",
        f"Alternate Coordinator: {q.alternate_coordinator.name} - {q.alternate_coordinator.phone}",
        "",
        f"Fire Department: {fire.phone}",
        f"Estimated Response: {fire.estimated_response_time:g} minutes"
        if fire.estimated_response_time
        else None,
        f"Police Department: {q.local_police.phone}",
        f"Hospital: {q.nearest_hospital.name} - {q.nearest_hospital.phone}",
        "",
        f"Site Address: {q.full_address}",
        f"Number of Workers: {q.total_employees}",
        "",
        "**Additional Emergency Numbers:**",
        "- Poison Control: 1-800-222-1222",
        "- OSHA Hotline: 1-800-321-6742",
    )


def specific_procedures_section(procedures: List[EmergencyProcedure]) -> str:
    blocks = [
        _lines(
            _heading(p.title),
            f"OSHA Reference: {p.osha_reference}",
            f"When Applicable: {p.when_applicable}",
            "",
            p.procedure_steps,
            "",
            "Site-Specific Factors:",
            p.site_specific_factors,
            "",
            "Equipment Needed:",
            p.equipment_needed,
            "",
            "Training Required:",
            p.training_required,
        )
        for p in procedures
    ]
    return _lines(
        _heading("SECTION 9: SPECIFIC EMERGENCY PROCEDURES"),
        "",
        "This section contains site-specific emergency procedures based on the "
        "hazards present at this location.",
        "",
        "\n\n".join(blocks),
    )


def alarm_section(q: EmergencyQuestionnaire) -> str:
    alarms = "\n".join(f"{i}. {a}" for i, a in enumerate(q.alarm_systems, start=1))
    primary = q.alarm_systems[0] if q.alarm_systems else "Primary alarm system"
    alternate = q.alarm_systems[1] if len(q.alarm_systems) > 1 else "Alternate alarm"
    return _lines(
        _heading("SECTION 10: ALARM SYSTEMS"),
        "",
        "**Alarm Systems in Use at This Site:**",
        alarms or "None documented",
        f"\n**Radio Communication:**\nChannel: {q.radio_channel}" if q.radio_channel else None,
        "",
        f"**EVACUATION ALARM:** {primary}: Continuous signal",
        f"**SHELTER IN PLACE:** {alternate}: Intermittent signal",
        f"**ALL CLEAR:** Announced via {q.radio_channel or 'on-site communication'}",
        "",
        f"Report malfunctioning alarms to: {q.emergency_coordinator.name}",
    )


def training_section(q: EmergencyQuestionnaire) -> str:
    concerns = " ".join(q.weather_concerns).lower()
    drills = [
        "- Fire evacuation drill",
        "- Fall rescue drill" if q.hazards.fall_from_height else None,
        "- Confined space rescue simulation" if q.hazards.confined_space else None,
        "- Tornado drill" if "tornado" in concerns else None,
        "- Medical emergency response",
    ]
    return _lines(
        _heading("SECTION 11: TRAINING REQUIREMENTS"),
        "",
        "All new employees receive Emergency Action Plan training before beginning work.",
        f"Trainer: {q.emergency_coordinator.name}, Emergency Coordinator",
        "",
        "**Quarterly Emergency Drills:**",
        *drills,
        "",
        "**First Aid/CPR:** at least 2 trained employees per shift, renewed every 2 years",
    )


def review_section(q: EmergencyQuestionnaire, created: datetime) -> str:
    next_review = created + timedelta(days=365)
    return _lines(
        _heading("SECTION 12: PLAN REVIEW AND UPDATES"),
        "",
        "**Annual Review:** Required at least once per year",
        f"Next Review Date: {_date(next_review)}",
        "",
        "This plan must also be reviewed whenever new hazards, layout changes, "
        "personnel changes or drill findings affect it.",
        "",
        f"Current Version: {DOCUMENT_VERSION}",
        f"Date Created: {_date(created)}",
        "",
        "**Revision History:**",
        "| Version | Date | Changes Made | Approved By |",
        "|---------|------|--------------|-------------|",
        f"| {DOCUMENT_VERSION} | {created.date().isoformat()} | Initial creation "
        f"| {q.emergency_coordinator.name} |",
    )


def attachments_section(q: EmergencyQuestionnaire) -> str:
    return _lines(
        _heading("ATTACHMENTS"),
        "",
        "**APPENDIX A: EVACUATION ROUTE MAPS**",
        "**APPENDIX B: TRAINING ROSTER**",
        "**APPENDIX C: EQUIPMENT INSPECTION LOGS**",
        "**APPENDIX D: COORDINATION LETTERS**",
        "",
        "**APPENDIX E: SITE-SPECIFIC INFORMATION**",
        f"Site Location: {q.full_address}",
        "",
        "**Weather Concerns at This Location:**",
        "\n".join(f"- {w}" for w in q.weather_concerns) or "- None listed",
        "",
        "**Equipment Inventory:**",
        "\n".join(f"- {e}" for e in q.equipment) or "- None listed",
        "",
        _heading("END OF EMERGENCY ACTION PLAN"),
    )


def build_sections(
    q: EmergencyQuestionnaire,
    procedures: List[EmergencyProcedure],
    created: datetime,
) -> Dict[str, str]:
    return {
        "coverPage": cover_page(q, created),
        "tableOfContents": table_of_contents(),
        "section1_policy": policy_section(q),
        "section2_responsibilities": responsibilities_section(q),
        "section3_emergencyReporting": reporting_section(q),
        "section4_evacuation": evacuation_section(q),
        "section5_accounting": accounting_section(q),
        "section6_criticalOperations": critical_operations_section(q),
        "section7_rescueMedical": rescue_medical_section(q, procedures),
        "section8_contacts": contacts_section(q),
        "section9_specificProcedures": specific_procedures_section(procedures),
        "section10_alarmSystems": alarm_section(q),
        "section11_training": training_section(q),
        "section12_review": review_section(q, created),
        "attachments": attachments_section(q),
    }


class DocumentAssemblyContract(StageContract):
    """Assemble the emergency action plan document."""

    stage_id = "eap_agent_4"
    key = "document"
    name = "Document Assembler"
    kind = StageKind.DETERMINISTIC
    output_schema = EmergencyPlanDocument
    model_label = "template"

    def build(self, context: PipelineContext) -> EmergencyPlanDocument:
        q = questionnaire_of(context)
        validation = context.typed("questionnaire_validation", PlanValidationPayload)
        procedures = context.typed("procedures", ProcedureSetPayload).procedures
        created = datetime.now()

        sections = build_sections(q, procedures, created)
        document = "\n\n".join(sections.values())
        if not validation.complete:
            notice = _lines(
                _heading("INCOMPLETE PLAN - NOT READY FOR USE"),
                "The following required information is missing:",
                *[f"- {m}" for m in validation.missing_required],
            )
            document = f"{notice}\n\n{document}"

        return EmergencyPlanDocument(
            metadata=self._metadata(q, created),
            sections=sections,
            completeness=calculate_completeness(validation, len(procedures)),
            osha_compliant=(
                validation.ready_to_generate
                and len(procedures) >= MIN_COMPLIANT_PROCEDURES
            ),
            complete=validation.complete,
            document=document,
        )

    def fallback(self, context: PipelineContext) -> EmergencyPlanDocument:
        """Notice-only document when assembly is impossible."""
        payload: Dict[str, Any] = context.payload.get("questionnaire", context.payload)
        company = payload.get("companyName") if isinstance(payload, dict) else None
        document = _lines(
            _heading("EMERGENCY ACTION PLAN - GENERATION ERROR"),
            "",
            f"The plan for {company or 'this site'} could not be assembled.",
            "Review the questionnaire and the system logs, then try again.",
        )
        return EmergencyPlanDocument(
            metadata={
                "generatedDate": datetime.now().isoformat(),
                "companyName": company or "",
                "documentVersion": DOCUMENT_VERSION,
            },
            sections={},
            completeness=0,
            osha_compliant=False,
            complete=False,
            document=document,
        )

    def report_text(self, payload: Dict[str, Any]) -> Optional[str]:
        return (payload or {}).get("document")

    @staticmethod
    def _metadata(q: EmergencyQuestionnaire, created: datetime) -> Dict[str, Any]:
        return {
            "generatedDate": created.isoformat(),
            "companyName": q.company_name,
            "siteAddress": q.full_address,
            "documentVersion": DOCUMENT_VERSION,
            "oshaStandard": q.osha_standard,
        }
