"""
Questionnaire Validation Stage.

First stage of the emergency action plan generator. Rule-based, no model
call. An incomplete questionnaire does not stop the pipeline: the stage is
reported unsuccessful and the assembled plan is flagged incomplete.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from safety_pipeline.contracts.base import StageContract
from safety_pipeline.domain.entities import StageKind
from safety_pipeline.domain.payloads import PlanValidationPayload
from safety_pipeline.domain.questionnaire import EmergencyQuestionnaire

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

# Heights above this (feet) should come with a fall hazard
FALL_HAZARD_HEIGHT_FT = 30


def questionnaire_of(context: PipelineContext) -> EmergencyQuestionnaire:
    return EmergencyQuestionnaire.from_payload(context.payload)


def required_fields(q: EmergencyQuestionnaire) -> List[Tuple[str, object]]:
    """(label, value) pairs that must be filled in."""
    return [
        ("Company name", q.company_name),
        ("Site address", q.site_address),
        ("City", q.city),
        ("State", q.state),
        ("ZIP code", q.zip_code),
        ("Project description", q.project_description),
        ("Building type", q.building_type),
        ("Emergency coordinator name", q.emergency_coordinator.name),
        ("Emergency coordinator title", q.emergency_coordinator.title),
        ("Emergency coordinator phone", q.emergency_coordinator.phone),
        ("Alternate coordinator name", q.alternate_coordinator.name),
        ("Alternate coordinator phone", q.alternate_coordinator.phone),
        ("Hospital name", q.nearest_hospital.name),
        ("Hospital phone", q.nearest_hospital.phone),
        ("Fire department phone", q.fire_station.phone),
        ("Police phone", q.local_police.phone),
        ("Primary assembly location", q.primary_assembly.location),
        ("Secondary assembly location", q.secondary_assembly.location),
        ("At least one alarm system", q.alarm_systems),
    ]


def validate_questionnaire(q: EmergencyQuestionnaire) -> PlanValidationPayload:
    """Check required fields, hazard/equipment alignment and consistency."""
    missing = [label for label, value in required_fields(q) if not value]

    mismatches: List[str] = []
    if q.hazards.crane_operations and not q.has_equipment("crane"):
        mismatches.append("Crane operations checked but no crane in equipment list")

    warnings: List[str] = []
    if (q.building_height or 0) > FALL_HAZARD_HEIGHT_FT and not q.hazards.fall_from_height:
        warnings.append(f"Building height >{FALL_HAZARD_HEIGHT_FT}ft but fall hazard not marked")
    if not q.primary_assembly.gps_coordinates:
        warnings.append("Missing GPS coordinates for primary assembly")
    if not q.radio_channel:
        warnings.append("No radio channel specified")

    return PlanValidationPayload(
        complete=not missing,
        missing_required=missing,
        warnings=warnings,
        hazard_equipment_mismatches=mismatches,
        ready_to_generate=not missing,
    )


class QuestionnaireValidationContract(StageContract):
    """Validate questionnaire data and check for missing fields."""

    stage_id = "eap_agent_1"
    key = "questionnaire_validation"
    name = "Data Validator"
    kind = StageKind.DETERMINISTIC
    output_schema = PlanValidationPayload
    model_label = "rule-based-validation"

    def build(self, context: PipelineContext) -> PlanValidationPayload:
        return validate_questionnaire(questionnaire_of(context))

    def degradation(self, payload: PlanValidationPayload) -> Optional[str]:
        if payload.ready_to_generate:
            return None
        return "Incomplete questionnaire: " + ", ".join(payload.missing_required)

    def fallback(self, context: PipelineContext) -> PlanValidationPayload:
        """Questionnaire could not be read at all."""
        return PlanValidationPayload(
            complete=False,
            missing_required=["Questionnaire could not be parsed"],
            ready_to_generate=False,
        )
