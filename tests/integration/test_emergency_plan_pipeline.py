"""
Integration Tests for the Emergency Action Plan Pipeline.

Tests the complete flow:
    questionnaire -> validation -> classification -> procedures -> document

Uses the ScriptedModelAdapter in place of the model service.
"""

from __future__ import annotations

from safety_pipeline.adapters.scripted_model import ScriptedModelAdapter
from safety_pipeline.pipelines import build_orchestrator
from safety_pipeline.resilience.errors import ModelInvocationError

from tests.fixtures.model_responses import CLASSIFICATION, as_model_text, procedure

MANDATORY = ["fire_emergency", "medical_emergency", "general_evacuation"]


def answer_procedure(prompt: str) -> str:
    """Generated procedure titled after the emergency type in the prompt."""
    emergency_type = prompt.split("EMERGENCY TYPE: ")[1].splitlines()[0]
    return as_model_text(procedure(f"{emergency_type.upper()} SITE PROCEDURE"))


class TestEmergencyPlanPipeline:
    """Integration tests for the emergency plan pipeline."""

    def test_full_run(self, questionnaire, audit_sink) -> None:
        """
        SCENARIO: Complete questionnaire, model answers every call
        EXPECTED: Seven generated procedures, compliant plan, 100% complete
        """
        # Arrange
        model = ScriptedModelAdapter([as_model_text(CLASSIFICATION)], default=answer_procedure)
        orchestrator = build_orchestrator("emergency_plan", model, audit_sink=audit_sink)

        # Act
        outcome = orchestrator.run(questionnaire, analysis_id="eap-run-1")

        # Assert
        assert outcome.all_succeeded
        assert model.call_count == 1 + 7
        assert "Skyline Glazing LLC" in outcome.report
        assert "FIRE_EMERGENCY SITE PROCEDURE" in outcome.report
        assert "INCOMPLETE PLAN" not in outcome.report

        metadata = outcome.metadata
        assert metadata["completeness"] == 100
        assert metadata["oshaCompliant"] is True
        assert metadata["procedureCount"] == 7
        assert metadata["templateProcedures"] == []
        assert metadata["stages"]["questionnaire_validation"]["model"] == "rule-based-validation"
        assert metadata["stages"]["document"]["model"] == "template"
        assert len(audit_sink.records_for("eap-run-1")) == 4

    def test_one_procedure_per_required_emergency(self, questionnaire) -> None:
        """
        SCENARIO: Classification merged with site rules
        EXPECTED: Procedure prompts in mandatory-first order
        """
        model = ScriptedModelAdapter([as_model_text(CLASSIFICATION)], default=answer_procedure)

        build_orchestrator("emergency_plan", model).run(questionnaire)

        prompted = [
            call.prompt.split("EMERGENCY TYPE: ")[1].splitlines()[0] for call in model.calls[1:]
        ]
        assert prompted[:3] == MANDATORY
        assert set(prompted[3:]) == {
            "fall_from_height_rescue",
            "crane_emergency",
            "swing_stage_rescue",
            "severe_weather",
        }

    def test_partial_procedure_failure(self, questionnaire) -> None:
        """
        SCENARIO: Second procedure call hits the quota
        EXPECTED: Template used for that type only, stage flagged, plan complete
        """
        # Arrange
        model = ScriptedModelAdapter(
            [
                as_model_text(CLASSIFICATION),
                answer_procedure,
                ModelInvocationError("Quota exceeded", quota_exceeded=True),
            ],
            default=answer_procedure,
        )

        # Act
        outcome = build_orchestrator("emergency_plan", model).run(questionnaire)

        # Assert
        procedures = outcome.get_stage("procedures")
        assert not procedures.success
        assert procedures.error_message.startswith("1 of 7 items fell back")
        assert procedures.payload["fallbacks"] == ["medical_emergency"]
        assert "MEDICAL EMERGENCY PROCEDURE" in outcome.report
        assert outcome.metadata["completeness"] == 100

    def test_incomplete_questionnaire_still_produces_plan(self, questionnaire) -> None:
        """
        SCENARIO: Hospital phone missing
        EXPECTED: Validation flagged, plan produced with the incomplete notice
        """
        # Arrange
        questionnaire["nearestHospital"]["phone"] = ""
        model = ScriptedModelAdapter([as_model_text(CLASSIFICATION)], default=answer_procedure)

        # Act
        outcome = build_orchestrator("emergency_plan", model).run(questionnaire)

        # Assert
        validation = outcome.get_stage("questionnaire_validation")
        assert not validation.success
        assert "Hospital phone" in validation.error_message
        assert "INCOMPLETE PLAN - NOT READY FOR USE" in outcome.report
        assert outcome.metadata["complete"] is False
        assert outcome.metadata["oshaCompliant"] is False
        assert outcome.metadata["missingRequired"] == ["Hospital phone"]

    def test_total_outage(self, questionnaire, offline_model, audit_sink) -> None:
        """
        SCENARIO: Model service down for the whole run
        EXPECTED: Rule-based classification and template procedures, full plan
        """
        # Act
        outcome = build_orchestrator(
            "emergency_plan", offline_model, audit_sink=audit_sink
        ).run(questionnaire, analysis_id="eap-outage")

        # Assert
        assert outcome.fatal_error is None
        assert [r.success for r in outcome.stage_results] == [True, False, False, True]
        assert outcome.get_stage("procedures").error_message.startswith("7 of 7 items fell back")
        assert outcome.metadata["procedureCount"] == 7
        assert outcome.metadata["templateProcedures"][:3] == MANDATORY
        assert "FIRE EMERGENCY PROCEDURE" in outcome.report
        assert len(audit_sink.records_for("eap-outage")) == 4

    def test_free_form_answers_during_outage(
        self, questionnaire, offline_model, audit_sink
    ) -> None:
        """
        SCENARIO: Height given as "90 ft", hospital distance null, model down
        EXPECTED: All four stages recorded, plan produced from templates
        """
        # Arrange
        questionnaire["buildingHeight"] = "90 ft"
        questionnaire["nearestHospital"]["distance"] = None

        # Act
        outcome = build_orchestrator(
            "emergency_plan", offline_model, audit_sink=audit_sink
        ).run(questionnaire, analysis_id="eap-free-form")

        # Assert
        assert outcome.fatal_error is None
        assert len(outcome.stage_results) == 4
        assert len(audit_sink.records_for("eap-free-form")) == 4
        assert outcome.metadata["procedureCount"] == 7
        assert "Skyline Glazing LLC" in outcome.report

    def test_output_shape(self, questionnaire, offline_model) -> None:
        output = build_orchestrator("emergency_plan", offline_model).run(questionnaire).to_output()

        assert list(output) == ["stage_1", "stage_2", "stage_3", "stage_4", "report", "metadata"]
        assert output["stage_4"]["document"] == output["report"]
