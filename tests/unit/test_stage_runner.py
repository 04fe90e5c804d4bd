"""
Unit Tests for StageRunner.

Test Aspects Covered:
    ✅ Business Logic: Invoke, extract, validate, score
    ✅ Error Handling: Model errors, prose answers, schema failures
    ✅ Edge Cases: Fan-out partial failure, failing fallback, textual stages
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from safety_pipeline.adapters.scripted_model import ScriptedModelAdapter
from safety_pipeline.config.models import EngineConfig
from safety_pipeline.contracts.comparison_report import ComparisonReportContract
from safety_pipeline.contracts.emergency_classification import (
    EmergencyClassificationContract,
)
from safety_pipeline.contracts.eap_validation import QuestionnaireValidationContract
from safety_pipeline.contracts.procedure_generation import ProcedureGenerationContract
from safety_pipeline.contracts.risk_assessment import (
    FALLBACK_HAZARD_NAME,
    RiskAssessmentContract,
)
from safety_pipeline.domain.entities import StageKind
from safety_pipeline.pipeline.context import PipelineContext
from safety_pipeline.pipeline.stage_runner import StageRunner
from safety_pipeline.resilience.errors import (
    ModelInvocationError,
    PipelineFatalError,
)

from tests.fixtures.model_responses import as_model_text

UNQUOTED = "Sure, here's the data: ```json {foo: bar}``` thanks"

HAZARDS = {
    "hazards": [
        {"name": "Struck by load", "probability": 0.05, "consequence": "Serious", "riskScore": 40},
        {"name": "Fall from edge", "probability": 0.12, "consequence": "Fatal", "riskScore": 88},
    ]
}


@pytest.fixture
def risk_contract(default_config: EngineConfig) -> RiskAssessmentContract:
    return RiskAssessmentContract(default_config.safety_analysis.risk_assessment)


class TestStructuredStage:
    """Test cases for single-call structured stages."""

    def test_successful_stage(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Model answers with fenced JSON
        EXPECTED: success, scored payload, settings recorded
        """
        # Arrange
        model = ScriptedModelAdapter([as_model_text(HAZARDS)])
        runner = StageRunner(model)

        # Act
        result = runner.run(risk_contract, safety_context)

        # Assert
        assert result.success
        assert result.error_message is None
        assert result.payload["hazards"][0]["name"] == "Fall from edge"
        assert result.payload["hazards"][0]["riskLevel"] == "HIGH"
        assert result.temperature == 0.7
        assert result.max_tokens == 16000
        assert result.model == "scripted-model"
        assert model.calls[0].temperature == 0.7

    def test_model_error_uses_fallback(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Model service unreachable
        EXPECTED: success=False, fallback payload, error message set
        """
        # Arrange
        runner = StageRunner(ScriptedModelAdapter.unavailable())

        # Act
        result = runner.run(risk_contract, safety_context)

        # Assert
        assert not result.success
        assert result.used_fallback
        assert "unreachable" in result.error_message
        assert result.payload["hazards"][0]["name"] == FALLBACK_HAZARD_NAME
        assert result.payload["hazards"][0]["riskScore"] == 50

    def test_invalid_json_uses_fallback(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Model answers with a fenced block that is not valid JSON
        EXPECTED: Fallback payload, raw text kept for diagnostics
        """
        # Arrange
        runner = StageRunner(ScriptedModelAdapter([UNQUOTED]))

        # Act
        result = runner.run(risk_contract, safety_context)

        # Assert
        assert not result.success
        assert result.raw_model_text == UNQUOTED
        assert result.payload["hazards"][0]["name"] == FALLBACK_HAZARD_NAME

    def test_schema_failure_uses_fallback(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: JSON parses but hazards list is empty
        EXPECTED: Schema failure reported, fallback used
        """
        # Arrange
        runner = StageRunner(ScriptedModelAdapter([as_model_text({"hazards": []})]))

        # Act
        result = runner.run(risk_contract, safety_context)

        # Assert
        assert not result.success
        assert "hazards" in result.error_message

    def test_empty_response_uses_fallback(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Model returns whitespace
        EXPECTED: Treated as an invocation error
        """
        runner = StageRunner(ScriptedModelAdapter(["   "]))

        result = runner.run(risk_contract, safety_context)

        assert not result.success
        assert "empty response" in result.error_message

    def test_unexpected_error_uses_fallback(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Model adapter raises a non-pipeline exception
        EXPECTED: Still converted to a fallback, never raised
        """
        runner = StageRunner(ScriptedModelAdapter([RuntimeError("socket closed")]))

        result = runner.run(risk_contract, safety_context)

        assert not result.success
        assert "RuntimeError" in result.error_message

    def test_failing_fallback_is_fatal(self, safety_context) -> None:
        """
        SCENARIO: Stage fails and its fallback raises too
        EXPECTED: PipelineFatalError carrying the stage id
        """
        # Arrange
        contract = Mock()
        contract.kind = StageKind.STRUCTURED
        contract.stage_id = "broken_stage"
        contract.build_prompt.return_value = "prompt"
        contract.fallback.side_effect = ValueError("no fallback")
        runner = StageRunner(ScriptedModelAdapter.unavailable())

        # Act & Assert
        with pytest.raises(PipelineFatalError) as exc_info:
            runner.run(contract, safety_context)

        assert exc_info.value.stage_id == "broken_stage"


class TestTextualStage:
    """Test cases for textual stages."""

    def test_prose_becomes_report(self, default_config, baseline) -> None:
        """
        SCENARIO: Comparison report stage answers in prose
        EXPECTED: Prose used as the report, stage succeeds
        """
        # Arrange
        contract = ComparisonReportContract(default_config.comparison.synthesis)
        context = PipelineContext({"baseline": baseline, "changedCategories": ["weather"]})
        runner = StageRunner(ScriptedModelAdapter(["# Comparison\nWind has increased."]))

        # Act
        result = runner.run(contract, context)

        # Assert
        assert result.success
        assert result.payload["comparisonReport"].startswith("# Comparison")
        assert result.payload["executiveSummary"] == "Comparison"

    def test_prose_with_bracketed_reference_kept(self, default_config, baseline) -> None:
        """
        SCENARIO: Prose report citing "[1]", which extracts as a JSON array
        EXPECTED: Prose still used as the report, no fallback
        """
        # Arrange
        contract = ComparisonReportContract(default_config.comparison.synthesis)
        context = PipelineContext({"baseline": baseline, "changedCategories": ["weather"]})
        prose = "# Comparison\nWind exceeds the crane limit (see [1]). Stop lifts."
        runner = StageRunner(ScriptedModelAdapter([prose]))

        # Act
        result = runner.run(contract, context)

        # Assert
        assert result.success
        assert result.error_message is None
        assert result.payload["comparisonReport"] == prose

    def test_structured_stage_rejects_array(self, risk_contract, safety_context) -> None:
        runner = StageRunner(ScriptedModelAdapter(['["Fall from edge"]']))

        result = runner.run(risk_contract, safety_context)

        assert not result.success
        assert result.payload["hazards"][0]["name"] == FALLBACK_HAZARD_NAME


class TestDeterministicStage:
    """Test cases for model-free stages."""

    def test_no_model_call(self, default_config, questionnaire) -> None:
        """
        SCENARIO: Questionnaire validation stage runs
        EXPECTED: Model never invoked, label recorded as the model
        """
        # Arrange
        contract = QuestionnaireValidationContract(default_config.emergency_plan.validation)
        model = ScriptedModelAdapter()
        runner = StageRunner(model)

        # Act
        result = runner.run(contract, PipelineContext(questionnaire))

        # Assert
        assert result.success
        assert model.call_count == 0
        assert result.model == "rule-based-validation"
        assert result.payload["readyToGenerate"] is True

    def test_degraded_payload_reported_unsuccessful(self, default_config) -> None:
        """
        SCENARIO: Questionnaire is missing required fields
        EXPECTED: Payload produced but stage marked unsuccessful
        """
        contract = QuestionnaireValidationContract(default_config.emergency_plan.validation)
        runner = StageRunner(ScriptedModelAdapter())

        result = runner.run(contract, PipelineContext({"companyName": "Acme"}))

        assert not result.success
        assert "Incomplete questionnaire" in result.error_message
        assert result.payload["complete"] is False


class TestFanOutStage:
    """Test cases for fan-out stages."""

    def _context(self, questionnaire, default_config) -> PipelineContext:
        context = PipelineContext(questionnaire)
        classifier = EmergencyClassificationContract(
            default_config.emergency_plan.classification
        )
        context.add("emergency_classification", classifier.fallback(context).to_payload())
        return context

    def test_partial_failure_uses_item_fallback(self, questionnaire, default_config) -> None:
        """
        SCENARIO: First item generated, every other item fails
        EXPECTED: All procedures present, failures use templates, stage unsuccessful
        """
        # Arrange
        context = self._context(questionnaire, default_config)
        contract = ProcedureGenerationContract(default_config.emergency_plan.procedures)
        procedure = {
            "title": "FIRE EMERGENCY - TOWER SITE",
            "procedureSteps": ["Sound air horn", "Evacuate to NE lot"],
        }
        model = ScriptedModelAdapter(
            [as_model_text(procedure)], default=ModelInvocationError("quota", quota_exceeded=True)
        )
        runner = StageRunner(model)
        expected_items = len(contract.items(context))

        # Act
        result = runner.run(contract, context)

        # Assert
        assert not result.success
        assert model.call_count == expected_items
        assert len(result.payload["procedures"]) == expected_items
        assert result.payload["generated"] == ["fire_emergency"]
        assert result.payload["procedures"][0]["procedureSteps"] == (
            "Sound air horn\nEvacuate to NE lot"
        )
        assert result.payload["procedures"][1]["title"] == "MEDICAL EMERGENCY PROCEDURE"
        assert f"{expected_items - 1} of {expected_items} items fell back" in result.error_message

    def test_all_items_generated(self, questionnaire, default_config) -> None:
        """
        SCENARIO: Every item call succeeds
        EXPECTED: Stage successful, no fallbacks listed
        """
        # Arrange
        context = self._context(questionnaire, default_config)
        contract = ProcedureGenerationContract(default_config.emergency_plan.procedures)
        model = ScriptedModelAdapter(
            default=as_model_text({"title": "PROCEDURE", "procedureSteps": "Step 1"})
        )

        # Act
        result = StageRunner(model).run(contract, context)

        # Assert
        assert result.success
        assert result.payload["fallbacks"] == []
        assert result.payload["procedures"][0]["emergencyType"] == "fire_emergency"
