"""
Unit Tests for Risk Assessment and Incident Prediction.

Test Aspects Covered:
    ✅ Business Logic: Hazard ranking, risk levels, confidence derivation
    ✅ Edge Cases: Percent probabilities, ties, missing risk assessment
    ✅ Fallback: Generic hazard, LOW confidence prediction
"""

from __future__ import annotations

import pytest

from safety_pipeline.contracts.base import validate_payload
from safety_pipeline.contracts.prediction import (
    FALLBACK_INDICATORS,
    IncidentPredictionContract,
    confidence_from_probability,
)
from safety_pipeline.contracts.risk_assessment import (
    FALLBACK_HAZARD_NAME,
    FALLBACK_RISK_SCORE,
    RiskAssessmentContract,
    risk_level,
)
from safety_pipeline.domain.payloads import (
    PredictionPayload,
    RiskAssessmentPayload,
    RiskHazard,
)
from safety_pipeline.resilience.errors import SchemaValidationFailure


@pytest.fixture
def risk_contract(default_config) -> RiskAssessmentContract:
    return RiskAssessmentContract(default_config.safety_analysis.risk_assessment)


@pytest.fixture
def prediction_contract(default_config) -> IncidentPredictionContract:
    return IncidentPredictionContract(default_config.safety_analysis.prediction)


def hazard(name: str, score: int) -> RiskHazard:
    return RiskHazard(name=name, probability=0.1, consequence="Serious", risk_score=score)


class TestRiskLevel:
    """Test cases for risk_level()."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, "EXTREME"),
            (95, "EXTREME"),
            (94, "HIGH"),
            (75, "HIGH"),
            (74, "MEDIUM"),
            (50, "MEDIUM"),
            (49, "LOW"),
            (25, "LOW"),
            (24, "MINIMAL"),
            (1, "MINIMAL"),
        ],
    )
    def test_boundaries(self, score, expected) -> None:
        assert risk_level(score) == expected


class TestRiskHazardNormalization:
    """Test cases for hazard payload normalization."""

    def test_percent_probability_converted(self) -> None:
        """
        SCENARIO: Model reports probability as a percentage
        EXPECTED: Stored as a fraction
        """
        item = RiskHazard.model_validate(
            {"name": "Fall", "probability": 12, "consequence": "fatal", "riskScore": 88}
        )

        assert item.probability == pytest.approx(0.12)
        assert item.consequence == "Fatal"

    def test_score_clamped(self) -> None:
        item = RiskHazard.model_validate(
            {"name": "Fall", "probability": 0.5, "consequence": "Fatal", "riskScore": 140}
        )

        assert item.risk_score == 100

    def test_unknown_consequence_rejected(self) -> None:
        """
        SCENARIO: Consequence outside the allowed set
        EXPECTED: Schema validation fails
        """
        with pytest.raises(SchemaValidationFailure):
            validate_payload(
                RiskHazard,
                {"name": "Fall", "probability": 0.5, "consequence": "Bad", "riskScore": 40},
            )


class TestRiskAssessmentContract:
    """Test cases for RiskAssessmentContract scoring."""

    def test_hazards_ranked_by_score(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Hazards arrive unordered
        EXPECTED: Descending order, levels set, summary from top hazard
        """
        # Arrange
        payload = RiskAssessmentPayload(
            hazards=[hazard("Noise", 20), hazard("Fall", 88), hazard("Heat", 55)]
        )

        # Act
        scored = risk_contract.score(payload, safety_context)

        # Assert
        assert [h.name for h in scored.hazards] == ["Fall", "Heat", "Noise"]
        assert [h.risk_level for h in scored.hazards] == ["HIGH", "MEDIUM", "MINIMAL"]
        assert scored.risk_summary.highest_risk_score == 88
        assert scored.risk_summary.overall_risk_level == "HIGH"
        assert scored.top_threats == ["Fall", "Heat", "Noise"]
        assert scored.osha_data["naicsCode"] == "238"

    def test_ties_keep_original_order(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Two hazards share the top score
        EXPECTED: The first reported stays first
        """
        payload = RiskAssessmentPayload(hazards=[hazard("A", 70), hazard("B", 70)])

        scored = risk_contract.score(payload, safety_context)

        assert scored.top_hazard.name == "A"
        assert scored.hazards[0].name == "A"

    def test_fallback_single_generic_hazard(self, risk_contract, safety_context) -> None:
        """
        SCENARIO: Risk assessment stage failed
        EXPECTED: One generic hazard at the midpoint score
        """
        payload = risk_contract.fallback(safety_context)

        assert len(payload.hazards) == 1
        assert payload.hazards[0].name == FALLBACK_HAZARD_NAME
        assert payload.hazards[0].risk_score == FALLBACK_RISK_SCORE
        assert payload.hazards[0].risk_level == "MEDIUM"


class TestIncidentPrediction:
    """Test cases for IncidentPredictionContract."""

    @pytest.mark.parametrize(
        "probability,expected",
        [(95, "HIGH"), (80, "HIGH"), (79, "MEDIUM"), (40, "MEDIUM"), (39, "LOW")],
    )
    def test_confidence_from_probability(self, probability, expected) -> None:
        assert confidence_from_probability(probability) == expected

    def test_requires_three_indicators(self) -> None:
        """
        SCENARIO: Only two leading indicators
        EXPECTED: Validation error
        """
        with pytest.raises(SchemaValidationFailure):
            validate_payload(
                PredictionPayload,
                {
                    "incidentName": "Fall",
                    "confidence": "HIGH",
                    "causalChain": [{"stage": "Root cause"}],
                    "leadingIndicators": ["a", "b"],
                },
            )

    def test_indicators_trimmed_to_five(self) -> None:
        payload = PredictionPayload.model_validate(
            {
                "incidentName": "Fall",
                "confidence": "low",
                "causalChain": [{"stage": "Root cause"}],
                "leadingIndicators": ["a", "b", "c", "d", "e", "f", "g"],
            }
        )

        assert len(payload.leading_indicators) == 5
        assert payload.confidence == "LOW"

    def test_score_rederives_confidence(self, prediction_contract, safety_context) -> None:
        """
        SCENARIO: Model claims HIGH confidence at 35% probability
        EXPECTED: Confidence lowered to LOW, intervention backfilled
        """
        # Arrange
        payload = PredictionPayload.model_validate(
            {
                "incidentName": "Fall",
                "probability": 35,
                "confidence": "HIGH",
                "causalChain": [{"stage": "Root cause"}],
                "leadingIndicators": ["a", "b", "c"],
                "interventions": {"recommended": "Install guardrail"},
            }
        )

        # Act
        scored = prediction_contract.score(payload, safety_context)

        # Assert
        assert scored.confidence == "LOW"
        assert scored.single_best_intervention == "Install guardrail"

    def test_fallback_uses_top_hazard(
        self, prediction_contract, risk_contract, safety_context
    ) -> None:
        """
        SCENARIO: Prediction failed after a successful risk assessment
        EXPECTED: Incident named after the top hazard, LOW confidence
        """
        # Arrange
        risk = risk_contract.score(
            RiskAssessmentPayload(hazards=[hazard("Heat", 40), hazard("Fall", 88)]),
            safety_context,
        )
        safety_context.add("risk_assessment", risk.to_payload())

        # Act
        payload = prediction_contract.fallback(safety_context)

        # Assert
        assert payload.incident_name == "Fall"
        assert payload.confidence == "LOW"
        assert [i.indicator for i in payload.leading_indicators] == FALLBACK_INDICATORS

    def test_fallback_without_risk_assessment(self, prediction_contract, safety_context) -> None:
        payload = prediction_contract.fallback(safety_context)

        assert payload.incident_name == "Incident prediction unavailable"
        assert payload.causal_chain[0].stage == "Prediction Failed"


class TestTopHazardDrivesPrediction:
    """Test cases for threading the top hazard into the prediction stage."""

    def test_highest_score_selected(
        self, risk_contract, prediction_contract, safety_context
    ) -> None:
        """
        SCENARIO: Hazards scored 40, 95 and 70
        EXPECTED: The score-95 hazard is top and named in the prediction prompt
        """
        # Arrange
        scored = risk_contract.score(
            RiskAssessmentPayload(
                hazards=[hazard("Pinch point", 40), hazard("Trench collapse", 95), hazard("Noise", 70)]
            ),
            safety_context,
        )
        safety_context.add("risk_assessment", scored.to_payload())

        # Act
        prompt = prediction_contract.build_prompt(safety_context)

        # Assert
        assert scored.top_hazard.name == "Trench collapse"
        assert scored.risk_summary.overall_risk_level == "EXTREME"
        top_block = prompt.split("ALL RISK FINDINGS")[0]
        assert "Trench collapse" in top_block
        assert "Pinch point" not in top_block
