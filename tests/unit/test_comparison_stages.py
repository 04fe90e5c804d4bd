"""
Unit Tests for the Baseline-vs-Update Comparison Stages.

Test Aspects Covered:
    ✅ Business Logic: Decision rules, most restrictive decision, delta recomputation
    ✅ Edge Cases: Unknown baseline score, decision spellings, boundary scores
    ✅ Fallback: Rules still applied, templated comparison report
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from safety_pipeline.contracts.comparison_report import ComparisonReportContract
from safety_pipeline.contracts.decision import (
    DECISION_ORDER,
    MANUAL_REVIEW,
    DecisionContract,
    evaluate_decision_rules,
    most_restrictive,
)
from safety_pipeline.contracts.delta_validation import DeltaValidationContract
from safety_pipeline.contracts.risk_comparison import (
    DEFAULT_BASELINE_SCORE,
    RiskComparisonContract,
)
from safety_pipeline.domain.comparison import ComparisonInput
from safety_pipeline.domain.payloads import (
    DecisionPayload,
    RiskComparisonPayload,
    normalize_decision,
)
from safety_pipeline.pipeline.context import PipelineContext


def comparison_context(baseline: Dict[str, Any], **delta: Any) -> PipelineContext:
    payload = {"baseline": baseline, "changedCategories": ["weather", "crew"]}
    payload.update(delta)
    return PipelineContext(payload, analysis_id="cmp-1")


@pytest.fixture
def decision_contract(default_config) -> DecisionContract:
    return DecisionContract(default_config.comparison.decision)


@pytest.fixture
def risk_contract(default_config) -> RiskComparisonContract:
    return RiskComparisonContract(default_config.comparison.risk_comparison)


class TestDecisionRules:
    """Test cases for evaluate_decision_rules()."""

    @pytest.mark.parametrize(
        "score,delta,new_high,expected",
        [
            (82, 42, False, "no_go"),
            (76, 0, False, "no_go"),
            (75, 0, False, "conditional"),
            (60, 16, False, "no_go"),
            (60, 15, False, "conditional"),
            (40, 0, True, "conditional"),
            (49, -5, False, "go"),
            (50, 0, False, "conditional"),
        ],
    )
    def test_rule_table(self, score, delta, new_high, expected) -> None:
        decision, _ = evaluate_decision_rules(score, delta, new_high)

        assert decision == expected

    def test_both_no_go_rules_reported(self) -> None:
        decision, triggered = evaluate_decision_rules(82, 42, False)

        assert decision == "no_go"
        assert len(triggered) == 2

    def test_rules_are_monotonic_in_score(self) -> None:
        """
        SCENARIO: Risk score rises with everything else fixed
        EXPECTED: Decision never becomes less restrictive
        """
        previous = "go"
        for score in range(0, 101):
            decision, _ = evaluate_decision_rules(score, 0, False)
            assert DECISION_ORDER.index(decision) >= DECISION_ORDER.index(previous)
            previous = decision

    def test_most_restrictive(self) -> None:
        assert most_restrictive("go", "conditional") == "conditional"
        assert most_restrictive("no_go", "go") == "no_go"
        assert most_restrictive("go", "go") == "go"


class TestNormalizeDecision:
    """Test cases for decision spellings."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("GO", "go"),
            ("NO-GO", "no_go"),
            ("No Go", "no_go"),
            ("STOP_WORK", "no_go"),
            ("GO_WITH_CONDITIONS", "conditional"),
            ("Conditional", "conditional"),
        ],
    )
    def test_spellings(self, raw, expected) -> None:
        assert normalize_decision(raw) == expected


class TestDecisionContract:
    """Test cases for DecisionContract."""

    def test_rules_override_permissive_model(self, decision_contract, baseline) -> None:
        """
        SCENARIO: Baseline 40, current risk 82, model says GO
        EXPECTED: no_go, model decision kept for audit, actions added
        """
        # Arrange
        baseline["riskScore"] = 40
        context = comparison_context(baseline)
        context.add(
            "risk_comparison",
            RiskComparisonPayload(current_risk_score=82, risk_score_delta=42).to_payload(),
        )
        payload = DecisionPayload(decision="go", reasoning="Looks fine")

        # Act
        scored = decision_contract.score(payload, context)

        # Assert
        assert scored.decision == "no_go"
        assert scored.model_decision == "go"
        assert scored.rule_decision == "no_go"
        assert "Decision raised from go to no_go" in scored.reasoning
        assert scored.required_actions[0].startswith("Resolve: Risk score 82")

    def test_stricter_model_decision_kept(self, decision_contract, baseline) -> None:
        """
        SCENARIO: Rules say go, model says no_go
        EXPECTED: no_go, reasoning untouched
        """
        context = comparison_context(baseline)
        context.add(
            "risk_comparison",
            RiskComparisonPayload(current_risk_score=30, risk_score_delta=-25).to_payload(),
        )

        scored = decision_contract.score(
            DecisionPayload(decision="no_go", reasoning="Crew untrained"), context
        )

        assert scored.decision == "no_go"
        assert scored.rule_decision == "go"
        assert scored.reasoning == "Crew untrained"

    def test_new_high_severity_hazard(self, decision_contract, baseline) -> None:
        context = comparison_context(baseline)
        context.add(
            "risk_comparison",
            RiskComparisonPayload(
                current_risk_score=45,
                new_hazards=[{"hazard": "Energized line", "severity": "Critical"}],
            ).to_payload(),
        )

        scored = decision_contract.score(DecisionPayload(decision="go"), context)

        assert scored.decision == "conditional"

    def test_fallback_applies_rules(self, decision_contract, baseline) -> None:
        """
        SCENARIO: Decision stage failed after a high-risk comparison
        EXPECTED: no_go from the rules, no model decision recorded
        """
        context = comparison_context(baseline)
        context.add(
            "risk_comparison",
            RiskComparisonPayload(current_risk_score=90, risk_score_delta=35).to_payload(),
        )

        payload = decision_contract.fallback(context)

        assert payload.decision == "no_go"
        assert payload.model_decision is None

    def test_fallback_without_comparison(self, decision_contract, baseline) -> None:
        payload = decision_contract.fallback(comparison_context(baseline))

        assert payload.decision == "conditional"
        assert payload.reasoning == MANUAL_REVIEW


class TestRiskComparisonContract:
    """Test cases for RiskComparisonContract."""

    def test_delta_recomputed_from_baseline(self, risk_contract, baseline) -> None:
        """
        SCENARIO: Model reports a wrong delta
        EXPECTED: Delta recomputed against the baseline score
        """
        context = comparison_context(baseline)

        scored = risk_contract.score(
            RiskComparisonPayload(current_risk_score=70, risk_score_delta=3), context
        )

        assert scored.risk_score_delta == 15

    def test_unknown_baseline_keeps_model_delta(self, risk_contract) -> None:
        context = comparison_context({"id": "jha-1"})

        scored = risk_contract.score(
            RiskComparisonPayload(current_risk_score=70, risk_score_delta=3), context
        )

        assert scored.risk_score_delta == 3

    def test_fallback_carries_baseline_forward(self, risk_contract, baseline) -> None:
        payload = risk_contract.fallback(comparison_context(baseline))

        assert payload.current_risk_score == 55
        assert payload.risk_score_delta == 0

    def test_fallback_without_baseline_score(self, risk_contract) -> None:
        payload = risk_contract.fallback(comparison_context({"id": "jha-1"}))

        assert payload.current_risk_score == DEFAULT_BASELINE_SCORE


class TestDeltaValidationAndReport:
    """Test cases for delta validation and the comparison report."""

    def test_delta_validation_fallback(self, default_config, baseline) -> None:
        """
        SCENARIO: Delta validation failed
        EXPECTED: incomplete, score 5, reported categories accepted
        """
        contract = DeltaValidationContract(default_config.comparison.delta_validation)

        payload = contract.fallback(comparison_context(baseline))

        assert payload.validation_status == "incomplete"
        assert payload.quality_score == 5
        assert payload.validated_changes == ["weather", "crew"]

    def test_comparison_input_from_delta_key(self, baseline) -> None:
        data = ComparisonInput.from_request(
            {"delta": {"changedCategories": "weather, equipment", "newWindSpeed": 28}},
            {"baseline": baseline},
        )

        assert data.baseline.id == "jha-42"
        assert data.delta.changed_categories == ["weather", "equipment"]
        assert data.delta.new_wind_speed == "28"

    def test_report_fallback_states_decision(self, default_config, baseline) -> None:
        """
        SCENARIO: Report stage failed after a no_go decision
        EXPECTED: Templated report naming NO-GO and the new hazard
        """
        # Arrange
        contract = ComparisonReportContract(default_config.comparison.synthesis)
        context = comparison_context(baseline)
        context.add(
            "risk_comparison",
            RiskComparisonPayload(
                current_risk_score=82,
                risk_score_delta=27,
                new_hazards=[{"hazard": "Energized line", "severity": "high"}],
            ).to_payload(),
        )
        context.add(
            "decision",
            DecisionPayload(decision="no_go", reasoning="Risk too high").to_payload(),
        )

        # Act
        payload = contract.fallback(context)

        # Assert
        assert "Decision: NO-GO" in payload.executive_summary
        assert "**NO-GO**: Risk too high" in payload.comparison_report
        assert payload.critical_changes == ["Energized line: high"]
        assert contract.report_text(payload.to_payload()) == payload.comparison_report
