"""
GO / NO-GO Decision Stage.

Third stage of the comparison pipeline. The model proposes a decision,
then fixed safety rules are applied to the risk comparison regardless of
what the model said. The final decision is the more restrictive of the two.

Decision rules:
    - risk score > 75 -> no_go
    - risk delta > +15 -> no_go
    - new high-severity hazard -> conditional
    - risk score < 50 and no high-severity hazard -> go
    - otherwise (score 50-75) -> conditional

The rules are monotonic: a higher score or delta never relaxes a decision.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.contracts.delta_validation import comparison_input
from safety_pipeline.domain.payloads import DecisionPayload, RiskComparisonPayload

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

NO_GO_SCORE_THRESHOLD = 75
NO_GO_DELTA_THRESHOLD = 15
GO_SCORE_CEILING = 50

# Least to most restrictive
DECISION_ORDER = ("go", "conditional", "no_go")

MANUAL_REVIEW = "Manual review required"


def evaluate_decision_rules(
    risk_score: float, risk_delta: float, has_high_severity_hazard: bool
) -> Tuple[str, List[str]]:
    """
    Apply the decision rules.

    Args:
        risk_score: Current risk score (0-100)
        risk_delta: Change from the baseline score
        has_high_severity_hazard: Whether a new high-severity hazard appeared

    Returns:
        (decision, descriptions of the rules that fired)
    """
    triggered: List[str] = []
    if risk_score > NO_GO_SCORE_THRESHOLD:
        triggered.append(
            f"Risk score {risk_score:g} exceeds {NO_GO_SCORE_THRESHOLD} (stop work)"
        )
    if risk_delta > NO_GO_DELTA_THRESHOLD:
        triggered.append(
            f"Risk increased by {risk_delta:g} points, more than {NO_GO_DELTA_THRESHOLD}"
        )
    if triggered:
        return "no_go", triggered

    if has_high_severity_hazard:
        return "conditional", ["New high-severity hazard requires mitigation"]
    if risk_score < GO_SCORE_CEILING:
        return "go", []
    return "conditional", [
        f"Risk score {risk_score:g} is between {GO_SCORE_CEILING} and "
        f"{NO_GO_SCORE_THRESHOLD}"
    ]


def most_restrictive(*decisions: str) -> str:
    return max(decisions, key=DECISION_ORDER.index)


class DecisionContract(StageContract):
    """GO / NO-GO decision for work continuation."""

    stage_id = "comparison_agent_3"
    key = "decision"
    name = "Decision Engine"
    output_schema = DecisionPayload

    def build_prompt(self, context: PipelineContext) -> str:
        data = comparison_input(context)
        comparison = context.get("risk_comparison", {})
        baseline_score = data.baseline.risk_score

        return f"""You are a construction safety decision authority. Make a GO/NO-GO decision for work continuation.

BASELINE RISK: {baseline_score if baseline_score is not None else 'Unknown'}/100
CURRENT RISK: {comparison.get('currentRiskScore', 'Unknown')}/100
RISK DELTA: {comparison.get('riskScoreDelta', 0)}

RISK CHANGES:
{to_prompt_json(comparison)}

USER'S GUT CHECK: {data.delta.user_risk_assessment}

OSHA GUIDELINES:
- Risk score > {NO_GO_SCORE_THRESHOLD}: NO-GO (stop work)
- Risk delta > +{NO_GO_DELTA_THRESHOLD}: NO-GO (conditions worsened significantly)
- New high-severity hazards: CONDITIONAL (requires mitigation)
- Wind > 25mph for glass work: NO-GO
- Risk score < {GO_SCORE_CEILING} AND no high-severity hazards: GO

TASK:
Make a decision and provide reasoning.

Return JSON:
{{
  "decision": "go|no_go|conditional",
  "reasoning": "Detailed explanation of decision",
  "requiredActions": ["Action 1", "Action 2"],
  "workRestrictions": ["Restrict A", "Prohibit B"],
  "monitoringRequirements": ["Monitor wind every 30min"]
}}"""

    def score(self, payload: DecisionPayload, context: PipelineContext) -> DecisionPayload:
        """Apply the decision rules; the model may only make a decision stricter."""
        raw = context.get("risk_comparison")
        if raw is None:
            return payload
        comparison = RiskComparisonPayload.model_validate(raw)
        rule_decision, triggered = evaluate_decision_rules(
            comparison.current_risk_score,
            comparison.risk_score_delta,
            comparison.has_high_severity_hazard,
        )
        final = most_restrictive(payload.decision, rule_decision)

        reasoning = payload.reasoning
        actions = list(payload.required_actions)
        if final != payload.decision:
            note = (
                f"Decision raised from {payload.decision} to {final} by safety rules: "
                + "; ".join(triggered)
            )
            reasoning = f"{reasoning} {note}".strip()
            actions = [f"Resolve: {rule}" for rule in triggered] + actions

        return payload.model_copy(
            update={
                "decision": final,
                "reasoning": reasoning,
                "required_actions": actions,
                "model_decision": payload.decision,
                "rule_decision": rule_decision,
                "triggered_rules": triggered,
            }
        )

    def fallback(self, context: PipelineContext) -> DecisionPayload:
        """Conditional pending manual review, still subject to the rules."""
        payload = DecisionPayload(decision="conditional", reasoning=MANUAL_REVIEW)
        scored = self.score(payload, context)
        return scored.model_copy(update={"model_decision": None})
