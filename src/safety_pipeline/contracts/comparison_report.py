"""
Comparison Report Stage.

Final stage of the comparison pipeline. The model writes the report as
JSON (``comparisonReport`` plus summary fields); plain prose is accepted
as the report itself. When the model is unavailable a templated report is
built from the earlier stages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from safety_pipeline.contracts.base import StageContract, to_prompt_json
from safety_pipeline.contracts.delta_validation import comparison_input
from safety_pipeline.domain.entities import StageKind
from safety_pipeline.domain.payloads import ComparisonReportPayload

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

_DECISION_TITLES = {"go": "GO", "no_go": "NO-GO", "conditional": "CONDITIONAL"}


def _entry_text(entry: Dict[str, Any]) -> str:
    label = entry.get("category") or entry.get("hazard") or "change"
    detail = entry.get("impact") or entry.get("severity")
    return f"{label}: {detail}" if detail else str(label)


def _section(title: str, items: List[str], empty: str) -> List[str]:
    lines = [f"## {title}", ""]
    lines += [f"- {item}" for item in items] if items else [f"- {empty}"]
    lines.append("")
    return lines


class ComparisonReportContract(StageContract):
    """Write the baseline-vs-update comparison report."""

    stage_id = "comparison_agent_4"
    key = "comparison_report"
    name = "Report Synthesizer"
    kind = StageKind.TEXTUAL
    output_schema = ComparisonReportPayload

    def build_prompt(self, context: PipelineContext) -> str:
        baseline = comparison_input(context).baseline
        score = baseline.risk_score if baseline.risk_score is not None else "Unknown"

        return f"""You are a safety report writer. Create a professional comparison report.

BASELINE JHA:
{baseline.query}
Baseline Risk: {score}/100

DATA VALIDATION:
{to_prompt_json(context.get("delta_validation", {}))}

RISK COMPARISON:
{to_prompt_json(context.get("risk_comparison", {}))}

DECISION:
{to_prompt_json(context.get("decision", {}))}

Create a clear, professional report suitable for safety managers and field supervisors.
The report must state the decision exactly as given above.

Return JSON:
{{
  "executiveSummary": "Brief 2-3 sentence summary",
  "comparisonReport": "Full markdown report with sections for: Changes Overview, Risk Analysis, Decision, and Recommendations",
  "keyFindings": ["Finding 1", "Finding 2", "Finding 3"],
  "criticalChanges": ["Change 1", "Change 2"]
}}"""

    def from_text(
        self, text: str, context: PipelineContext
    ) -> Optional[ComparisonReportPayload]:
        """Prose response is the report."""
        text = text.strip()
        if not text:
            return None
        first_line = text.splitlines()[0].strip("# ").strip()
        return ComparisonReportPayload(executive_summary=first_line, comparison_report=text)

    def fallback(self, context: PipelineContext) -> ComparisonReportPayload:
        """Templated report from the earlier stage payloads."""
        data = comparison_input(context)
        validation = context.get("delta_validation", {}) or {}
        comparison = context.get("risk_comparison", {}) or {}
        decision = context.get("decision", {}) or {}

        verdict = _DECISION_TITLES.get(decision.get("decision"), "CONDITIONAL")
        baseline_score = data.baseline.risk_score
        baseline_text = "unknown" if baseline_score is None else f"{baseline_score:g}"
        current = comparison.get("currentRiskScore", "unknown")
        delta = float(comparison.get("riskScoreDelta") or 0)
        summary = (
            f"Decision: {verdict}. Risk score {current}/100 against a baseline of "
            f"{baseline_text} (change {delta:+g})."
        )

        improvements = [_entry_text(e) for e in comparison.get("improvements", [])]
        degradations = [_entry_text(e) for e in comparison.get("degradations", [])]
        new_hazards = [_entry_text(e) for e in comparison.get("newHazards", [])]

        lines = ["# JHA Update Comparison", "", summary, ""]
        lines += _section(
            "Changes Overview",
            validation.get("validatedChanges") or data.delta.changed_categories,
            "No changes reported",
        )
        lines += _section("Improvements", improvements, "None identified")
        lines += _section("Degradations", degradations, "None identified")
        lines += _section("New Hazards", new_hazards, "None identified")
        lines += [
            "## Decision",
            "",
            f"**{verdict}**: {decision.get('reasoning') or 'Manual review required'}",
            "",
        ]
        lines += _section(
            "Required Actions", decision.get("requiredActions") or [], "None specified"
        )
        lines += _section(
            "Monitoring", decision.get("monitoringRequirements") or [], "None specified"
        )

        return ComparisonReportPayload(
            executive_summary=summary,
            comparison_report="\n".join(lines).rstrip(),
            key_findings=degradations + new_hazards,
            critical_changes=new_hazards,
        )

    def report_text(self, payload: Dict[str, Any]) -> Optional[str]:
        return (payload or {}).get("comparisonReport")
