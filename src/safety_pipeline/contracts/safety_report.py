"""
Report Synthesis Stage.

Final stage of the safety analysis. No model call: the job hazard analysis
report is assembled from the validation, risk and prediction payloads by
deterministic rules, then rendered as markdown for the pipeline report.

Go / no-go gate:
    - data quality LOW -> NO_GO
    - wind above 20 mph -> NO_GO; above 16 mph -> monitoring condition
    - HIGH confidence prediction with top risk score above 85 -> NO_GO
    - missing emergency/rescue documentation -> inspection condition
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from safety_pipeline.contracts import reference
from safety_pipeline.contracts.base import StageContract
from safety_pipeline.contracts.checklist import flatten_checklist
from safety_pipeline.domain.entities import StageKind
from safety_pipeline.domain.payloads import (
    ActionItem,
    ComplianceGap,
    EmergencyReadiness,
    GoNoGo,
    PredictionPayload,
    RiskAssessmentPayload,
    RiskHazard,
    SafetyReportPayload,
    ValidationPayload,
    WeatherImpact,
)

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

WIND_CONDITION_RATIO = 0.8
CRITICAL_SCORE_THRESHOLD = 85
CRITICAL_GAP_SCORE = 75

_DECISION_LABELS = {
    "GO": "GO - Work may proceed",
    "GO_WITH_CONDITIONS": "GO WITH CONDITIONS - Work may proceed once conditions are met",
    "NO_GO": "NO GO - Work must not start",
    "STOP_WORK": "STOP WORK - Halt all operations immediately",
}


def determine_go_no_go(
    validation: ValidationPayload,
    risk: RiskAssessmentPayload,
    prediction: PredictionPayload,
    weather: Dict[str, Any],
) -> GoNoGo:
    """Apply the go / no-go gate."""
    top = risk.top_hazard
    reasons: List[str] = []
    conditions: List[str] = []

    if validation.data_quality == "LOW":
        reasons.append("Insufficient data quality for safe operations")

    wind = reference.wind_speed(weather)
    if wind:
        limit = reference.WIND_LIMIT_MPH
        if wind > limit:
            reasons.append(
                f"Wind speed ({wind:g} mph) exceeds {limit:g} mph safe crane operation limit"
            )
        elif wind > limit * WIND_CONDITION_RATIO:
            conditions.append("Continuous wind speed monitoring with hard stop at 20 mph")

    if prediction.confidence == "HIGH" and top.risk_score > CRITICAL_SCORE_THRESHOLD:
        reasons.append(
            "High-confidence prediction of critical incident with inadequate controls"
        )

    if any(
        "emergency" in field.lower() or "rescue" in field.lower()
        for field in validation.missing_critical
    ):
        conditions.append("Competent person inspection of fall protection before work starts")

    if reasons:
        stop = any("immediate" in r.lower() for r in reasons)
        decision = "STOP_WORK" if stop else "NO_GO"
    elif conditions:
        decision = "GO_WITH_CONDITIONS"
    else:
        decision = "GO"
    return GoNoGo(decision=decision, reasons=reasons, conditions=conditions)


def identify_compliance_gaps(
    validation: ValidationPayload, risk: RiskAssessmentPayload
) -> List[ComplianceGap]:
    """Gaps from missing critical fields and the top hazard's inadequate controls."""
    gaps = [
        ComplianceGap(
            standard="OSHA 1926",
            requirement=f"Documentation of {field}",
            gap=f"Missing: {field}",
            severity="HIGH",
            evidence=f"Validation found missing critical field: {field}",
        )
        for field in validation.missing_critical
    ]
    top = risk.top_hazard
    severity = "CRITICAL" if top.risk_score > CRITICAL_GAP_SCORE else "HIGH"
    for control in top.inadequate_controls:
        gaps.append(
            ComplianceGap(
                standard=top.regulatory_requirement or "OSHA 1926",
                requirement="Adequate hazard controls",
                gap=control,
                severity=severity,
                evidence=f"Risk assessment identified: {control}",
            )
        )
    return gaps


def assess_emergency_response(
    checklist: Dict[str, Any], top: Optional[RiskHazard]
) -> EmergencyReadiness:
    """Check the checklist answers for rescue, first aid, radio and evacuation."""
    answers = [e.answer.lower() for e in flatten_checklist(checklist) if e.answer]

    def mentions(*words: str) -> bool:
        return any(w in answer for answer in answers for w in words)

    gaps: List[str] = []
    if top is not None and "fall" in top.name.lower():
        rescue = "ADEQUATE" if mentions("rescue") else "INADEQUATE"
    else:
        rescue = "NOT_REQUIRED"
    if rescue == "INADEQUATE":
        gaps.append("No documented fall rescue plan")

    first_aid = mentions("first aid")
    if not first_aid:
        gaps.append("First aid equipment not documented")
    communication = mentions("radio", "communication")
    if not communication:
        gaps.append("Communication systems not documented")
    evacuation = mentions("evacuation", "emergency exit")
    if not evacuation:
        gaps.append("Evacuation plan not documented")

    return EmergencyReadiness(
        rescue_capability=rescue,
        first_aid=first_aid,
        communication=communication,
        evacuation_plan=evacuation,
        gaps=gaps,
    )


def analyze_weather_impact(weather: Dict[str, Any]) -> WeatherImpact:
    """Weather risk level from the wind margin, temperature and precipitation."""
    impacts: List[str] = []
    recommendations: List[str] = []
    level = "GREEN"

    wind = reference.wind_speed(weather)
    if wind:
        limit = reference.WIND_LIMIT_MPH
        margin = (limit - wind) / limit * 100
        if margin < 20:
            level = "RED"
            impacts.append(
                f"Critical wind speed: {wind:g} mph (approaching {limit:g} mph limit)"
            )
            recommendations.append("Halt crane and swing stage operations immediately")
        elif margin < 30:
            level = "YELLOW"
            impacts.append(f"Elevated wind speed: {wind:g} mph")
            recommendations.append(
                "Implement continuous wind monitoring with hard stop at 20 mph"
            )

    temp = reference.temperature(weather)
    if temp is not None and temp < 32:
        impacts.append("Freezing temperatures increase slip/fall risk")
        recommendations.append("Implement cold stress prevention and anti-slip measures")
    elif temp is not None and temp > 95:
        impacts.append("Extreme heat increases fatigue and heat stress risk")
        recommendations.append(
            "Implement heat stress prevention with frequent breaks and hydration"
        )

    if weather.get("precipitation"):
        impacts.append("Precipitation increases slip/fall incidents by 60%")
        recommendations.append("Enhanced fall protection and slip-resistant surfaces required")

    return WeatherImpact(
        current_conditions=weather,
        risk_level=level,
        impacts=impacts,
        recommendations=recommendations,
    )


def generate_action_items(
    go_no_go: GoNoGo,
    gaps: List[ComplianceGap],
    readiness: EmergencyReadiness,
    prediction: PredictionPayload,
) -> List[ActionItem]:
    """Prioritized action list."""
    actions: List[ActionItem] = []
    if go_no_go.decision in ("NO_GO", "STOP_WORK"):
        for reason in go_no_go.reasons:
            actions.append(
                ActionItem(
                    priority="CRITICAL",
                    action=f"Address: {reason}",
                    deadline="Before work can proceed",
                    responsibility="Site Supervisor",
                )
            )
    for condition in go_no_go.conditions:
        actions.append(
            ActionItem(
                priority="HIGH",
                action=condition,
                deadline="Before work starts",
                responsibility="Competent Person",
            )
        )
    for gap in gaps[:3]:
        actions.append(
            ActionItem(
                priority=gap.severity,
                action=f"Resolve compliance gap: {gap.gap}",
                deadline="Immediate" if gap.severity == "CRITICAL" else "Within 24 hours",
                responsibility="Safety Manager",
            )
        )
    for gap in readiness.gaps:
        actions.append(
            ActionItem(
                priority="HIGH",
                action=f"Address emergency readiness gap: {gap}",
                deadline="Before work starts",
                responsibility="Emergency Coordinator",
            )
        )
    preventive = prediction.interventions.preventive if prediction.interventions else []
    for intervention in preventive[:3]:
        action = intervention.get("action")
        if not action:
            continue
        feasibility = str(intervention.get("feasibility", "")).upper()
        actions.append(
            ActionItem(
                priority="MEDIUM" if feasibility == "HIGH" else "LOW",
                action=str(action),
                deadline=str(intervention.get("timeToImplement") or "As soon as feasible"),
                responsibility="Project Manager",
            )
        )
    return actions


def determine_required_approvals(
    go_no_go: GoNoGo, risk: RiskAssessmentPayload
) -> List[str]:
    """Signatures required before work proceeds (deduplicated, ordered)."""
    approvals = ["Site Supervisor"]
    if go_no_go.decision == "GO_WITH_CONDITIONS":
        approvals.append("Competent Person")
    if go_no_go.decision in ("NO_GO", "STOP_WORK"):
        approvals.extend(["Competent Person", "Safety Manager", "Project Manager"])
    overall = risk.risk_summary.overall_risk_level if risk.risk_summary else ""
    if overall in ("EXTREME", "HIGH"):
        approvals.append("Safety Manager")
    return list(dict.fromkeys(approvals))


def report_metadata(checklist: Dict[str, Any]) -> Dict[str, Any]:
    """Project, location and work type pulled from the checklist."""
    first_section: List[Any] = []
    sections = checklist.get("sections")
    if isinstance(sections, list) and sections and isinstance(sections[0], dict):
        first_section = sections[0].get("responses") or []

    def section_answer(index: int) -> Optional[str]:
        if len(first_section) > index and isinstance(first_section[index], dict):
            return first_section[index].get("response") or None
        return None

    return {
        "reportId": f"JHA-{uuid.uuid4().hex[:12]}",
        "generatedAt": datetime.now().isoformat(),
        "projectName": checklist.get("projectName")
        or checklist.get("template")
        or "Unnamed Project",
        "location": section_answer(0)
        or checklist.get("location")
        or "Location not specified",
        "workType": section_answer(1)
        or checklist.get("workType")
        or "Work type not specified",
        "supervisor": checklist.get("supervisor") or "Not specified",
    }


def _bullets(items: List[str], empty: str = "None identified") -> str:
    if not items:
        return f"- {empty}"
    return "\n".join(f"- {item}" for item in items)


def render_markdown(report: Dict[str, Any]) -> str:
    """Render the structured report as markdown."""
    meta = report["metadata"]
    summary = report["executiveSummary"]
    decision = summary["decision"]
    quality = report["dataQuality"]
    prediction = report["incidentPrediction"]
    weather = report["weatherAnalysis"]
    readiness = report["emergencyReadiness"]
    approvals = report["approvals"]

    lines = [
        "# Job Hazard Analysis",
        "",
        f"**Project:** {meta['projectName']}  ",
        f"**Location:** {meta['location']}  ",
        f"**Work Type:** {meta['workType']}  ",
        f"**Supervisor:** {meta['supervisor']}  ",
        f"**Report ID:** {meta['reportId']}",
        "",
        "## Executive Summary",
        "",
        f"**Decision:** {_DECISION_LABELS.get(decision['decision'], decision['decision'])}",
        f"**Overall Risk Level:** {summary['overallRiskLevel']}",
        f"**Incident Probability:** {summary['incidentProbability']:g}%",
        "",
    ]
    if decision["reasons"]:
        lines += ["**Stop-work reasons:**", _bullets(decision["reasons"]), ""]
    if decision["conditions"]:
        lines += ["**Conditions:**", _bullets(decision["conditions"]), ""]
    lines += ["**Top Threats:**", _bullets(summary["topThreats"]), ""]

    lines += [
        "## Data Quality",
        "",
        f"Score: {quality['score']}/10 ({quality['rating']})",
        "",
        "Missing critical fields:",
        _bullets(quality["missingCritical"]),
        "",
        "## Hazards",
        "",
        "| Hazard | Category | Consequence | Risk Score | Level |",
        "|---|---|---|---|---|",
    ]
    for hazard in report["riskAssessment"]["hazards"]:
        lines.append(
            f"| {hazard['name']} | {hazard['category']} | {hazard['consequence']} "
            f"| {hazard['riskScore']} | {hazard.get('riskLevel') or ''} |"
        )
    lines += [
        "",
        "## Incident Prediction",
        "",
        f"**Scenario:** {prediction['scenario']}",
        f"**Timeframe:** {prediction['timeframe']}",
        f"**Confidence:** {prediction['confidence']}",
        "",
        "Causal chain:",
    ]
    for index, stage in enumerate(prediction["causalChain"], start=1):
        lines.append(f"{index}. **{stage['stage']}**: {stage.get('description', '')}")
    lines += [
        "",
        f"**Single best intervention:** {prediction['singleBestIntervention']}",
        "",
        "## Weather",
        "",
        f"Risk level: {weather['riskLevel']}",
        _bullets(weather["impacts"], "No weather impacts identified"),
        "",
        "## Compliance Gaps",
        "",
    ]
    gaps = report["complianceGaps"]
    if gaps:
        lines += [
            f"- [{g['severity']}] {g['standard']}: {g['gap']}" for g in gaps
        ]
    else:
        lines.append("- No compliance gaps identified")
    lines += [
        "",
        "## Emergency Readiness",
        "",
        f"Rescue capability: {readiness['rescueCapability']}",
        _bullets(readiness["gaps"], "No emergency readiness gaps"),
        "",
        "## Action Items",
        "",
    ]
    actions = report["actionItems"]
    if actions:
        lines += [
            f"- [{a['priority']}] {a['action']} ({a['deadline']}, {a['responsibility']})"
            for a in actions
        ]
    else:
        lines.append("- No action items")
    lines += [
        "",
        "## Approvals",
        "",
        _bullets(approvals["requiredSignatures"]),
        "",
        f"Competent person review required: {'Yes' if approvals['competentPersonReview'] else 'No'}",
        f"Management review required: {'Yes' if approvals['managementReview'] else 'No'}",
    ]
    return "\n".join(lines)


def fallback_report_text(error: Any, checklist: Dict[str, Any], weather_present: bool) -> str:
    """Report used when the synthesis inputs are unusable."""
    return (
        "**ANALYSIS SYSTEM ERROR**\n\n"
        "The multi-agent pipeline encountered an error and could not complete the analysis.\n\n"
        f"Error: {error}\n\n"
        f"Checklist ID: {checklist.get('id', 'Unknown')}\n"
        f"Weather Data Present: {'Yes' if weather_present else 'No'}\n\n"
        "Please review the system logs and try again."
    )


class SafetyReportContract(StageContract):
    """Assemble the structured job hazard analysis report."""

    stage_id = "safety_agent_4"
    key = "synthesis"
    name = "Report Synthesizer"
    kind = StageKind.DETERMINISTIC
    output_schema = SafetyReportPayload
    model_label = "hybrid-template"

    def build(self, context: PipelineContext) -> SafetyReportPayload:
        validation = context.typed("validation", ValidationPayload)
        risk = context.typed("risk_assessment", RiskAssessmentPayload)
        prediction = context.typed("prediction", PredictionPayload)
        weather = reference.weather(context)
        checklist = context.payload
        top = risk.top_hazard

        go_no_go = determine_go_no_go(validation, risk, prediction, weather)
        gaps = identify_compliance_gaps(validation, risk)
        readiness = assess_emergency_response(checklist, top)
        weather_impact = analyze_weather_impact(weather)
        actions = generate_action_items(go_no_go, gaps, readiness, prediction)
        approvals = determine_required_approvals(go_no_go, risk)

        ranked = sorted(risk.hazards, key=lambda h: h.risk_score, reverse=True)
        probability = prediction.probability
        if probability is None:
            probability = round(top.probability * 100, 1)
        interventions = prediction.interventions

        report: Dict[str, Any] = {
            "metadata": report_metadata(checklist),
            "executiveSummary": {
                "decision": go_no_go.to_payload(),
                "overallRiskLevel": (
                    risk.risk_summary.overall_risk_level if risk.risk_summary else "MEDIUM"
                ),
                "topThreats": risk.top_threats
                or [
                    f"{i}. {h.name} ({h.risk_score}/100)"
                    for i, h in enumerate(ranked[:3], start=1)
                ],
                "criticalActions": [a.action for a in actions if a.priority == "CRITICAL"],
                "incidentProbability": probability,
            },
            "dataQuality": {
                "score": validation.quality_score,
                "rating": validation.data_quality,
                "missingCritical": validation.missing_critical,
                "concerns": validation.concerns,
            },
            "riskAssessment": {
                "hazards": [h.to_payload() for h in ranked],
                "industryContext": (
                    (risk.risk_summary.industry_context if risk.risk_summary else "")
                    or risk.osha_data.get("industryName")
                    or "Construction industry"
                ),
                "oshaStatistics": risk.osha_data,
            },
            "incidentPrediction": {
                "scenario": prediction.incident_name,
                "probability": prediction.probability or 0,
                "timeframe": prediction.timeframe or "Next 4 hours",
                "confidence": prediction.confidence,
                "causalChain": [c.to_payload() for c in prediction.causal_chain],
                "leadingIndicators": [
                    i.to_payload() if not isinstance(i, str) else i
                    for i in prediction.leading_indicators
                ],
                "singleBestIntervention": prediction.single_best_intervention
                or "Not determined",
            },
            "weatherAnalysis": weather_impact.to_payload(),
            "complianceGaps": [g.to_payload() for g in gaps],
            "emergencyReadiness": readiness.to_payload(),
            "actionItems": [a.to_payload() for a in actions],
            "recommendedInterventions": {
                "preventive": interventions.preventive if interventions else [],
                "mitigative": interventions.mitigative if interventions else [],
            },
            "approvals": {
                "requiredSignatures": approvals,
                "competentPersonReview": go_no_go.decision != "GO",
                "managementReview": go_no_go.decision in ("NO_GO", "STOP_WORK"),
            },
        }
        report["markdownReport"] = render_markdown(report)
        return SafetyReportPayload.model_validate(report)

    def fallback(self, context: PipelineContext) -> SafetyReportPayload:
        """Minimal report carrying the system error notice."""
        weather = reference.weather(context)
        text = fallback_report_text(
            "Report synthesis failed", context.payload, bool(weather)
        )
        return SafetyReportPayload(
            metadata=report_metadata(context.payload),
            executive_summary={"decision": None, "overallRiskLevel": "UNKNOWN"},
            data_quality={},
            risk_assessment={},
            incident_prediction={},
            weather_analysis=analyze_weather_impact(weather),
            emergency_readiness=EmergencyReadiness(
                rescue_capability="NOT_REQUIRED",
                first_aid=False,
                communication=False,
                evacuation_plan=False,
            ),
            markdown_report=text,
        )

    def report_text(self, payload: Dict[str, Any]) -> Optional[str]:
        return (payload or {}).get("markdownReport")
