"""
Stage Payload Models.

Typed payloads for every pipeline stage. Model output is never trusted as
already-typed: each stage validates the extracted JSON against one of
these models before the payload enters the pipeline context.

Design Notes:
    - camelCase aliases on the wire, snake_case attributes in Python
    - Unknown keys are kept (extra="allow") so nothing the model adds is lost
    - "before" validators normalize enum casing and clamp numeric ranges;
      anything that cannot be normalized is a validation error
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

DataQualityLevel = Literal["HIGH", "MEDIUM", "LOW"]
ConfidenceLevel = Literal["HIGH", "MEDIUM", "LOW"]
Consequence = Literal["Minor", "Serious", "Critical", "Fatal"]
Decision = Literal["go", "no_go", "conditional"]
ValidationStatus = Literal["complete", "incomplete", "inconsistent"]
EmergencyPriority = Literal["critical", "high", "medium", "low"]


# =============================================================================
# Normalization helpers
# =============================================================================


def clamp_int(value: Any, low: int, high: int) -> Any:
    """Round and clamp a numeric value; non-numbers pass through untouched."""
    if isinstance(value, bool):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    return int(min(max(round(number), low), high))


def clamp_float(value: Any, low: float, high: float) -> Any:
    """Clamp a numeric value; non-numbers pass through untouched."""
    if isinstance(value, bool):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    return min(max(number, low), high)


def as_text(item: Any) -> str:
    """Render a list entry as a string."""
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, dict):
        for key in ("field", "name", "hazard", "description", "action", "text"):
            if isinstance(item.get(key), str):
                return item[key].strip()
    return str(item)


def string_list(value: Any) -> Any:
    """Coerce None, a single string or a list of mixed entries into a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [text for text in (as_text(v) for v in value) if text]
    return value


def upper_token(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


# =============================================================================
# Base
# =============================================================================


class StagePayload(BaseModel):
    """Base for all stage payloads."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
        "protected_namespaces": (),
    }

    def to_payload(self) -> Dict[str, Any]:
        """Wire form stored in the context, the audit sink and the output."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Safety analysis
# =============================================================================


class ValidationPayload(StagePayload):
    """Checklist validation output."""

    quality_score: int = Field(ge=1, le=10)
    data_quality: Optional[DataQualityLevel] = None
    missing_critical: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    insufficient_responses: List[Dict[str, Any]] = Field(default_factory=list)
    no_responses: List[str] = Field(default_factory=list)
    weather_present: bool = False
    weather_risks: List[str] = Field(default_factory=list)
    trade_specific_gaps: List[str] = Field(default_factory=list)
    recommended_action: Optional[str] = None

    @field_validator("quality_score", mode="before")
    @classmethod
    def _clamp_score(cls, v: Any) -> Any:
        return clamp_int(v, 1, 10)

    @field_validator("data_quality", mode="before")
    @classmethod
    def _normalize_quality(cls, v: Any) -> Any:
        return upper_token(v)

    @field_validator("concerns", mode="before")
    @classmethod
    def _flatten_concerns(cls, v: Any) -> Any:
        # Models often group concerns by severity
        if isinstance(v, dict):
            flat: List[str] = []
            for severity in ("CRITICAL", "HIGH", "MEDIUM", "LOW"):
                flat.extend(string_list(v.get(severity) or v.get(severity.lower())))
            return flat
        return string_list(v)

    @field_validator(
        "missing_critical", "no_responses", "weather_risks", "trade_specific_gaps",
        mode="before",
    )
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)

    @field_validator("insufficient_responses", mode="before")
    @classmethod
    def _responses(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [
                item if isinstance(item, dict) else {"field": str(item), "issue": ""}
                for item in v
            ]
        return v


class RiskHazard(StagePayload):
    """A single scored hazard."""

    name: str = Field(min_length=1)
    category: str = "Other"
    probability: float = Field(ge=0.0, le=1.0)
    consequence: Consequence
    risk_score: int = Field(ge=1, le=100)
    risk_level: Optional[str] = None
    osha_context: str = ""
    inadequate_controls: List[str] = Field(default_factory=list)
    recommended_controls: List[str] = Field(default_factory=list)
    regulatory_requirement: Optional[str] = None
    probability_calculation: Optional[Dict[str, Any]] = None

    @field_validator("probability", mode="before")
    @classmethod
    def _probability(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 1.0 < v <= 100.0:
            # Percent given instead of a fraction
            return v / 100.0
        return clamp_float(v, 0.0, 1.0)

    @field_validator("consequence", mode="before")
    @classmethod
    def _consequence(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().capitalize()
        return v

    @field_validator("risk_score", mode="before")
    @classmethod
    def _score(cls, v: Any) -> Any:
        return clamp_int(v, 1, 100)

    @field_validator("inadequate_controls", "recommended_controls", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)


class RiskSummary(StagePayload):
    overall_risk_level: str = "MEDIUM"
    highest_risk_score: int = 0
    industry_context: str = ""


class RiskAssessmentPayload(StagePayload):
    """Risk assessment output; hazards ranked by risk score."""

    risk_summary: Optional[RiskSummary] = None
    hazards: List[RiskHazard] = Field(min_length=1)
    top_threats: List[str] = Field(default_factory=list)
    weather_impact: Optional[str] = None
    immediate_actions: List[str] = Field(default_factory=list)
    osha_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("top_threats", "immediate_actions", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)

    @property
    def top_hazard(self) -> RiskHazard:
        """Highest scoring hazard (first occurrence wins ties)."""
        return max(self.hazards, key=lambda h: h.risk_score)


class CausalStage(StagePayload):
    stage: str = Field(min_length=1)
    description: str = ""


class LeadingIndicator(StagePayload):
    indicator: str = Field(min_length=1)
    type: Optional[str] = None
    where_to_look: Optional[str] = None
    what_to_see: Optional[str] = None
    threshold: Optional[str] = None
    action_required: Optional[str] = None


class InterventionSet(StagePayload):
    preventive: List[Dict[str, Any]] = Field(default_factory=list)
    mitigative: List[Dict[str, Any]] = Field(default_factory=list)
    recommended: str = ""


class PredictionPayload(StagePayload):
    """Incident prediction built around the top hazard."""

    incident_name: str = Field(min_length=1)
    timeframe: Optional[str] = None
    probability: Optional[float] = None
    confidence: ConfidenceLevel
    causal_chain: List[CausalStage] = Field(min_length=1)
    leading_indicators: List[Union[LeadingIndicator, str]] = Field(min_length=3)
    single_best_intervention: Optional[str] = None
    interventions: Optional[InterventionSet] = None
    osha_pattern_match: Optional[Dict[str, Any]] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Any:
        return upper_token(v)

    @field_validator("probability", mode="before")
    @classmethod
    def _probability(cls, v: Any) -> Any:
        return clamp_float(v, 0.0, 100.0) if v is not None else None

    @field_validator("leading_indicators", mode="after")
    @classmethod
    def _at_most_five(cls, v: List[Any]) -> List[Any]:
        return v[:5]


class GoNoGo(StagePayload):
    decision: Literal["GO", "GO_WITH_CONDITIONS", "NO_GO", "STOP_WORK"]
    reasons: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)


class ComplianceGap(StagePayload):
    standard: str
    requirement: str
    gap: str
    severity: Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]
    evidence: str


class EmergencyReadiness(StagePayload):
    rescue_capability: Literal["ADEQUATE", "INADEQUATE", "NOT_REQUIRED"]
    first_aid: bool
    communication: bool
    evacuation_plan: bool
    gaps: List[str] = Field(default_factory=list)


class WeatherImpact(StagePayload):
    current_conditions: Dict[str, Any] = Field(default_factory=dict)
    risk_level: Literal["GREEN", "YELLOW", "RED"] = "GREEN"
    impacts: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ActionItem(StagePayload):
    priority: Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]
    action: str
    deadline: str
    responsibility: str


class SafetyReportPayload(StagePayload):
    """Structured job hazard analysis report."""

    metadata: Dict[str, Any]
    executive_summary: Dict[str, Any]
    data_quality: Dict[str, Any]
    risk_assessment: Dict[str, Any]
    incident_prediction: Dict[str, Any]
    weather_analysis: WeatherImpact
    compliance_gaps: List[ComplianceGap] = Field(default_factory=list)
    emergency_readiness: EmergencyReadiness
    action_items: List[ActionItem] = Field(default_factory=list)
    recommended_interventions: Dict[str, Any] = Field(default_factory=dict)
    approvals: Dict[str, Any] = Field(default_factory=dict)
    markdown_report: str = Field(min_length=1)


# =============================================================================
# Baseline-vs-update comparison
# =============================================================================


def normalize_decision(value: Any) -> Any:
    """Map the many spellings of a go/no-go verdict onto go|no_go|conditional."""
    if not isinstance(value, str):
        return value
    token = value.strip().lower().replace("-", "_").replace(" ", "_")
    aliases = {
        "nogo": "no_go",
        "no_go": "no_go",
        "stop": "no_go",
        "stop_work": "no_go",
        "go_with_conditions": "conditional",
        "conditional_go": "conditional",
        "conditions": "conditional",
    }
    return aliases.get(token, token)


class DeltaValidationPayload(StagePayload):
    validation_status: ValidationStatus
    quality_score: int = Field(ge=0, le=10)
    validated_changes: List[str] = Field(default_factory=list)
    missing_information: List[str] = Field(default_factory=list)
    inconsistencies: List[str] = Field(default_factory=list)
    data_completeness: int = Field(default=0, ge=0, le=100)

    @field_validator("validation_status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("quality_score", mode="before")
    @classmethod
    def _score(cls, v: Any) -> Any:
        return clamp_int(v, 0, 10)

    @field_validator("data_completeness", mode="before")
    @classmethod
    def _completeness(cls, v: Any) -> Any:
        return clamp_int(v, 0, 100)

    @field_validator(
        "validated_changes", "missing_information", "inconsistencies", mode="before"
    )
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)


HIGH_SEVERITY_LABELS = frozenset({"high", "critical", "fatal", "extreme"})


class RiskComparisonPayload(StagePayload):
    current_risk_score: int = Field(ge=0, le=100)
    risk_score_delta: float = 0.0
    improvements: List[Dict[str, Any]] = Field(default_factory=list)
    degradations: List[Dict[str, Any]] = Field(default_factory=list)
    new_hazards: List[Dict[str, Any]] = Field(default_factory=list)
    category_impacts: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("current_risk_score", mode="before")
    @classmethod
    def _score(cls, v: Any) -> Any:
        return clamp_int(v, 0, 100)

    @field_validator("improvements", "degradations", "new_hazards", mode="before")
    @classmethod
    def _entries(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, list):
            return [item if isinstance(item, dict) else {"hazard": str(item)} for item in v]
        return v

    @property
    def has_high_severity_hazard(self) -> bool:
        """True when any newly introduced hazard is rated high or worse."""
        for hazard in self.new_hazards:
            severity = str(hazard.get("severity", "")).strip().lower()
            if severity in HIGH_SEVERITY_LABELS:
                return True
        return False


class DecisionPayload(StagePayload):
    decision: Decision
    reasoning: str = ""
    required_actions: List[str] = Field(default_factory=list)
    work_restrictions: List[str] = Field(default_factory=list)
    monitoring_requirements: List[str] = Field(default_factory=list)
    model_decision: Optional[Decision] = None
    rule_decision: Optional[Decision] = None
    triggered_rules: List[str] = Field(default_factory=list)

    @field_validator("decision", "model_decision", "rule_decision", mode="before")
    @classmethod
    def _decision(cls, v: Any) -> Any:
        return normalize_decision(v)

    @field_validator(
        "required_actions", "work_restrictions", "monitoring_requirements",
        "triggered_rules",
        mode="before",
    )
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)


class ComparisonReportPayload(StagePayload):
    executive_summary: str = ""
    comparison_report: str = Field(min_length=1)
    key_findings: List[str] = Field(default_factory=list)
    critical_changes: List[str] = Field(default_factory=list)

    @field_validator("key_findings", "critical_changes", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)


# =============================================================================
# Emergency action plan
# =============================================================================


class PlanValidationPayload(StagePayload):
    complete: bool
    missing_required: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    hazard_equipment_mismatches: List[str] = Field(default_factory=list)
    ready_to_generate: bool


class RequiredEmergency(StagePayload):
    type: str = Field(min_length=1)
    reason: str = ""
    osha_reference: str = ""
    critical_details: List[str] = Field(default_factory=list)
    priority: EmergencyPriority = "medium"

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().replace(" ", "_").replace("-", "_")
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("critical_details", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)


class ClassificationPayload(StagePayload):
    required_emergencies: List[RequiredEmergency] = Field(min_length=1)
    optional_emergencies: List[str] = Field(default_factory=list)
    total_procedures: int = 0

    @field_validator("optional_emergencies", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> Any:
        return string_list(v)


def _joined_text(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return "\n".join(as_text(v) for v in value)
    return value


class EmergencyProcedure(StagePayload):
    emergency_type: str = Field(min_length=1)
    title: str = Field(min_length=1)
    when_applicable: str = ""
    procedure_steps: str = Field(min_length=1)
    site_specific_factors: str = ""
    equipment_needed: str = ""
    training_required: str = ""
    osha_reference: str = ""

    @field_validator(
        "procedure_steps", "site_specific_factors", "equipment_needed",
        "training_required",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> Any:
        return _joined_text(v)


class ProcedureSetPayload(StagePayload):
    procedures: List[EmergencyProcedure] = Field(min_length=1)
    generated: List[str] = Field(default_factory=list)
    fallbacks: List[str] = Field(default_factory=list)

    @property
    def procedure_count(self) -> int:
        return len(self.procedures)


class EmergencyPlanDocument(StagePayload):
    metadata: Dict[str, Any]
    sections: Dict[str, str]
    completeness: int = Field(ge=0, le=100)
    osha_compliant: bool
    complete: bool
    document: str = Field(min_length=1)
