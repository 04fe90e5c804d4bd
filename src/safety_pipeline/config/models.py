"""
Configuration Models - Pydantic Models for Type-Safe Config.

All configuration is validated at load time using Pydantic. Per-stage
temperature and token limits live here instead of inline in the stages.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class ModelSettings(BaseModel):
    """Generative model service settings."""

    model_name: str = Field(default="gemini-2.5-flash")
    api_key_env: str = Field(default="GOOGLE_API_KEY")
    embedding_model: str = Field(default="text-embedding-004")

    model_config = {"protected_namespaces": ()}


class StageSettings(BaseModel):
    """Invocation settings for a single stage."""

    temperature: float = Field(ge=0.0, le=2.0)
    max_tokens: int = Field(ge=0)
    purpose: str = ""


def _stage(temperature: float, max_tokens: int, purpose: str) -> StageSettings:
    return StageSettings(temperature=temperature, max_tokens=max_tokens, purpose=purpose)


class SafetyAnalysisSettings(BaseModel):
    """Stage settings for the safety-analysis pipeline."""

    validation: StageSettings = Field(
        default_factory=lambda: _stage(
            0.3, 12000, "Validate checklist completeness and response quality"
        )
    )
    risk_assessment: StageSettings = Field(
        default_factory=lambda: _stage(
            0.7, 16000, "Identify and score hazards against industry statistics"
        )
    )
    prediction: StageSettings = Field(
        default_factory=lambda: _stage(
            1.0, 16000, "Predict the causal chain of the top-ranked hazard"
        )
    )
    synthesis: StageSettings = Field(
        default_factory=lambda: _stage(
            0.5, 0, "Assemble the structured job hazard analysis report"
        )
    )


class ComparisonSettings(BaseModel):
    """Stage settings for the baseline-vs-update comparison pipeline."""

    delta_validation: StageSettings = Field(
        default_factory=lambda: _stage(0.3, 2000, "Validate reported changes")
    )
    risk_comparison: StageSettings = Field(
        default_factory=lambda: _stage(
            0.4, 3000, "Compare baseline risks with current conditions"
        )
    )
    decision: StageSettings = Field(
        default_factory=lambda: _stage(0.2, 2000, "GO / NO-GO decision")
    )
    synthesis: StageSettings = Field(
        default_factory=lambda: _stage(0.5, 4000, "Write the comparison report")
    )


class EmergencyPlanSettings(BaseModel):
    """Stage settings for the emergency action plan generator."""

    validation: StageSettings = Field(
        default_factory=lambda: _stage(
            0.3, 0, "Validate questionnaire data and check for missing fields"
        )
    )
    classification: StageSettings = Field(
        default_factory=lambda: _stage(
            0.5,
            2000,
            "Classify required emergency procedures based on facility characteristics",
        )
    )
    procedures: StageSettings = Field(
        default_factory=lambda: _stage(
            0.7, 3000, "Generate site-specific emergency procedures"
        )
    )
    assembly: StageSettings = Field(
        default_factory=lambda: _stage(
            0.3, 0, "Assemble final emergency action plan document"
        )
    )


class FieldRule(BaseModel):
    """A checklist field the validation stage looks for."""

    name: str
    aliases: List[str] = Field(default_factory=list)
    critical: bool = False

    def all_names(self) -> List[str]:
        """Field name plus its aliases."""
        return [self.name, *self.aliases]


def _default_field_rules() -> List[FieldRule]:
    return [
        FieldRule(
            name="Emergency plan",
            aliases=["emergency", "evacuation", "assembly point"],
            critical=True,
        ),
        FieldRule(
            name="Worker certifications",
            aliases=["certification", "certified", "osha 10", "osha 30"],
            critical=True,
        ),
        FieldRule(
            name="Equipment",
            aliases=["equipment", "tools", "inspection date"],
            critical=True,
        ),
        FieldRule(
            name="PPE requirements",
            aliases=["ppe", "personal protective"],
            critical=True,
        ),
        FieldRule(
            name="Hazard identification",
            aliases=["hazard"],
            critical=True,
        ),
        FieldRule(name="Site location", aliases=["location", "site address", "address"]),
        FieldRule(name="Work type", aliases=["work type", "worktype", "task description"]),
        FieldRule(name="Supervisor", aliases=["supervisor", "competent person", "foreman"]),
    ]


class ValidationRules(BaseModel):
    """Rules for the deterministic part of checklist validation."""

    fields: List[FieldRule] = Field(default_factory=_default_field_rules)
    no_answer_tokens: List[str] = Field(
        default_factory=lambda: [
            "no response",
            "n/a",
            "na",
            "none",
            "same",
            "-",
            "tbd",
            "unknown",
            "not specified",
            "no answer",
        ]
    )

    @property
    def critical_fields(self) -> List[FieldRule]:
        """Rules flagged as critical."""
        return [f for f in self.fields if f.critical]


class PacingSettings(BaseModel):
    """Pacing for batch jobs calling the model service."""

    interval_seconds: float = Field(default=1.0, ge=0.0)
    backfill_interval_seconds: float = Field(default=0.1, ge=0.0)
    min_success_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class EngineConfig(BaseModel):
    """Root configuration object."""

    version: str = "1.0"
    model: ModelSettings = Field(default_factory=ModelSettings)
    safety_analysis: SafetyAnalysisSettings = Field(
        default_factory=SafetyAnalysisSettings,
    )
    comparison: ComparisonSettings = Field(
        default_factory=ComparisonSettings,
    )
    emergency_plan: EmergencyPlanSettings = Field(
        default_factory=EmergencyPlanSettings,
    )
    validation_rules: ValidationRules = Field(
        default_factory=ValidationRules,
        alias="validation",
    )
    pacing: PacingSettings = Field(default_factory=PacingSettings)

    model_config = {"populate_by_name": True, "protected_namespaces": ()}
