"""
Baseline-vs-Update Comparison Input.

The comparison pipeline receives a previously completed analysis (the
baseline) and a delta describing what changed on site since then.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
    }


class BaselineAnalysis(_CamelModel):
    """A completed analysis used as the comparison baseline."""

    id: str = "unknown"
    query: str = ""
    response: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    risk_score: Optional[float] = None

    @field_validator("risk_score", mode="before")
    @classmethod
    def _score(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        return v


class UpdateDelta(_CamelModel):
    """Changes reported since the baseline."""

    changed_categories: List[str] = Field(default_factory=list)
    new_wind_speed: Optional[str] = None
    new_crew_members: Optional[List[Any]] = None
    new_hazards: Optional[List[Any]] = None
    user_risk_assessment: Literal["safer", "same", "riskier"] = "same"

    @field_validator("changed_categories", mode="before")
    @classmethod
    def _categories(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("new_wind_speed", mode="before")
    @classmethod
    def _wind(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("user_risk_assessment", mode="before")
    @classmethod
    def _assessment(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class ComparisonInput(BaseModel):
    """Baseline plus delta."""

    baseline: BaselineAnalysis = Field(default_factory=BaselineAnalysis)
    delta: UpdateDelta = Field(default_factory=UpdateDelta)

    @classmethod
    def from_request(
        cls, payload: Dict[str, Any], reference: Dict[str, Any]
    ) -> "ComparisonInput":
        """
        Build from a run's payload and reference data.

        The baseline may come with the payload or as reference data; the
        delta is either under ``delta`` or the payload itself.
        """
        baseline = payload.get("baseline") or reference.get("baseline") or {}
        delta = payload.get("delta")
        if delta is None:
            delta = {k: v for k, v in payload.items() if k != "baseline"}
        return cls(
            baseline=BaselineAnalysis.model_validate(baseline),
            delta=UpdateDelta.model_validate(delta),
        )
