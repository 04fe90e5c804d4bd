"""
Emergency Action Plan Questionnaire.

Loose model of the questionnaire the emergency-plan generator consumes.
Every field is optional: completeness is judged by the validation stage,
not rejected at parse time.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def _number(value: Any) -> Optional[float]:
    """Leading number of a free-form answer ("90 ft" -> 90.0), else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.search(str(value).replace(",", ""))
    return float(match.group()) if match else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "y", "1", "checked", "on")
    return bool(value)


class _Loose(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
    }


class ContactPerson(_Loose):
    name: str = ""
    title: str = ""
    phone: str = ""

    @field_validator("name", "title", "phone", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)


class Hospital(_Loose):
    name: str = ""
    phone: str = ""
    address: str = ""
    distance: float = 0.0

    @field_validator("name", "phone", "address", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("distance", mode="before")
    @classmethod
    def _coerce_distance(cls, v: Any) -> float:
        return _number(v) or 0.0


class FireStation(_Loose):
    phone: str = ""
    estimated_response_time: Optional[float] = None

    @field_validator("phone", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("estimated_response_time", mode="before")
    @classmethod
    def _coerce_minutes(cls, v: Any) -> Optional[float]:
        return _number(v)


class Police(_Loose):
    phone: str = ""

    @field_validator("phone", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)


class AssemblyArea(_Loose):
    location: str = ""
    gps_coordinates: Optional[str] = None
    safety_features: Optional[str] = None

    @field_validator("location", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("gps_coordinates", "safety_features", mode="before")
    @classmethod
    def _coerce_optional(cls, v: Any) -> Optional[str]:
        return _text(v) or None


class SiteHazards(_Loose):
    fall_from_height: bool = False
    confined_space: bool = False
    crane_operations: bool = False
    swing_stage: bool = False
    hazardous_materials: bool = False
    excavation: bool = False
    demolition: bool = False
    electrical_high_voltage: bool = False
    hot_work: bool = False

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_flag(cls, v: Any) -> bool:
        return _flag(v)


_TEXT_FIELDS = (
    "company_name",
    "site_address",
    "city",
    "state",
    "zip_code",
    "project_description",
    "building_type",
)

_SECTIONS = (
    "emergency_coordinator",
    "alternate_coordinator",
    "nearest_hospital",
    "fire_station",
    "local_police",
    "primary_assembly",
    "secondary_assembly",
    "hazards",
)


class EmergencyQuestionnaire(_Loose):
    """Site questionnaire for emergency action plan generation."""

    company_name: str = ""
    site_address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    project_description: str = ""
    building_type: str = ""
    site_type: str = "construction"
    building_height: Optional[float] = None
    work_elevation: Optional[float] = None
    construction_phase: Optional[str] = None
    total_employees: int = 0
    emergency_coordinator: ContactPerson = Field(default_factory=ContactPerson)
    alternate_coordinator: ContactPerson = Field(default_factory=ContactPerson)
    nearest_hospital: Hospital = Field(default_factory=Hospital)
    fire_station: FireStation = Field(default_factory=FireStation)
    local_police: Police = Field(default_factory=Police)
    primary_assembly: AssemblyArea = Field(default_factory=AssemblyArea)
    secondary_assembly: AssemblyArea = Field(default_factory=AssemblyArea)
    alarm_systems: List[str] = Field(default_factory=list)
    hazards: SiteHazards = Field(default_factory=SiteHazards)
    equipment: List[str] = Field(default_factory=list)
    weather_concerns: List[str] = Field(default_factory=list)
    radio_channel: Optional[str] = None
    rescue_capability: Optional[str] = None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("site_type", mode="before")
    @classmethod
    def _coerce_site_type(cls, v: Any) -> str:
        return _text(v).strip().lower() or "construction"

    @field_validator("construction_phase", "radio_channel", "rescue_capability", mode="before")
    @classmethod
    def _coerce_optional(cls, v: Any) -> Optional[str]:
        return _text(v) or None

    @field_validator("building_height", "work_elevation", mode="before")
    @classmethod
    def _coerce_feet(cls, v: Any) -> Optional[float]:
        return _number(v)

    @field_validator("total_employees", mode="before")
    @classmethod
    def _coerce_count(cls, v: Any) -> int:
        return int(_number(v) or 0)

    @field_validator(*_SECTIONS, mode="before")
    @classmethod
    def _coerce_section(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, BaseModel)) else {}

    @field_validator("alarm_systems", "equipment", "weather_concerns", mode="before")
    @classmethod
    def _list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        if isinstance(v, list):
            return [_text(item) for item in v if _text(item)]
        return []

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "EmergencyQuestionnaire":
        """
        Parse a caller payload, tolerating a ``questionnaire`` wrapper.

        Never raises: answers that still fail validation after coercion
        are dropped and reported missing by the validation stage.
        """
        data = payload.get("questionnaire", payload)
        data = dict(data) if isinstance(data, dict) else {}
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            rejected = {str(error["loc"][0]) for error in e.errors() if error["loc"]}
            logger.warning(f"Dropping unreadable questionnaire answers: {sorted(rejected)}")
        try:
            return cls.model_validate({k: v for k, v in data.items() if k not in rejected})
        except ValidationError as e:
            logger.warning(f"Questionnaire unreadable, using empty questionnaire: {e}")
            return cls()

    @property
    def full_address(self) -> str:
        return f"{self.site_address}, {self.city}, {self.state} {self.zip_code}".strip()

    @property
    def osha_standard(self) -> str:
        """Emergency action plan standard for the site type."""
        return "29 CFR 1926.35" if self.site_type == "construction" else "29 CFR 1910.38"

    def has_equipment(self, keyword: str) -> bool:
        keyword = keyword.lower()
        return any(keyword in item.lower() for item in self.equipment)
