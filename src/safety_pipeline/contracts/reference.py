"""
Reference Data Helpers.

Industry statistics defaults, weather accessors and the small
deterministic heuristics (fatigue, high-risk time of day) used by the
safety-analysis prompts and report.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

# Specialty Trade Contractors, BLS 2023
DEFAULT_INDUSTRY_PROFILE: Dict[str, Any] = {
    "industryName": "Specialty Trade Contractors",
    "naicsCode": "238",
    "injuryRate": 35,
    "totalCases": 198400,
    "dataSource": "BLS_Table_1_2023",
}

# Construction average injury rate per 100 workers
CONSTRUCTION_AVERAGE_INJURY_RATE = 35

# Crane / swing stage wind limit in mph
WIND_LIMIT_MPH = 20.0


def industry_profile(context: PipelineContext) -> Dict[str, Any]:
    """Industry statistics from reference data, filled with defaults."""
    supplied = context.reference_item("industry", {}) or {}
    profile = dict(DEFAULT_INDUSTRY_PROFILE)
    profile.update({k: v for k, v in supplied.items() if v not in (None, "")})
    return profile


def weather(context: PipelineContext) -> Dict[str, Any]:
    """Weather snapshot from reference data (empty dict when absent)."""
    value = context.reference_item("weather", {})
    return value if isinstance(value, dict) else {}


def weather_number(data: Dict[str, Any], *keys: str) -> Optional[float]:
    """First numeric weather reading among the given keys."""
    for key in keys:
        value = data.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def wind_speed(data: Dict[str, Any]) -> Optional[float]:
    return weather_number(data, "windSpeed", "wind_speed", "wind")


def temperature(data: Dict[str, Any]) -> Optional[float]:
    return weather_number(data, "temperature", "temp")


def is_extreme_temperature(value: Optional[float]) -> bool:
    return value is not None and (value < 32 or value > 95)


def calculate_fatigue(hours_worked: Any, consecutive_days: Any) -> str:
    """Fatigue level from shift length and consecutive days worked."""
    hours = _as_float(hours_worked)
    days = _as_float(consecutive_days)
    if hours > 12 or days > 14:
        return "CRITICAL"
    if hours > 10 or days > 10:
        return "HIGH"
    if hours > 8 or days > 5:
        return "MODERATE"
    return "NORMAL"


def is_high_risk_time(now: Optional[datetime] = None) -> bool:
    """
    True during known incident-prone periods.

    10:00-11:30, 14:00-15:30, Friday afternoons and the 16:00-17:59
    end-of-shift window.
    """
    now = now or datetime.now()
    minutes = now.hour * 60 + now.minute
    if 600 <= minutes <= 690 or 840 <= minutes <= 930:
        return True
    if now.weekday() == 4 and now.hour >= 14:
        return True
    return 16 <= now.hour <= 17


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
