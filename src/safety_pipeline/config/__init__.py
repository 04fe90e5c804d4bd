"""
Configuration Package - Models and Loaders.

This package handles all configuration aspects of the pipeline engine:
    - Pydantic models for model service, stage and pacing settings
    - YAML loader with profile overlays and environment overrides

Configuration Structure:
    - EngineConfig: Root configuration object
    - ModelSettings: Model name, API key variable, embedding model
    - SafetyAnalysisSettings / ComparisonSettings / EmergencyPlanSettings:
      per-stage temperature and token limits
    - ValidationRules: Checklist fields and "no answer" tokens
    - PacingSettings: Batch job pacing
"""

from safety_pipeline.config.loader import ConfigLoader, load_config
from safety_pipeline.config.models import (
    ComparisonSettings,
    EmergencyPlanSettings,
    EngineConfig,
    FieldRule,
    ModelSettings,
    PacingSettings,
    SafetyAnalysisSettings,
    StageSettings,
    ValidationRules,
)

__all__ = [
    "ConfigLoader",
    "load_config",
    "ComparisonSettings",
    "EmergencyPlanSettings",
    "EngineConfig",
    "FieldRule",
    "ModelSettings",
    "PacingSettings",
    "SafetyAnalysisSettings",
    "StageSettings",
    "ValidationRules",
]
