"""
Configuration Loader - YAML Loading with Validation.

Loads engine configuration from YAML files, optionally merges a profile
overlay (e.g. ``config/profiles/low_cost.yaml``) and validates the result
with the Pydantic models.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from safety_pipeline.config.models import EngineConfig

logger = logging.getLogger(__name__)

# Environment variable -> (section, key) overrides applied after YAML merge
ENV_OVERRIDES = {
    "SAFETY_PIPELINE_MODEL_NAME": ("model", "model_name"),
    "SAFETY_PIPELINE_EMBEDDING_MODEL": ("model", "embedding_model"),
    "SAFETY_PIPELINE_PACING_SECONDS": ("pacing", "interval_seconds"),
    "SAFETY_PIPELINE_BACKFILL_PACING_SECONDS": ("pacing", "backfill_interval_seconds"),
}


class ConfigLoader:
    """Loads and validates engine configuration from YAML files."""

    def __init__(
        self,
        base_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize config loader.

        Args:
            base_path: Base path for relative config and profile paths
            environ: Environment mapping for overrides (defaults to os.environ)
        """
        self._base_path = base_path or Path(".")
        self._environ = environ if environ is not None else os.environ

    def load(
        self,
        config_path: Union[str, Path],
        profile: Optional[str] = None,
    ) -> EngineConfig:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file
            profile: Optional profile name to merge

        Returns:
            Validated EngineConfig object

        Raises:
            FileNotFoundError: If config or profile file doesn't exist
            ValidationError: If config is invalid
        """
        path = self._resolve_path(config_path)
        config_dict = self._load_yaml(path)

        if profile:
            profile_dict = self._load_profile(profile)
            config_dict = self._merge_configs(config_dict, profile_dict)

        return self.load_from_dict(config_dict)

    def load_from_dict(self, config_dict: Dict[str, Any]) -> EngineConfig:
        """
        Load configuration from dictionary, applying environment overrides.

        Args:
            config_dict: Configuration as dictionary

        Returns:
            Validated EngineConfig object
        """
        merged = self._apply_env_overrides(config_dict)
        return EngineConfig.model_validate(merged)

    def _resolve_path(self, path: Union[str, Path]) -> Path:
        """Resolve config path relative to base path."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self._base_path / p

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML file."""
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _load_profile(self, profile: str) -> Dict[str, Any]:
        """Load profile configuration."""
        profile_path = self._base_path / "config" / "profiles" / f"{profile}.yaml"
        if not profile_path.exists():
            raise FileNotFoundError(f"Profile not found: {profile}")
        return self._load_yaml(profile_path)

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Overlay values from environment variables."""
        overlay: Dict[str, Any] = {}
        for env_name, (section, key) in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value is None or value == "":
                continue
            logger.debug(f"Config override from {env_name}: {section}.{key}")
            overlay.setdefault(section, {})[key] = value
        if not overlay:
            return dict(config_dict)
        return self._merge_configs(config_dict, overlay)

    def _merge_configs(
        self,
        base: Dict[str, Any],
        overlay: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Deep merge overlay into base config."""
        result = dict(base)
        for key, value in overlay.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result


def load_config(
    config_path: Union[str, Path],
    profile: Optional[str] = None,
    base_path: Optional[Path] = None,
) -> EngineConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to YAML config file
        profile: Optional profile name
        base_path: Base path for resolving relative paths

    Returns:
        Validated EngineConfig object
    """
    loader = ConfigLoader(base_path=base_path)
    return loader.load(config_path, profile)
