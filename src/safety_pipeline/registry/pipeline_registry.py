"""
Pipeline Registry - Named Pipeline Definitions.

Thread-safe registry of pipeline definition factories. Each factory takes
an EngineConfig and returns a PipelineDefinition; callers look pipelines
up by name instead of importing their modules.

Usage:
    registry = default_registry()
    definition = registry.create("comparison", config)

    # Temporarily take a pipeline out of service
    registry.disable("emergency_plan")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from safety_pipeline.config.models import EngineConfig
from safety_pipeline.pipeline.orchestrator import PipelineDefinition

logger = logging.getLogger(__name__)

DefinitionFactory = Callable[[EngineConfig], PipelineDefinition]


@dataclass
class PipelineInfo:
    """Metadata about a registered pipeline."""

    name: str
    version: str
    factory: DefinitionFactory
    enabled: bool = True
    description: str = ""
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "enabled": self.enabled,
            "description": self.description,
            "tags": self.tags,
        }


class PipelineRegistry:
    """
    Thread-safe registry of pipeline definitions.

    Supports:
        - Registration of custom pipelines
        - Enable/disable without unregistering
        - Version tracking per pipeline
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._pipelines: Dict[str, PipelineInfo] = {}
        self._lock = RLock()

    def register(
        self,
        name: str,
        factory: DefinitionFactory,
        version: str,
        description: str = "",
        tags: Optional[List[str]] = None,
    ) -> None:
        """
        Register a pipeline factory.

        Args:
            name: Unique pipeline name
            factory: Builds the PipelineDefinition from an EngineConfig
            version: Version string recorded in run metadata
            description: Optional description
            tags: Optional tags for categorization

        Raises:
            ValueError: If a pipeline with this name is already registered
        """
        with self._lock:
            if name in self._pipelines:
                raise ValueError(
                    f"Pipeline '{name}' is already registered. Use unregister() first."
                )
            self._pipelines[name] = PipelineInfo(
                name=name,
                version=version,
                factory=factory,
                description=description,
                tags=tags or [],
            )
            logger.info(f"Registered pipeline: {name} v{version}")

    def unregister(self, name: str) -> bool:
        """
        Remove a pipeline.

        Returns:
            True if removed, False if not found
        """
        with self._lock:
            if name not in self._pipelines:
                logger.warning(f"Cannot unregister: pipeline '{name}' not found")
                return False
            del self._pipelines[name]
            logger.info(f"Unregistered pipeline: {name}")
            return True

    def create(self, name: str, config: Optional[EngineConfig] = None) -> PipelineDefinition:
        """
        Build the definition of an enabled pipeline.

        Args:
            name: Registered pipeline name
            config: Engine configuration (defaults when omitted)

        Raises:
            KeyError: If the pipeline is unknown
            ValueError: If the pipeline is disabled
        """
        with self._lock:
            info = self._pipelines.get(name)
            if info is None:
                raise KeyError(
                    f"Unknown pipeline '{name}'. Registered: {sorted(self._pipelines)}"
                )
            if not info.enabled:
                raise ValueError(f"Pipeline '{name}' is disabled")
            factory = info.factory
        return factory(config or EngineConfig())

    def enable(self, name: str) -> bool:
        """Enable a pipeline. Returns False if not found."""
        return self._set_enabled(name, True)

    def disable(self, name: str) -> bool:
        """Disable a pipeline. Returns False if not found."""
        return self._set_enabled(name, False)

    def _set_enabled(self, name: str, enabled: bool) -> bool:
        with self._lock:
            info = self._pipelines.get(name)
            if info is None:
                return False
            info.enabled = enabled
            logger.info(f"{'Enabled' if enabled else 'Disabled'} pipeline: {name}")
            return True

    def list_all(self) -> Dict[str, PipelineInfo]:
        """All registered pipelines by name."""
        with self._lock:
            return dict(self._pipelines)

    def enabled_names(self) -> List[str]:
        """Names of enabled pipelines in registration order."""
        with self._lock:
            return [name for name, info in self._pipelines.items() if info.enabled]

    def get_versions(self) -> Dict[str, str]:
        """Get all pipeline versions."""
        with self._lock:
            return {name: info.version for name, info in self._pipelines.items()}

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._pipelines

    @property
    def registered_count(self) -> int:
        """Total number of registered pipelines."""
        with self._lock:
            return len(self._pipelines)


def default_registry() -> PipelineRegistry:
    """Registry holding the three built-in pipelines."""
    from safety_pipeline.pipelines import comparison, emergency_plan, safety_analysis

    registry = PipelineRegistry()
    for module in (safety_analysis, emergency_plan, comparison):
        registry.register(
            module.NAME,
            module.build_definition,
            module.VERSION,
            description=module.DESCRIPTION,
            tags=[module.AGENT_TYPE],
        )
    return registry
