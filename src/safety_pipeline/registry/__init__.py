"""
Registry Module - Named Pipeline Management.

Components:
    - PipelineRegistry: Central registry of pipeline definition factories
    - PipelineInfo: Metadata about registered pipelines
    - default_registry: Registry with the built-in pipelines
"""

from safety_pipeline.registry.pipeline_registry import (
    PipelineInfo,
    PipelineRegistry,
    default_registry,
)

__all__ = [
    "PipelineInfo",
    "PipelineRegistry",
    "default_registry",
]
