"""
Interfaces Layer - Abstract Protocols for Dependencies.

This package defines the abstract interfaces (using typing.Protocol) for all
external dependencies. High-level modules depend on these abstractions, not
on concrete implementations.

Protocols:
    - ModelAdapter: Generative text service
    - EmbeddingAdapter: Text embedding service (batch jobs)
    - AuditSink: Write-once store for per-stage records
    - AuditLogger: Run event logging
    - MetricsCollector: Performance metrics abstraction

Design Principles:
    - Use typing.Protocol (not ABC) for Pythonic interfaces
    - Interface Segregation: Small, focused interfaces
    - No implementation details leak into interfaces
"""

from safety_pipeline.interfaces.audit_logger import AuditLogger
from safety_pipeline.interfaces.audit_sink import AuditSink
from safety_pipeline.interfaces.metrics_collector import MetricsCollector
from safety_pipeline.interfaces.model_adapter import EmbeddingAdapter, ModelAdapter

__all__ = [
    "AuditLogger",
    "AuditSink",
    "EmbeddingAdapter",
    "MetricsCollector",
    "ModelAdapter",
]
