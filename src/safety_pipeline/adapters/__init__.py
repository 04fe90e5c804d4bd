"""
Adapters Package - Infrastructure Implementations.

This package contains concrete implementations of the abstract
interfaces defined in the interfaces package. Following the
Hexagonal Architecture (Ports & Adapters) pattern.

Models:
    - GeminiModelAdapter: Google Gemini via google-genai
    - ScriptedModelAdapter: Queued responses for development/testing

Audit Sinks:
    - InMemoryAuditSink: Write-once records in memory
    - JsonLinesAuditSink: Write-once records appended to a file

Loggers:
    - ConsoleAuditLogger: Simple console output

Metrics:
    - InMemoryMetricsCollector: Simple in-memory collection

Design Principles:
    - All adapters implement their respective protocols
    - Easily swappable via Dependency Injection
    - No pipeline logic in adapters
"""

from safety_pipeline.adapters.console_logger import ConsoleAuditLogger
from safety_pipeline.adapters.gemini_model import GeminiModelAdapter
from safety_pipeline.adapters.jsonl_audit_sink import JsonLinesAuditSink
from safety_pipeline.adapters.memory_audit_sink import InMemoryAuditSink
from safety_pipeline.adapters.metrics_collector import InMemoryMetricsCollector
from safety_pipeline.adapters.scripted_model import ModelCall, ScriptedModelAdapter

__all__ = [
    "ConsoleAuditLogger",
    "GeminiModelAdapter",
    "InMemoryAuditSink",
    "InMemoryMetricsCollector",
    "JsonLinesAuditSink",
    "ModelCall",
    "ScriptedModelAdapter",
]
