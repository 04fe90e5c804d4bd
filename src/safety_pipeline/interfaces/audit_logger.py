"""
Audit Logger Protocol.

Defines the interface for run-level event logging. Implemented by the
console logger and by the structlog-based ObservabilityManager.

The audit logger is responsible for:
    - Logging stage start/end events
    - Logging anomalies (fallbacks, sink failures, fatal errors)
    - Maintaining correlation across a pipeline run

Design Notes:
    - Correlation ID is the analysis ID of the run
    - No side effects on pipeline results
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class AuditLogger(Protocol):
    """Abstract interface for audit logging."""

    def set_correlation_id(self, correlation_id: str) -> None:
        """Set correlation ID for subsequent log entries."""
        ...

    def log_stage_start(
        self,
        stage_name: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log the start of a stage."""
        ...

    def log_stage_end(
        self,
        stage_name: str,
        success: bool,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log the end of a stage."""
        ...

    def log_anomaly(
        self,
        message: str,
        severity: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log an anomaly or warning.

        Args:
            message: Description of the anomaly
            severity: INFO, WARNING, ERROR or CRITICAL
            context: Optional additional context
        """
        ...
