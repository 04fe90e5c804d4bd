"""
Console Audit Logger.

A simple audit logger that prints pipeline run events to the console.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional


class ConsoleAuditLogger:
    """Simple console-based audit logger."""

    def __init__(self, verbose: bool = True) -> None:
        """
        Initialize console logger.

        Args:
            verbose: If True, log all events. If False, only stage ends
                and anomalies.
        """
        self._verbose = verbose
        self._correlation_id: Optional[str] = None

    def set_correlation_id(self, correlation_id: str) -> None:
        """Set correlation ID for subsequent log entries."""
        self._correlation_id = correlation_id

    def log_stage_start(
        self,
        stage_name: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log the start of a stage."""
        if self._verbose:
            stage_id = (metadata or {}).get("stage_id", "")
            self._log("INFO", f"Starting {stage_name} {stage_id}".rstrip())

    def log_stage_end(
        self,
        stage_name: str,
        success: bool,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log the end of a stage."""
        status = "ok" if success else "FALLBACK"
        model = (metadata or {}).get("model")
        suffix = f" via {model}" if model else ""
        self._log(
            "INFO",
            f"Completed {stage_name}: {status}{suffix} ({duration_seconds:.3f}s)",
        )

    def log_anomaly(
        self,
        message: str,
        severity: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an anomaly or warning."""
        self._log(severity, f"ANOMALY: {message}")

    def _log(self, level: str, message: str) -> None:
        """Internal logging method."""
        timestamp = datetime.now().strftime("%H:%M:%S")
        corr_id = self._correlation_id[:8] if self._correlation_id else "--------"
        print(f"[{timestamp}] [{corr_id}] [{level:5}] {message}")
