"""
Observability Manager - Structured Logging and Metrics.

Provides:
    - Structured JSON logging via structlog
    - Correlation ID propagation (the analysis ID of a run)
    - Event and metric buffers for inspection

Design Notes:
    - Thread-safe correlation ID storage
    - Implements both the AuditLogger and MetricsCollector protocols, so a
      single instance can be handed to the orchestrator for both roles
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

# Context variable for correlation ID (thread-safe)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

_SEVERITY_LEVELS = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARNING": "warning",
    "ERROR": "error",
    "CRITICAL": "critical",
}


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID in context."""
    _correlation_id.set(correlation_id)


class ObservabilityManager:
    """
    Unified observability: structured events and metrics.

    Every event is both emitted through structlog and buffered, so tests
    and callers can inspect what a run reported.
    """

    def __init__(
        self,
        service_name: str = "safety_pipeline",
        use_json: bool = True,
        log_level: int = logging.INFO,
    ) -> None:
        """
        Initialize observability manager.

        Args:
            service_name: Service name for log entries
            use_json: JSON output; console rendering otherwise
            log_level: Logging level
        """
        self.service_name = service_name
        self.use_json = use_json
        self.log_level = log_level
        self._metrics: Dict[str, List[Dict[str, Any]]] = {}
        self._events: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

        self._configure_structlog()
        self._logger = structlog.get_logger(service_name)

    def _configure_structlog(self) -> None:
        """Configure structlog for structured logging."""
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
        ]

        if self.use_json:
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer())

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(self.log_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )

    def set_correlation_id(self, correlation_id: str) -> None:
        """
        Set correlation ID for current context.

        Args:
            correlation_id: Analysis ID of the run
        """
        set_correlation_id(correlation_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id, service=self.service_name
        )

    def generate_correlation_id(self) -> str:
        """Generate and set a new correlation ID."""
        correlation_id = str(uuid.uuid4())
        self.set_correlation_id(correlation_id)
        return correlation_id

    def log_event(
        self,
        event_type: str,
        data: Optional[Dict[str, Any]] = None,
        level: str = "info",
    ) -> None:
        """
        Log a structured event.

        Args:
            event_type: Type of event (e.g., "stage_start", "anomaly")
            data: Additional event data
            level: Log level (debug, info, warning, error, critical)
        """
        event_data = {
            "event_type": event_type,
            "timestamp": datetime.now().isoformat(),
            "correlation_id": get_correlation_id(),
            **(data or {}),
        }

        with self._lock:
            self._events.append(event_data)

        log_method = getattr(self._logger, level.lower(), self._logger.info)
        log_method(event_type, **{k: v for k, v in event_data.items() if k != "timestamp"})

    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
        metric_type: str = "gauge",
    ) -> None:
        """
        Record a metric value.

        Args:
            name: Metric name
            value: Metric value
            tags: Additional tags/labels
            metric_type: Type (gauge, counter, histogram)
        """
        metric_entry = {
            "timestamp": datetime.now().isoformat(),
            "value": value,
            "tags": tags or {},
            "type": metric_type,
            "correlation_id": get_correlation_id(),
        }

        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = []
            self._metrics[name].append(metric_entry)

    def get_trace_context(self) -> Dict[str, Any]:
        """Current correlation ID and service info."""
        return {
            "correlation_id": get_correlation_id(),
            "service_name": self.service_name,
            "timestamp": datetime.now().isoformat(),
        }

    def get_metrics(self) -> Dict[str, List[Dict[str, Any]]]:
        """Get all recorded metrics."""
        with self._lock:
            return {name: list(entries) for name, entries in self._metrics.items()}

    def get_events(self, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Recorded events, optionally of one type."""
        with self._lock:
            return [
                e for e in self._events
                if event_type is None or e["event_type"] == event_type
            ]

    def clear(self) -> None:
        """Clear all recorded metrics and events."""
        with self._lock:
            self._metrics.clear()
            self._events.clear()

    # =========================================================================
    # AuditLogger Protocol Compatibility
    # =========================================================================

    def log_stage_start(
        self,
        stage_name: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log start of a pipeline stage (AuditLogger compatible)."""
        self.log_event("stage_start", {"stage_name": stage_name, **(metadata or {})})

    def log_stage_end(
        self,
        stage_name: str,
        success: bool,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log end of a pipeline stage (AuditLogger compatible)."""
        self.log_event(
            "stage_end",
            {
                "stage_name": stage_name,
                "success": success,
                "duration_seconds": duration_seconds,
                **(metadata or {}),
            },
            level="info" if success else "warning",
        )

    def log_anomaly(
        self,
        message: str,
        severity: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an anomaly (AuditLogger compatible)."""
        self.log_event(
            "anomaly",
            {
                "message": message,
                "severity": severity,
                **(context or {}),
            },
            level=_SEVERITY_LEVELS.get(severity.upper(), "error"),
        )

    # =========================================================================
    # MetricsCollector Protocol Compatibility
    # =========================================================================

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record timing metric (MetricsCollector compatible)."""
        self.record_metric(name, duration_seconds, tags, metric_type="histogram")

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record count metric (MetricsCollector compatible)."""
        self.record_metric(name, float(value), tags, metric_type="counter")

    def record_gauge(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record gauge metric (MetricsCollector compatible)."""
        self.record_metric(name, value, tags, metric_type="gauge")
