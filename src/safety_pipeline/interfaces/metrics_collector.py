"""
Metrics Collector Protocol.

Defines the interface for operational metrics: stage durations,
fallback counts and total run time.

Design Notes:
    - Non-blocking metric recording
    - Tag/label support for dimensionality
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class MetricsCollector(Protocol):
    """Abstract interface for metrics collection."""

    def record_timing(
        self,
        name: str,
        duration_seconds: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record a timing metric (e.g. "stage_duration_seconds")."""
        ...

    def record_count(
        self,
        name: str,
        value: int,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record a count metric (e.g. "stage_fallbacks_total")."""
        ...

    def record_gauge(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Record a gauge metric."""
        ...

    def get_metrics(self) -> Dict[str, Any]:
        """Summary of all collected metrics."""
        ...
