"""
Audit Sink Protocol.

Defines the interface to the external store that keeps one record per
stage per run.

The audit sink is responsible for:
    - Persisting AuditRecords keyed by (analysis_id, stage_id)
    - Rejecting a second write for the same key (write-once)
    - Supporting concurrent appends from independent runs

Design Notes:
    - Durability guarantees belong to the concrete store
    - Sink failures never abort a pipeline run
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Protocol, runtime_checkable

if TYPE_CHECKING:
    from safety_pipeline.domain.entities import AuditRecord


@runtime_checkable
class AuditSink(Protocol):
    """Abstract interface for stage result persistence."""

    def append(self, record: AuditRecord) -> None:
        """
        Persist one audit record.

        Raises:
            AuditWriteConflict: If the (analysis_id, stage_id) pair exists
        """
        ...

    def records_for(self, analysis_id: str) -> List[AuditRecord]:
        """All records of one run in write order."""
        ...
