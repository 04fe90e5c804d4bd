"""
In-Memory Audit Sink.

Keeps audit records in memory, write-once per (analysis_id, stage_id).
Safe for concurrent appends from independent runs.
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, List, Tuple

from safety_pipeline.domain.entities import AuditRecord
from safety_pipeline.resilience.errors import AuditWriteConflict


class InMemoryAuditSink:
    """Simple in-memory audit record store."""

    def __init__(self) -> None:
        """Initialize the sink."""
        self._records: Dict[Tuple[str, str], AuditRecord] = {}
        self._lock = Lock()

    def append(self, record: AuditRecord) -> None:
        """
        Store a record.

        Raises:
            AuditWriteConflict: If the (analysis_id, stage_id) pair exists
        """
        key = (record.analysis_id, record.stage_id)
        with self._lock:
            if key in self._records:
                raise AuditWriteConflict(record.analysis_id, record.stage_id)
            self._records[key] = record

    def records_for(self, analysis_id: str) -> List[AuditRecord]:
        """All records of one run in write order."""
        with self._lock:
            return [r for (aid, _), r in self._records.items() if aid == analysis_id]

    def analysis_ids(self) -> List[str]:
        """Distinct analysis IDs in first-write order."""
        with self._lock:
            return list(dict.fromkeys(aid for aid, _ in self._records))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Remove all records."""
        with self._lock:
            self._records.clear()
