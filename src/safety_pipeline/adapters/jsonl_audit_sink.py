"""
JSON Lines Audit Sink.

Appends one JSON object per audit record to a file, in the row shape of
the external audit store (``AuditRecord.to_persistence_dict``).

Design Notes:
    - Write-once keys are tracked in memory and seeded from the existing
      file on startup
    - Appends are serialized with a lock; the file is opened per write
    - No fsync: durability is left to the filesystem
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import List, Set, Tuple, Union

from safety_pipeline.domain.entities import AuditRecord
from safety_pipeline.resilience.errors import AuditWriteConflict

logger = logging.getLogger(__name__)


class JsonLinesAuditSink:
    """Audit records appended to a ``.jsonl`` file."""

    def __init__(self, path: Union[str, Path]) -> None:
        """
        Initialize sink.

        Args:
            path: Target file; parent directories are created
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._keys: Set[Tuple[str, str]] = {
            (row["analysisId"], row["stageId"]) for row in self._read_rows()
        }

    def append(self, record: AuditRecord) -> None:
        """
        Append a record.

        Raises:
            AuditWriteConflict: If the (analysis_id, stage_id) pair exists
        """
        key = (record.analysis_id, record.stage_id)
        line = json.dumps(record.to_persistence_dict(), default=str, ensure_ascii=False)
        with self._lock:
            if key in self._keys:
                raise AuditWriteConflict(record.analysis_id, record.stage_id)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
            self._keys.add(key)

    def records_for(self, analysis_id: str) -> List[AuditRecord]:
        """Records of one run, read back from the file."""
        with self._lock:
            rows = self._read_rows()
        return [self._to_record(row) for row in rows if row["analysisId"] == analysis_id]

    def _read_rows(self) -> List[dict]:
        if not self.path.exists():
            return []
        rows = []
        with open(self.path, encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning(f"Skipping corrupt audit line {number} in {self.path}: {e}")
        return rows

    @staticmethod
    def _to_record(row: dict) -> AuditRecord:
        meta = row.get("executionMetadata", {})
        return AuditRecord(
            analysis_id=row["analysisId"],
            stage_id=row["stageId"],
            stage_name=row.get("stageName", ""),
            stage_kind=row.get("stageKind", ""),
            payload=row.get("outputData"),
            temperature=meta.get("temperature", 0.0),
            max_tokens=meta.get("maxTokens", 0),
            execution_time_ms=meta.get("executionTimeMs", 0),
            purpose=meta.get("purpose", ""),
            model=meta.get("model"),
            success=row.get("success", False),
            agent_type=row.get("agentType"),
            created_at=row["createdAt"],
        )
