"""
Embedding Backfill Job.

Computes embeddings for stored analyses that do not have one yet. Calls
are paced by a Pacer owned by the job; a failed record is logged and
skipped without stopping the batch.

Design Notes:
    - Sequential; one embedding call per record
    - Records without text are reported as failures, not embedded
    - Persisting the vector is delegated to a caller supplied callable
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from safety_pipeline.config.models import PacingSettings
from safety_pipeline.interfaces.model_adapter import EmbeddingAdapter
from safety_pipeline.interfaces.metrics_collector import MetricsCollector
from safety_pipeline.resilience.pacing import Pacer, PartialResult, handle_partial_failure

logger = logging.getLogger(__name__)

# Characters of analysis text sent to the embedding model
MAX_EMBED_CHARS = 8000

VectorWriter = Callable[[str, List[float]], None]


@dataclass(frozen=True)
class BackfillItem:
    """A stored analysis awaiting an embedding."""

    analysis_id: str
    text: str

    def __str__(self) -> str:
        return self.analysis_id


@dataclass(frozen=True)
class EmbeddedAnalysis:
    """Result of one successful backfill call."""

    analysis_id: str
    dimensions: int


class EmbeddingBackfillJob:
    """Paced batch embedding of stored analyses."""

    def __init__(
        self,
        embedder: EmbeddingAdapter,
        write_vector: VectorWriter,
        pacing: Optional[PacingSettings] = None,
        pacer: Optional[Pacer] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> None:
        """
        Initialize job.

        Args:
            embedder: Embedding service adapter
            write_vector: Persists (analysis_id, vector)
            pacing: Interval and minimum success rate
            pacer: Explicit pacer; built from ``pacing`` when omitted
            metrics_collector: Optional metrics sink
        """
        self.embedder = embedder
        self.write_vector = write_vector
        self.pacing = pacing or PacingSettings()
        self.pacer = pacer or Pacer(self.pacing.backfill_interval_seconds)
        self.metrics_collector = metrics_collector

    def run(self, items: Iterable[BackfillItem]) -> PartialResult[EmbeddedAnalysis]:
        """
        Embed every item.

        Raises:
            RuntimeError: If the success rate falls below the configured minimum
        """
        batch = list(items)
        logger.info(f"Embedding backfill started for {len(batch)} analyses")

        result = handle_partial_failure(
            batch,
            self._embed_one,
            pacer=self.pacer,
            min_success_rate=self.pacing.min_success_rate,
            operation_name="Embedding backfill",
        )

        if self.metrics_collector is not None:
            self.metrics_collector.record_count("backfill_embedded_total", len(result.successful))
            self.metrics_collector.record_count("backfill_failed_total", len(result.failed))
        logger.info(
            f"Embedding backfill finished: {len(result.successful)} embedded, "
            f"{len(result.failed)} failed"
        )
        return result

    def _embed_one(self, item: BackfillItem) -> EmbeddedAnalysis:
        text = item.text.strip()
        if not text:
            raise ValueError(f"Analysis {item.analysis_id} has no text to embed")
        vector = self.embedder.embed(text[:MAX_EMBED_CHARS])
        self.write_vector(item.analysis_id, vector)
        return EmbeddedAnalysis(analysis_id=item.analysis_id, dimensions=len(vector))
