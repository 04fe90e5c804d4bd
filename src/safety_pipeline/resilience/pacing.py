"""
Pacing and Partial Failure Handling for Batch Jobs.

Provides:
    - Pacer: fixed minimum interval between consecutive external calls
    - PartialResult: successes and failures of a batch operation
    - handle_partial_failure: process items, tolerating individual failures

Design Notes:
    - The pacer is owned by the batch caller, never by the pipeline
    - Cooperative pacing only, no scheduling or cancellation
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Pacer:
    """
    Enforces a minimum gap between consecutive calls.

    The first call never waits. Each later call sleeps for whatever is
    left of the interval since the previous call finished, as recorded
    by ``mark()``. Callers that never mark are paced from the previous
    ``wait()`` instead.
    """

    def __init__(
        self,
        interval_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize pacer.

        Args:
            interval_seconds: Minimum seconds between calls
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.interval_seconds = interval_seconds
        self._sleep = sleep
        self._clock = clock
        self._last_call: Optional[float] = None

    def wait(self) -> float:
        """
        Block until the next call is allowed.

        Returns:
            Seconds actually slept
        """
        now = self._clock()
        waited = 0.0
        if self._last_call is not None:
            remaining = self.interval_seconds - (now - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
                waited = remaining
        self._last_call = self._clock()
        return waited

    def mark(self) -> None:
        """Record that the paced call just finished."""
        self._last_call = self._clock()

    def reset(self) -> None:
        """Forget the previous call so the next wait is immediate."""
        self._last_call = None


@dataclass
class PartialResult(Generic[T]):
    """Result of a partial success operation."""
    successful: List[T] = field(default_factory=list)
    failed: List[tuple[Any, Exception]] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0 to 1.0)."""
        total = len(self.successful) + len(self.failed)
        if total == 0:
            return 1.0
        return len(self.successful) / total

    @property
    def has_failures(self) -> bool:
        """Check if any failures occurred."""
        return len(self.failed) > 0

    @property
    def all_failed(self) -> bool:
        """Check if all operations failed."""
        return len(self.successful) == 0 and len(self.failed) > 0


def handle_partial_failure(
    items: Iterable[Any],
    processor: Callable[[Any], T],
    pacer: Optional[Pacer] = None,
    min_success_rate: float = 0.0,
    operation_name: str = "batch operation",
) -> PartialResult[T]:
    """
    Process items one by one, allowing partial failures.

    Args:
        items: Items to process
        processor: Function to process each item
        pacer: Optional pacer, waited on before and marked after every call
        min_success_rate: Minimum success rate to accept (0.0-1.0)
        operation_name: Name for logging

    Returns:
        PartialResult with successful and failed items

    Raises:
        RuntimeError: If success rate falls below minimum
    """
    result: PartialResult[T] = PartialResult()

    for item in items:
        if pacer is not None:
            pacer.wait()
        try:
            processed = processor(item)
            result.successful.append(processed)
        except Exception as e:
            result.failed.append((item, e))
            logger.warning(f"{operation_name} failed for {item}: {e}")
        finally:
            if pacer is not None:
                pacer.mark()

    if result.success_rate < min_success_rate:
        raise RuntimeError(
            f"{operation_name} success rate {result.success_rate:.1%} "
            f"below minimum {min_success_rate:.1%}"
        )

    if result.has_failures:
        logger.warning(
            f"{operation_name} completed with {len(result.failed)} failures "
            f"({result.success_rate:.1%} success rate)"
        )

    return result
