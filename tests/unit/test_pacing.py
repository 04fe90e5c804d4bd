"""
Unit Tests for Pacing and Partial Failure Handling.

Test Aspects Covered:
    ✅ Business Logic: Minimum interval between calls, partial failure handling
    ✅ Edge Cases: First call, slow callers, reset, all failures
"""

from __future__ import annotations

from typing import List
from unittest.mock import Mock

import pytest

from safety_pipeline.resilience.pacing import (
    Pacer,
    PartialResult,
    handle_partial_failure,
)


class FakeClock:
    """Monotonic clock advanced only by sleeping or by the test."""

    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestPacer:
    """Test cases for Pacer."""

    def test_first_call_never_waits(self, clock: FakeClock) -> None:
        """
        SCENARIO: First wait on a fresh pacer
        EXPECTED: No sleep
        """
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)

        assert pacer.wait() == 0.0
        assert clock.sleeps == []

    def test_back_to_back_calls_wait_full_interval(self, clock: FakeClock) -> None:
        """
        SCENARIO: Second call immediately after the first
        EXPECTED: Sleeps the whole interval
        """
        # Arrange
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)
        pacer.wait()

        # Act
        waited = pacer.wait()

        # Assert
        assert waited == pytest.approx(1.0)
        assert clock.sleeps == [pytest.approx(1.0)]

    def test_partial_interval_elapsed(self, clock: FakeClock) -> None:
        """
        SCENARIO: 0.4 s of work between calls with a 1.0 s interval
        EXPECTED: Sleeps the remaining 0.6 s
        """
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)
        pacer.wait()
        clock.now += 0.4

        assert pacer.wait() == pytest.approx(0.6)

    def test_slow_call_still_followed_by_full_interval(self, clock: FakeClock) -> None:
        """
        SCENARIO: Paced call takes 2 s with a 1.0 s interval, then marks
        EXPECTED: Next call still waits the full interval
        """
        # Arrange
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)
        pacer.wait()
        clock.now += 2.0
        pacer.mark()

        # Act
        waited = pacer.wait()

        # Assert
        assert waited == pytest.approx(1.0)
        assert clock.sleeps == [pytest.approx(1.0)]

    def test_unmarked_caller_paced_from_previous_wait(self, clock: FakeClock) -> None:
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)
        pacer.wait()
        clock.now += 5.0

        assert pacer.wait() == 0.0
        assert clock.sleeps == []

    def test_reset_makes_next_call_immediate(self, clock: FakeClock) -> None:
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)
        pacer.wait()

        pacer.reset()

        assert pacer.wait() == 0.0

    def test_zero_interval_never_sleeps(self, clock: FakeClock) -> None:
        pacer = Pacer(0.0, sleep=clock.sleep, clock=clock)

        for _ in range(3):
            pacer.wait()

        assert clock.sleeps == []

    def test_negative_interval_rejected(self) -> None:
        with pytest.raises(ValueError):
            Pacer(-1.0)


class TestPartialFailure:
    """Test cases for handle_partial_failure()."""

    def test_all_succeed(self) -> None:
        """
        SCENARIO: All items process successfully
        EXPECTED: Full success, no failures
        """
        # Arrange
        items = [1, 2, 3, 4, 5]

        # Act
        result = handle_partial_failure(items, lambda x: x * 2)

        # Assert
        assert result.successful == [2, 4, 6, 8, 10]
        assert result.failed == []
        assert result.success_rate == 1.0

    def test_partial_success(self) -> None:
        """
        SCENARIO: One item fails
        EXPECTED: Continues with the remaining items
        """
        # Arrange
        items = [1, 2, 0, 4, 5]

        def processor(x):
            return 10 // x

        # Act
        result = handle_partial_failure(items, processor, min_success_rate=0.5)

        # Assert
        assert len(result.successful) == 4
        assert result.failed[0][0] == 0
        assert isinstance(result.failed[0][1], ZeroDivisionError)
        assert result.success_rate == 0.8

    def test_below_min_success_rate(self) -> None:
        """
        SCENARIO: Every item fails, minimum 50%
        EXPECTED: RuntimeError naming the operation
        """
        processor = Mock(side_effect=ValueError("Error"))

        with pytest.raises(RuntimeError) as exc_info:
            handle_partial_failure(
                [1, 2, 3], processor, min_success_rate=0.5, operation_name="backfill"
            )

        assert "backfill success rate 0.0%" in str(exc_info.value)

    def test_pacer_called_before_every_item(self) -> None:
        """
        SCENARIO: Three items with a pacer
        EXPECTED: One wait per item
        """
        pacer = Mock(spec=Pacer)

        handle_partial_failure([1, 2, 3], lambda x: x, pacer=pacer)

        assert pacer.wait.call_count == 3
        assert pacer.mark.call_count == 3

    def test_slow_calls_keep_full_gap(self, clock: FakeClock) -> None:
        """
        SCENARIO: Each call takes 2 s, interval 1 s
        EXPECTED: A full 1 s sleep before every call after the first
        """
        # Arrange
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)

        def slow(x):
            clock.now += 2.0
            return x

        # Act
        handle_partial_failure([1, 2, 3], slow, pacer=pacer)

        # Assert
        assert clock.sleeps == [pytest.approx(1.0), pytest.approx(1.0)]

    def test_failed_call_also_marks(self, clock: FakeClock) -> None:
        pacer = Pacer(1.0, sleep=clock.sleep, clock=clock)

        def failing(x):
            clock.now += 3.0
            raise ValueError("quota")

        handle_partial_failure([1, 2], failing, pacer=pacer)

        assert clock.sleeps == [pytest.approx(1.0)]


class TestPartialResult:
    """Test cases for PartialResult."""

    def test_success_rate_calculation(self) -> None:
        result = PartialResult(
            successful=[1, 2, 3],
            failed=[(4, ValueError()), (5, ValueError())],
        )

        assert result.success_rate == 0.6
        assert result.has_failures

    def test_empty_result(self) -> None:
        """
        SCENARIO: No items processed
        EXPECTED: Success rate is 1.0
        """
        result = PartialResult()

        assert result.success_rate == 1.0
        assert not result.has_failures
        assert not result.all_failed

    def test_all_failed(self) -> None:
        result = PartialResult(failed=[(1, ValueError())])

        assert result.all_failed
