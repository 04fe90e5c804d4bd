"""
Unit Tests for ScriptedModelAdapter.

Test Aspects Covered:
    ✅ Business Logic: Queued responses, recorded calls, callable responses
    ✅ Edge Cases: Exhausted queue, default response, total outage
"""

from __future__ import annotations

import pytest

from safety_pipeline.adapters.scripted_model import ScriptedModelAdapter
from safety_pipeline.resilience.errors import ModelInvocationError


class TestScriptedModelAdapter:
    """Test cases for ScriptedModelAdapter."""

    def test_serves_responses_in_order(self) -> None:
        """
        SCENARIO: Two queued responses
        EXPECTED: Returned in order, calls recorded
        """
        # Arrange
        model = ScriptedModelAdapter(["first", "second"])

        # Act
        results = [model.invoke("a", 0.3, 100), model.invoke("b", 0.7, 200)]

        # Assert
        assert results == ["first", "second"]
        assert model.call_count == 2
        assert model.calls[1].prompt == "b"
        assert model.calls[1].max_tokens == 200

    def test_exception_response_raised(self) -> None:
        model = ScriptedModelAdapter([ModelInvocationError("quota", quota_exceeded=True)])

        with pytest.raises(ModelInvocationError) as exc_info:
            model.invoke("a", 0.3, 100)

        assert exc_info.value.quota_exceeded

    def test_callable_response_sees_prompt(self) -> None:
        model = ScriptedModelAdapter([lambda prompt: prompt.upper()])

        assert model.invoke("hello", 0.3, 100) == "HELLO"

    def test_empty_queue_raises(self) -> None:
        model = ScriptedModelAdapter(["only"])
        model.invoke("a", 0.3, 100)

        with pytest.raises(ModelInvocationError, match="No scripted response left"):
            model.invoke("b", 0.3, 100)

    def test_default_after_queue(self) -> None:
        model = ScriptedModelAdapter(["first"], default="again")
        model.queue("second")

        assert [model.invoke("x", 0.1, 1) for _ in range(4)] == [
            "first",
            "second",
            "again",
            "again",
        ]

    def test_unavailable(self) -> None:
        """
        SCENARIO: Outage adapter
        EXPECTED: Every call raises
        """
        model = ScriptedModelAdapter.unavailable("down")

        for _ in range(3):
            with pytest.raises(ModelInvocationError, match="down"):
                model.invoke("x", 0.1, 1)

    def test_embed(self) -> None:
        model = ScriptedModelAdapter()

        assert len(model.embed("guardrail missing")) == 8
        with pytest.raises(ModelInvocationError):
            model.embed("")
