"""
Unit Tests for PipelineContext.

Test Aspects Covered:
    ✅ Business Logic: Stage payload threading, typed access
    ✅ Edge Cases: Duplicate keys, missing stages, input isolation
"""

from __future__ import annotations

import pytest

from safety_pipeline.domain.payloads import ValidationPayload
from safety_pipeline.pipeline.context import PipelineContext


class TestPipelineContext:
    """Test cases for PipelineContext."""

    def test_add_and_get(self) -> None:
        """
        SCENARIO: Two stages record payloads
        EXPECTED: Payloads retrievable, keys in execution order
        """
        # Arrange
        context = PipelineContext({"id": "chk-1"}, analysis_id="a-1")

        # Act
        context.add("validation", {"qualityScore": 8})
        context.add("risk_assessment", {"hazards": []})

        # Assert
        assert context.get("validation") == {"qualityScore": 8}
        assert context.stage_keys() == ["validation", "risk_assessment"]
        assert len(context) == 2
        assert "validation" in context
        assert context.analysis_id == "a-1"

    def test_stage_key_written_once(self) -> None:
        """
        SCENARIO: Same stage key recorded twice
        EXPECTED: KeyError, first payload kept
        """
        # Arrange
        context = PipelineContext()
        context.add("validation", {"qualityScore": 8})

        # Act & Assert
        with pytest.raises(KeyError):
            context.add("validation", {"qualityScore": 2})

        assert context.get("validation") == {"qualityScore": 8}

    def test_none_payload_rejected(self) -> None:
        """
        SCENARIO: A stage produced no payload
        EXPECTED: ValueError
        """
        context = PipelineContext()

        with pytest.raises(ValueError):
            context.add("validation", None)

    def test_typed_access_revalidates(self) -> None:
        """
        SCENARIO: Wire payload read back as its model
        EXPECTED: snake_case attributes populated from camelCase keys
        """
        # Arrange
        context = PipelineContext()
        context.add("validation", {"qualityScore": 9, "missingCritical": ["PPE"]})

        # Act
        typed = context.typed("validation", ValidationPayload)

        # Assert
        assert typed.quality_score == 9
        assert typed.missing_critical == ["PPE"]

    def test_typed_access_to_missing_stage(self) -> None:
        """
        SCENARIO: Stage has not run yet
        EXPECTED: KeyError; get() returns the default
        """
        context = PipelineContext()

        with pytest.raises(KeyError):
            context.typed("validation", ValidationPayload)
        assert context.get("validation", {}) == {}

    def test_input_is_copied(self) -> None:
        """
        SCENARIO: Caller mutates its payload after building the context
        EXPECTED: Context keeps the original values
        """
        # Arrange
        payload = {"sections": [{"title": "Site"}]}
        context = PipelineContext(payload, {"weather": {"windSpeed": 5}})

        # Act
        payload["sections"].append({"title": "Late"})

        # Assert
        assert len(context.payload["sections"]) == 1
        assert context.reference_item("weather") == {"windSpeed": 5}
        assert context.reference_item("industry", "none") == "none"
