"""
Unit Tests for GeminiModelAdapter.

Test Aspects Covered:
    ✅ Business Logic: Request settings, text and embedding responses
    ✅ Error Handling: Quota exhaustion, API errors, transport failures, empty bodies
    ✅ Edge Cases: Missing API key, unlimited token budget
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from google.genai import errors as genai_errors

from safety_pipeline.adapters.gemini_model import GeminiModelAdapter
from safety_pipeline.config.models import ModelSettings
from safety_pipeline.resilience.errors import ModelInvocationError


def api_error(code: int, status: str, message: str = "failed") -> genai_errors.APIError:
    error = genai_errors.ClientError(
        code, {"error": {"code": code, "status": status, "message": message}}
    )
    error.code = code
    error.status = status
    error.message = message
    return error


@pytest.fixture
def client() -> Mock:
    return Mock()


@pytest.fixture
def adapter(client: Mock) -> GeminiModelAdapter:
    return GeminiModelAdapter(ModelSettings(model_name="gemini-test"), client=client)


class TestInvoke:
    """Test cases for invoke()."""

    def test_returns_response_text(self, adapter, client) -> None:
        """
        SCENARIO: Model answers with text
        EXPECTED: Text returned, settings passed through
        """
        # Arrange
        client.models.generate_content.return_value = Mock(text='{"ok": true}')

        # Act
        text = adapter.invoke("prompt", 0.7, 16000)

        # Assert
        assert text == '{"ok": true}'
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == ["prompt"]
        assert kwargs["config"].temperature == 0.7
        assert kwargs["config"].max_output_tokens == 16000

    def test_zero_tokens_means_no_limit(self, adapter, client) -> None:
        client.models.generate_content.return_value = Mock(text="ok")

        adapter.invoke("prompt", 0.5, 0)

        assert client.models.generate_content.call_args.kwargs["config"].max_output_tokens is None

    def test_quota_exceeded(self, adapter, client) -> None:
        """
        SCENARIO: API answers 429 RESOURCE_EXHAUSTED
        EXPECTED: ModelInvocationError flagged as quota exceeded
        """
        client.models.generate_content.side_effect = api_error(429, "RESOURCE_EXHAUSTED")

        with pytest.raises(ModelInvocationError) as exc_info:
            adapter.invoke("prompt", 0.5, 100)

        assert exc_info.value.quota_exceeded
        assert exc_info.value.status_code == 429

    def test_other_api_error(self, adapter, client) -> None:
        client.models.generate_content.side_effect = api_error(400, "INVALID_ARGUMENT", "bad")

        with pytest.raises(ModelInvocationError) as exc_info:
            adapter.invoke("prompt", 0.5, 100)

        assert not exc_info.value.quota_exceeded
        assert "Gemini API error 400: bad" in str(exc_info.value)

    def test_transport_failure(self, adapter, client) -> None:
        client.models.generate_content.side_effect = ConnectionError("reset by peer")

        with pytest.raises(ModelInvocationError, match="unreachable"):
            adapter.invoke("prompt", 0.5, 100)

    @pytest.mark.parametrize("text", [None, "", "   \n"])
    def test_empty_response(self, adapter, client, text) -> None:
        """
        SCENARIO: Response carries no text
        EXPECTED: ModelInvocationError flagged as empty response
        """
        client.models.generate_content.return_value = Mock(text=text)

        with pytest.raises(ModelInvocationError) as exc_info:
            adapter.invoke("prompt", 0.5, 100)

        assert exc_info.value.empty_response


class TestEmbed:
    """Test cases for embed()."""

    def test_returns_vector(self, adapter, client) -> None:
        client.models.embed_content.return_value = Mock(embeddings=[Mock(values=[0.1, 0.2])])

        assert adapter.embed("fall hazard") == [0.1, 0.2]
        assert client.models.embed_content.call_args.kwargs["model"] == "text-embedding-004"

    def test_empty_embedding(self, adapter, client) -> None:
        client.models.embed_content.return_value = Mock(embeddings=[])

        with pytest.raises(ModelInvocationError):
            adapter.embed("fall hazard")


class TestConstruction:
    """Test cases for client creation."""

    def test_missing_api_key(self, monkeypatch) -> None:
        """
        SCENARIO: No client and no API key in the environment
        EXPECTED: ValueError naming the variable
        """
        monkeypatch.delenv("SAFETY_TEST_KEY", raising=False)

        with pytest.raises(ValueError, match="SAFETY_TEST_KEY"):
            GeminiModelAdapter(ModelSettings(api_key_env="SAFETY_TEST_KEY"))

    def test_model_name(self, adapter) -> None:
        assert adapter.model_name == "gemini-test"
