"""
Gemini Model Adapter.

Model invocation over the Google Gemini API using the google-genai SDK.
Implements the ModelAdapter and EmbeddingAdapter protocols.

Design Notes:
    - One request per invoke, no retries
    - HTTP 429 / RESOURCE_EXHAUSTED is flagged as quota_exceeded
    - The client is injectable so tests never reach the network
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from safety_pipeline.config.models import ModelSettings
from safety_pipeline.resilience.errors import ModelInvocationError

logger = logging.getLogger(__name__)

QUOTA_STATUS = "RESOURCE_EXHAUSTED"


class GeminiModelAdapter:
    """Generative model and embedding calls against Gemini."""

    def __init__(
        self,
        settings: Optional[ModelSettings] = None,
        client: Optional[Any] = None,
    ) -> None:
        """
        Initialize adapter.

        Args:
            settings: Model name, API key variable and embedding model
            client: Preconfigured ``genai.Client``; created from the API key
                environment variable when omitted

        Raises:
            ValueError: If no client is given and the API key is not set
        """
        self.settings = settings or ModelSettings()
        if client is None:
            api_key = os.environ.get(self.settings.api_key_env)
            if not api_key:
                raise ValueError(
                    f"Environment variable {self.settings.api_key_env} is not set"
                )
            client = genai.Client(api_key=api_key)
        self._client = client

    @property
    def model_name(self) -> str:
        return self.settings.model_name

    def invoke(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """
        Generate text for a prompt.

        Raises:
            ModelInvocationError: On API failure, quota exhaustion or an
                empty response body
        """
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens or None,
        )
        try:
            response = self._client.models.generate_content(
                model=self.settings.model_name,
                contents=[prompt],
                config=config,
            )
        except genai_errors.APIError as e:
            raise self._api_error(e) from e
        except Exception as e:
            raise ModelInvocationError(f"Model service unreachable: {e}") from e

        text = getattr(response, "text", None) or ""
        if not text.strip():
            raise ModelInvocationError(
                "Model returned an empty response", empty_response=True
            )
        return text

    def embed(self, text: str) -> List[float]:
        """
        Embed a text with the configured embedding model.

        Raises:
            ModelInvocationError: On API failure or an empty embedding
        """
        try:
            response = self._client.models.embed_content(
                model=self.settings.embedding_model,
                contents=text,
            )
        except genai_errors.APIError as e:
            raise self._api_error(e) from e
        except Exception as e:
            raise ModelInvocationError(f"Embedding service unreachable: {e}") from e

        embeddings = getattr(response, "embeddings", None) or []
        if not embeddings or not embeddings[0].values:
            raise ModelInvocationError("Embedding response was empty", empty_response=True)
        return list(embeddings[0].values)

    def _api_error(self, error: genai_errors.APIError) -> ModelInvocationError:
        code = getattr(error, "code", None)
        status = getattr(error, "status", None)
        quota = code == 429 or status == QUOTA_STATUS
        if quota:
            logger.warning(f"Gemini quota exhausted for {self.settings.model_name}")
        return ModelInvocationError(
            f"Gemini API error {code}: {getattr(error, 'message', None) or error}",
            status_code=code,
            quota_exceeded=quota,
        )
