"""
Model Adapter Protocol.

Defines the transport boundary to the external generative text service.

The model adapter is responsible for:
    - Sending one prompt with stage-specific temperature and token limit
    - Returning the raw response text
    - Raising ModelInvocationError for unreachable service, quota
      exhaustion and empty bodies

Design Notes:
    - No retries inside the adapter; failures go to the StageRunner
    - Blocking call; callers wanting a deadline wrap invoke themselves
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable


@runtime_checkable
class ModelAdapter(Protocol):
    """Abstract interface for generative model invocation."""

    @property
    def model_name(self) -> str:
        """Identifier of the model recorded in stage metadata."""
        ...

    def invoke(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Fully rendered prompt
            temperature: Sampling temperature
            max_tokens: Output token limit

        Returns:
            Non-empty response text

        Raises:
            ModelInvocationError: On transport, quota or empty-response failure
        """
        ...


@runtime_checkable
class EmbeddingAdapter(Protocol):
    """Abstract interface for text embedding (batch backfill jobs)."""

    def embed(self, text: str) -> List[float]:
        """
        Embed a text.

        Raises:
            ModelInvocationError: On transport or quota failure
        """
        ...
