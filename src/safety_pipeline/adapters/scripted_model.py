"""
Scripted Model Adapter.

A fake model for development and testing. Responses are served from a
queue: a string is returned as the model text, an exception instance is
raised, a callable is called with the prompt.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Deque, Iterable, List, Optional, Union

from safety_pipeline.resilience.errors import ModelInvocationError

Response = Union[str, Exception, Callable[[str], str]]


@dataclass(frozen=True)
class ModelCall:
    """One recorded invocation."""

    prompt: str
    temperature: float
    max_tokens: int


class ScriptedModelAdapter:
    """Deterministic stand-in for the generative model service."""

    def __init__(
        self,
        responses: Optional[Iterable[Response]] = None,
        default: Optional[Response] = None,
        model_name: str = "scripted-model",
    ) -> None:
        """
        Initialize scripted adapter.

        Args:
            responses: Responses served in order
            default: Served once the queue is empty; when None an empty
                queue raises ModelInvocationError
            model_name: Name recorded in stage metadata
        """
        self._responses: Deque[Response] = deque(responses or [])
        self._default = default
        self._model_name = model_name
        self._lock = Lock()
        self.calls: List[ModelCall] = []

    @classmethod
    def unavailable(cls, message: str = "Model service unreachable") -> "ScriptedModelAdapter":
        """Adapter whose every call fails, simulating a total outage."""
        return cls(default=ModelInvocationError(message))

    @property
    def model_name(self) -> str:
        return self._model_name

    def queue(self, *responses: Response) -> None:
        """Append responses to the queue."""
        with self._lock:
            self._responses.extend(responses)

    def invoke(self, prompt: str, temperature: float, max_tokens: int) -> str:
        with self._lock:
            self.calls.append(ModelCall(prompt, temperature, max_tokens))
            if self._responses:
                response: Any = self._responses.popleft()
            elif self._default is not None:
                response = self._default
            else:
                raise ModelInvocationError("No scripted response left")

        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response

    def embed(self, text: str) -> List[float]:
        """Deterministic pseudo-embedding from character codes."""
        if not text:
            raise ModelInvocationError("Cannot embed empty text", empty_response=True)
        return [ord(c) / 255.0 for c in text[:8]]

    @property
    def call_count(self) -> int:
        return len(self.calls)
