"""
Pipeline Context - Accumulating Stage Outputs.

The PipelineContext holds everything a stage's prompt builder may read:
the caller's input payload, optional reference data and the payloads of
all stages that already ran.

Design Notes:
    - Append-only: a stage key can be written exactly once
    - Payloads are stored in wire form (dicts); typed access re-validates
      against the stage's payload model
    - Lives for the duration of one run only
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class PipelineContext:
    """Append-only map of stage key -> stage payload, plus run inputs."""

    def __init__(
        self,
        payload: Optional[Dict[str, Any]] = None,
        reference: Optional[Dict[str, Any]] = None,
        analysis_id: str = "",
    ) -> None:
        """
        Initialize context.

        Args:
            payload: Caller supplied domain payload
            reference: Optional reference data (weather, statistics, baseline)
            analysis_id: Identifier of the run
        """
        self._payload = copy.deepcopy(payload) if payload else {}
        self._reference = copy.deepcopy(reference) if reference else {}
        self._analysis_id = analysis_id
        self._stages: Dict[str, Any] = {}

    @property
    def payload(self) -> Dict[str, Any]:
        """Original input payload."""
        return self._payload

    @property
    def reference(self) -> Dict[str, Any]:
        """Reference data supplied with the request."""
        return self._reference

    @property
    def analysis_id(self) -> str:
        return self._analysis_id

    def reference_item(self, name: str, default: Any = None) -> Any:
        """Get one piece of reference data (e.g. "weather")."""
        value = self._reference.get(name)
        return default if value is None else value

    def add(self, stage_key: str, stage_payload: Any) -> None:
        """
        Record a stage payload.

        Raises:
            KeyError: If the stage key was already written
            ValueError: If the payload is None
        """
        if stage_key in self._stages:
            raise KeyError(f"Stage '{stage_key}' already recorded in context")
        if stage_payload is None:
            raise ValueError(f"Stage '{stage_key}' produced no payload")
        self._stages[stage_key] = stage_payload
        logger.debug(f"Context: recorded {stage_key} ({len(self._stages)} stages)")

    def get(self, stage_key: str, default: Any = None) -> Any:
        """Raw payload of a previous stage."""
        return self._stages.get(stage_key, default)

    def typed(self, stage_key: str, model: Type[M]) -> M:
        """
        Payload of a previous stage as its payload model.

        Raises:
            KeyError: If the stage has not run
        """
        if stage_key not in self._stages:
            raise KeyError(f"Stage '{stage_key}' has not run")
        return model.model_validate(self._stages[stage_key])

    def stage_keys(self) -> List[str]:
        """Stage keys in execution order."""
        return list(self._stages)

    def stage_payloads(self) -> Dict[str, Any]:
        """Copy of all stage payloads."""
        return dict(self._stages)

    def __contains__(self, stage_key: object) -> bool:
        return stage_key in self._stages

    def __iter__(self) -> Iterator[str]:
        return iter(self._stages)

    def __len__(self) -> int:
        """Number of stages recorded."""
        return len(self._stages)

    def __repr__(self) -> str:
        return (
            f"PipelineContext(analysis_id={self._analysis_id!r}, "
            f"stages={self.stage_keys()}, reference={sorted(self._reference)})"
        )
