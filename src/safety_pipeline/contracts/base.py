"""
Stage Contract Base Classes.

A stage contract specifies everything about one pipeline stage except
how it is executed:
    - prompt builder (PipelineContext -> prompt)
    - invocation settings (temperature, max tokens), from configuration
    - output schema (a StagePayload model)
    - deterministic fallback payload satisfying that schema
    - optional scoring/decision rules applied to extracted or fallback data

Execution (invoke, extract, validate, fall back) belongs to the StageRunner.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type

from pydantic import ValidationError

from safety_pipeline.config.models import StageSettings
from safety_pipeline.domain.entities import StageKind
from safety_pipeline.domain.payloads import StagePayload
from safety_pipeline.resilience.errors import SchemaValidationFailure

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext


def to_prompt_json(value: Any) -> str:
    """Pretty JSON for embedding data in prompts."""
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


class StageContract:
    """Base class for single-call and model-free stages."""

    stage_id: str = ""
    key: str = ""
    name: str = ""
    kind: StageKind = StageKind.STRUCTURED
    output_schema: Type[StagePayload] = StagePayload
    # Recorded as the model when the stage makes no model call
    model_label: Optional[str] = None

    def __init__(self, settings: StageSettings) -> None:
        """
        Initialize with invocation settings.

        Args:
            settings: Temperature, token limit and purpose for this stage
        """
        self.settings = settings

    @property
    def requires_model(self) -> bool:
        return self.kind is not StageKind.DETERMINISTIC

    @property
    def temperature(self) -> float:
        return self.settings.temperature

    @property
    def max_tokens(self) -> int:
        return self.settings.max_tokens

    def build_prompt(self, context: PipelineContext) -> str:
        raise NotImplementedError(f"{type(self).__name__} does not call the model")

    def parse(self, value: Dict[str, Any], context: PipelineContext) -> StagePayload:
        """
        Validate extracted JSON against the output schema.

        Raises:
            SchemaValidationFailure: If required fields are missing or invalid
        """
        return validate_payload(self.output_schema, value, self.stage_id)

    def score(self, payload: StagePayload, context: PipelineContext) -> StagePayload:
        """Apply domain rules to an extracted or fallback payload."""
        return payload

    def fallback(self, context: PipelineContext) -> StagePayload:
        raise NotImplementedError

    def from_text(
        self, text: str, context: PipelineContext
    ) -> Optional[StagePayload]:
        """Build a payload from non-JSON text (textual stages only)."""
        return None

    def build(self, context: PipelineContext) -> StagePayload:
        """Produce the payload without a model call (deterministic stages)."""
        raise NotImplementedError(f"{type(self).__name__} requires a model call")

    def degradation(self, payload: StagePayload) -> Optional[str]:
        """Reason the payload should be reported as unsuccessful, if any."""
        return None

    def report_text(self, payload: Dict[str, Any]) -> Optional[str]:
        """Narrative report carried by this stage's payload (synthesis stages)."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(stage_id={self.stage_id!r}, key={self.key!r})"


class FanOutStageContract(StageContract):
    """Stage that calls the model once per item and combines the results."""

    kind = StageKind.FAN_OUT
    item_schema: Type[StagePayload] = StagePayload

    def items(self, context: PipelineContext) -> List[Any]:
        raise NotImplementedError

    def build_item_prompt(self, item: Any, context: PipelineContext) -> str:
        raise NotImplementedError

    def parse_item(
        self, value: Dict[str, Any], item: Any, context: PipelineContext
    ) -> StagePayload:
        return validate_payload(self.item_schema, value, self.stage_id)

    def item_fallback(self, item: Any, context: PipelineContext) -> StagePayload:
        raise NotImplementedError

    def combine(
        self,
        outcomes: List[Tuple[Any, StagePayload, bool]],
        context: PipelineContext,
    ) -> StagePayload:
        """
        Merge per-item payloads.

        Args:
            outcomes: (item, payload, generated_by_model) in item order
            context: Pipeline context
        """
        raise NotImplementedError


def validate_payload(
    schema: Type[StagePayload],
    value: Any,
    stage_id: Optional[str] = None,
) -> StagePayload:
    """
    Validate a value against a payload model.

    Raises:
        SchemaValidationFailure: With the pydantic error list attached
    """
    if not isinstance(value, dict):
        raise SchemaValidationFailure(
            f"{schema.__name__} expects a JSON object, got {type(value).__name__}",
            stage_id=stage_id,
        )
    try:
        return schema.model_validate(value)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise SchemaValidationFailure(
            f"{schema.__name__} failed validation on: {', '.join(fields)}",
            errors=e.errors(include_url=False, include_context=False),
            stage_id=stage_id,
        ) from e
