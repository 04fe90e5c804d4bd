"""
Stage Runner - One Stage, Never Throws.

Runs a single stage contract against the pipeline context:
    1. invoke the model with the contract's prompt and settings
    2. extract JSON from the response text
    3. validate the schema and apply the contract's scoring rules
    4. on any failure, substitute the contract fallback (success=False)

Design Notes:
    - Recoverable failures (PipelineError and unexpected stage errors) are
      converted into a fallback payload plus error message
    - Only a failing fallback escapes, as PipelineFatalError
    - Extraction failures are logged with a preview of the raw text
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from safety_pipeline.contracts.base import FanOutStageContract, StageContract
from safety_pipeline.domain.entities import StageKind, StageResult
from safety_pipeline.domain.payloads import StagePayload
from safety_pipeline.extraction.extractor import extract, strip_wrapping
from safety_pipeline.interfaces.model_adapter import ModelAdapter
from safety_pipeline.resilience.errors import (
    ExtractionFailure,
    ModelInvocationError,
    PipelineError,
    PipelineFatalError,
)

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext

logger = logging.getLogger(__name__)

RAW_PREVIEW_CHARS = 200


class StageRunner:
    """Executes stage contracts with fallback on every failure path."""

    def __init__(self, model: ModelAdapter) -> None:
        """
        Initialize runner.

        Args:
            model: Model invocation adapter shared by all stages
        """
        self.model = model

    def run(self, contract: StageContract, context: PipelineContext) -> StageResult:
        """
        Run one stage.

        Args:
            contract: Stage contract to execute
            context: Context holding input and prior stage payloads

        Returns:
            StageResult whose payload is always present

        Raises:
            PipelineFatalError: Only if the contract's own fallback fails
        """
        start = time.perf_counter()
        raw_text = ""
        error_message: Optional[str] = None

        try:
            if contract.kind is StageKind.DETERMINISTIC:
                payload = contract.build(context)
            elif isinstance(contract, FanOutStageContract):
                payload, raw_text, error_message = self._run_fan_out(contract, context)
            else:
                raw_text = self._invoke(contract, contract.build_prompt(context))
                payload = self._interpret(contract, raw_text, context)
            degraded = contract.degradation(payload)
            if degraded and error_message is None:
                error_message = degraded
        except PipelineError as e:
            logger.warning(f"Stage {contract.stage_id} failed: {e}")
            payload = self._fallback(contract, context, e)
            error_message = str(e)
        except Exception as e:
            logger.error(
                f"Stage {contract.stage_id} raised {type(e).__name__}: {e}",
                exc_info=True,
            )
            payload = self._fallback(contract, context, e)
            error_message = f"{type(e).__name__}: {e}"

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        return StageResult(
            stage_id=contract.stage_id,
            stage_key=contract.key,
            stage_name=contract.name,
            stage_kind=contract.kind,
            payload=payload.to_payload(),
            raw_model_text=raw_text,
            success=error_message is None,
            error_message=error_message,
            execution_time_ms=elapsed_ms,
            temperature=contract.temperature,
            max_tokens=contract.max_tokens,
            model=self._model_label(contract),
            purpose=contract.settings.purpose,
        )

    def _invoke(self, contract: StageContract, prompt: str) -> str:
        """Call the model; an empty body is an invocation error."""
        text = self.model.invoke(prompt, contract.temperature, contract.max_tokens)
        if not text or not text.strip():
            raise ModelInvocationError(
                "Model returned an empty response",
                stage_id=contract.stage_id,
                empty_response=True,
            )
        logger.debug(
            f"Stage {contract.stage_id}: {len(text)} chars "
            f"(temp {contract.temperature})"
        )
        return text

    def _interpret(
        self,
        contract: StageContract,
        raw_text: str,
        context: PipelineContext,
    ) -> StagePayload:
        """Extract, validate and score model text."""
        result = extract(raw_text)
        if isinstance(result, ExtractionFailure):
            if contract.kind is StageKind.TEXTUAL:
                textual = contract.from_text(result.cleaned_text, context)
                if textual is not None:
                    return contract.score(textual, context)
            result.stage_id = contract.stage_id
            logger.warning(
                f"Stage {contract.stage_id} extraction failed ({result.reason}); "
                f"raw preview: {raw_text[:RAW_PREVIEW_CHARS]!r}"
            )
            raise result

        if contract.kind is StageKind.TEXTUAL and not result.is_object:
            # Prose with a bracketed aside such as "see [1]" is still prose
            textual = contract.from_text(strip_wrapping(raw_text), context)
            if textual is not None:
                return contract.score(textual, context)

        value = result.expect_object(contract.stage_id)
        payload = contract.parse(value, context)
        return contract.score(payload, context)

    def _run_fan_out(
        self,
        contract: FanOutStageContract,
        context: PipelineContext,
    ) -> Tuple[StagePayload, str, Optional[str]]:
        """Invoke once per item; failed items use their item fallback."""
        outcomes: List[Tuple[Any, StagePayload, bool]] = []
        texts: List[str] = []
        errors: List[str] = []

        for item in contract.items(context):
            try:
                text = self._invoke(contract, contract.build_item_prompt(item, context))
                texts.append(text)
                result = extract(text)
                if isinstance(result, ExtractionFailure):
                    logger.warning(
                        f"Stage {contract.stage_id} item extraction failed "
                        f"({result.reason}); raw preview: {text[:RAW_PREVIEW_CHARS]!r}"
                    )
                    raise result
                value = result.expect_object(contract.stage_id)
                outcomes.append((item, contract.parse_item(value, item, context), True))
            except PipelineError as e:
                errors.append(str(e))
                outcomes.append((item, contract.item_fallback(item, context), False))

        payload = contract.combine(outcomes, context)
        error_message = None
        if errors:
            error_message = f"{len(errors)} of {len(outcomes)} items fell back: " + "; ".join(
                errors
            )
        return payload, "\n\n".join(texts), error_message

    def _fallback(
        self,
        contract: StageContract,
        context: PipelineContext,
        cause: Exception,
    ) -> StagePayload:
        """Contract fallback; a contract applies its own rules where needed."""
        try:
            return contract.fallback(context)
        except Exception as e:
            raise PipelineFatalError(
                f"Fallback for stage {contract.stage_id} failed: {e} "
                f"(original failure: {cause})",
                stage_id=contract.stage_id,
            ) from e

    def _model_label(self, contract: StageContract) -> Optional[str]:
        if contract.model_label is not None:
            return contract.model_label
        return getattr(self.model, "model_name", None)
