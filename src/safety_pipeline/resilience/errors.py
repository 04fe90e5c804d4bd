"""
Pipeline Error Taxonomy.

Recovered locally by the StageRunner (never surfaced to callers):
    - ModelInvocationError: transport, quota or empty-response failures
    - ExtractionFailure: model text could not be parsed as JSON
    - SchemaValidationFailure: JSON parsed but required fields are missing

Caught once at the orchestrator boundary:
    - PipelineFatalError: anything escaping the StageRunner boundary

Other:
    - AuditWriteConflict: a write-once audit record was written twice
"""

from __future__ import annotations

from typing import Any, List, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, stage_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage_id = stage_id


class ModelInvocationError(PipelineError):
    """Raised when the generative model service cannot produce text."""

    def __init__(
        self,
        message: str,
        *,
        stage_id: Optional[str] = None,
        status_code: Optional[int] = None,
        quota_exceeded: bool = False,
        empty_response: bool = False,
    ) -> None:
        super().__init__(message, stage_id=stage_id)
        self.status_code = status_code
        self.quota_exceeded = quota_exceeded
        self.empty_response = empty_response


class ExtractionFailure(PipelineError):
    """
    Model text did not contain a parseable JSON payload.

    Returned (not raised) by the extractor; the StageRunner raises it when
    a structured stage cannot use the cleaned text.
    """

    def __init__(
        self,
        reason: str,
        cleaned_text: str = "",
        stage_id: Optional[str] = None,
    ) -> None:
        super().__init__(f"Extraction failed: {reason}", stage_id=stage_id)
        self.reason = reason
        self.cleaned_text = cleaned_text

    def preview(self, length: int = 200) -> str:
        """Short preview of the offending text for logs."""
        return self.cleaned_text[:length]


class SchemaValidationFailure(PipelineError):
    """Extracted JSON parsed but does not satisfy the stage schema."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Any]] = None,
        stage_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, stage_id=stage_id)
        self.errors = errors or []


class PipelineFatalError(PipelineError):
    """Unexpected failure outside the StageRunner boundary."""

    pass


class AuditWriteConflict(PipelineError):
    """Raised when an audit record for (analysis_id, stage_id) already exists."""

    def __init__(self, analysis_id: str, stage_id: str) -> None:
        super().__init__(
            f"Audit record already written for analysis={analysis_id} stage={stage_id}",
            stage_id=stage_id,
        )
        self.analysis_id = analysis_id
