"""
Resilience Package - Error Taxonomy and Batch Pacing.

Components:
    - errors: ModelInvocationError, ExtractionFailure, SchemaValidationFailure,
      PipelineFatalError
    - pacing: Pacer, PartialResult, handle_partial_failure
"""

from safety_pipeline.resilience.errors import (
    AuditWriteConflict,
    ExtractionFailure,
    ModelInvocationError,
    PipelineError,
    PipelineFatalError,
    SchemaValidationFailure,
)
from safety_pipeline.resilience.pacing import Pacer, PartialResult, handle_partial_failure

__all__ = [
    "AuditWriteConflict",
    "ExtractionFailure",
    "ModelInvocationError",
    "PipelineError",
    "PipelineFatalError",
    "SchemaValidationFailure",
    "Pacer",
    "PartialResult",
    "handle_partial_failure",
]
