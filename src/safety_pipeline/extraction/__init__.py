"""
Extraction Package - JSON Payloads from Model Text.

Components:
    - extract: text -> ParsedPayload | ExtractionFailure
    - extract_object: raising variant for object payloads
    - strip_wrapping: code fence / backtick cleanup
"""

from safety_pipeline.extraction.extractor import (
    ExtractionResult,
    ParsedPayload,
    extract,
    extract_object,
    strip_wrapping,
)

__all__ = [
    "ExtractionResult",
    "ParsedPayload",
    "extract",
    "extract_object",
    "strip_wrapping",
]
