"""
Structured Response Extractor.

Pulls a JSON payload out of free-form model text.

Algorithm:
    1. If the whole (stripped) text is JSON, return it unchanged
    2. Strip wrapping artifacts: code fences and stray backticks
    3. For each top-level position opening with ``{`` or ``[`` (never one
       nested inside an earlier unclosed bracket), try the substring up to
       the LAST closing character of the same kind, then the balanced
       (string-aware) match
    4. The first candidate that deserializes wins

Design Notes:
    - Never raises: failures come back as an ExtractionFailure value that
      carries the cleaned text for textual stages
    - Idempotent on canonical output: extract(canonical_text(x)) == x
    - Candidate scanning is capped to keep pathological prose cheap
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Union

from safety_pipeline.resilience.errors import ExtractionFailure, SchemaValidationFailure

logger = logging.getLogger(__name__)

# Maximum number of opening positions tried before giving up
MAX_CANDIDATE_STARTS = 50

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*")
_CLOSERS = {"{": "}", "[": "]"}

_UNPARSED = object()


@dataclass(frozen=True)
class ParsedPayload:
    """Successfully extracted JSON value."""

    value: Any
    source_text: str

    def canonical_text(self) -> str:
        """Canonical serialized form of the value."""
        return json.dumps(self.value, ensure_ascii=False)

    @property
    def is_object(self) -> bool:
        return isinstance(self.value, dict)

    def expect_object(self, stage_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Return the value as a JSON object.

        Raises:
            SchemaValidationFailure: If the payload is not an object
        """
        if not isinstance(self.value, dict):
            raise SchemaValidationFailure(
                f"Expected a JSON object, got {type(self.value).__name__}",
                stage_id=stage_id,
            )
        return self.value


ExtractionResult = Union[ParsedPayload, ExtractionFailure]


def strip_wrapping(text: str) -> str:
    """Remove code fences and stray backticks."""
    without_fences = _FENCE_RE.sub(" ", text)
    return without_fences.replace("`", "").strip()


def _try_parse(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return _UNPARSED


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index of the bracket closing text[start], honoring JSON strings."""
    stack: List[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return index
    return None


def _top_level_starts(text: str) -> List[int]:
    """
    Opening positions not nested inside an earlier bracket.

    Once an outer bracket opens, nothing inside it is a start of its own,
    so a truncated outer payload never yields an inner fragment. A
    mismatched closer abandons the outer bracket and scanning resumes.
    """
    starts: List[int] = []
    stack: List[str] = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if not stack:
            if char in _CLOSERS:
                starts.append(index)
                stack.append(_CLOSERS[char])
                in_string = False
            continue
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]") and stack.pop() != char:
            stack = []
    return starts


def _candidates(text: str) -> Iterator[str]:
    """Yield candidate substrings in priority order."""
    for start in _top_level_starts(text)[:MAX_CANDIDATE_STARTS]:
        closer = _CLOSERS[text[start]]
        last = text.rfind(closer)
        greedy: Optional[str] = None
        if last > start:
            greedy = text[start : last + 1]
            yield greedy
        end = _balanced_end(text, start)
        if end is not None:
            balanced = text[start : end + 1]
            if balanced != greedy:
                yield balanced


def extract(text: Optional[str]) -> ExtractionResult:
    """
    Extract the first JSON payload from model text.

    Args:
        text: Raw model response

    Returns:
        ParsedPayload on success, ExtractionFailure otherwise
    """
    if text is None or not text.strip():
        return ExtractionFailure("empty response", cleaned_text="")

    stripped = text.strip()
    direct = _try_parse(stripped)
    if direct is not _UNPARSED:
        return ParsedPayload(value=direct, source_text=stripped)

    cleaned = strip_wrapping(stripped)
    tried = 0
    for candidate in _candidates(cleaned):
        tried += 1
        value = _try_parse(candidate)
        if value is not _UNPARSED:
            logger.debug(f"Extracted JSON candidate {tried} ({len(candidate)} chars)")
            return ParsedPayload(value=value, source_text=candidate)

    if tried == 0:
        reason = "no JSON object or array found"
    else:
        reason = f"none of {tried} JSON candidates could be parsed"
    return ExtractionFailure(reason, cleaned_text=cleaned)


def extract_object(text: Optional[str], stage_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Extract a JSON object or raise.

    Raises:
        ExtractionFailure: If no JSON could be extracted
        SchemaValidationFailure: If the payload is not an object
    """
    result = extract(text)
    if isinstance(result, ExtractionFailure):
        result.stage_id = stage_id
        raise result
    return result.expect_object(stage_id)
