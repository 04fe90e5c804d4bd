"""
Checklist Inspection.

Deterministic part of checklist validation: flattens a free-form checklist
payload into (label, answer) entries, finds missing required fields and
"no answer" responses, and derives the quality score band the model's
score is clamped into.

Score bands:
    - (8, 10): no gaps
    - (7, 9): minor gaps (non-critical fields missing or unanswered)
    - (4, 6): significant gaps in critical fields
    - (1, 3): insufficient to proceed (empty, or under half the critical
      fields present)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from safety_pipeline.config.models import FieldRule, ValidationRules

NO_GAPS_BAND = (8, 10)
MINOR_GAPS_BAND = (7, 9)
CRITICAL_GAPS_BAND = (4, 6)
INSUFFICIENT_BAND = (1, 3)

# Below this share of critical fields present the checklist is insufficient
MIN_CRITICAL_COVERAGE = 0.5

_IGNORED_KEYS = frozenset({"id", "template", "createdat", "updatedat", "userid"})

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_WORD = re.compile(r"[^a-z0-9]+")


def _label_words(label: str) -> str:
    """Lowercase words of a label: "site.ppeRequirements" -> "site ppe requirements"."""
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", label)
    return _NON_WORD.sub(" ", spaced.lower()).strip()


@dataclass(frozen=True)
class ChecklistEntry:
    """One question/answer pair from the checklist."""

    label: str
    answer: str


def _answer_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(_answer_text(v) for v in value if v is not None)
    return str(value).strip()


def flatten_checklist(payload: Any) -> List[ChecklistEntry]:
    """
    Flatten a checklist payload.

    Understands ``sections[].responses[]`` question/response pairs and
    arbitrary nested mappings (dotted labels).
    """
    entries: List[ChecklistEntry] = []

    def walk(value: Any, label: str) -> None:
        if isinstance(value, dict):
            if "question" in value and ("response" in value or "answer" in value):
                answer = value.get("response", value.get("answer"))
                entries.append(ChecklistEntry(str(value["question"]), _answer_text(answer)))
                return
            for key, child in value.items():
                if str(key).lower() in _IGNORED_KEYS:
                    continue
                walk(child, f"{label}.{key}" if label else str(key))
        elif isinstance(value, (list, tuple)):
            if all(not isinstance(v, (dict, list, tuple)) for v in value):
                entries.append(ChecklistEntry(label, _answer_text(value)))
            else:
                for child in value:
                    walk(child, label)
        else:
            entries.append(ChecklistEntry(label, _answer_text(value)))

    walk(payload, "")
    return entries


def find_answer(payload: Any, names: Sequence[str], default: str = "") -> str:
    """
    First answer whose key or question mentions one of the names.

    Top-level keys are checked before nested entries.
    """
    if isinstance(payload, dict):
        for name in names:
            value = payload.get(name)
            if value not in (None, "") and not isinstance(value, (dict, list)):
                return str(value)
    lowered = [n.lower() for n in names]
    for entry in flatten_checklist(payload):
        label = entry.label.lower()
        if entry.answer and any(n in label for n in lowered):
            return entry.answer
    return default


@dataclass
class ChecklistInspection:
    """Result of inspecting a checklist against the validation rules."""

    entries: List[ChecklistEntry] = field(default_factory=list)
    missing_critical: List[str] = field(default_factory=list)
    missing_optional: List[str] = field(default_factory=list)
    no_answer_fields: List[str] = field(default_factory=list)
    critical_total: int = 0

    @property
    def answered_count(self) -> int:
        return sum(1 for e in self.entries if e.answer)

    @property
    def is_empty(self) -> bool:
        return self.answered_count == 0

    @property
    def critical_coverage(self) -> float:
        """Share of critical fields present (1.0 when none are configured)."""
        if self.critical_total == 0:
            return 1.0
        return (self.critical_total - len(self.missing_critical)) / self.critical_total

    @property
    def has_minor_gaps(self) -> bool:
        return bool(self.missing_optional or self.no_answer_fields)

    def score_band(self) -> Tuple[int, int]:
        """Inclusive (low, high) quality score band."""
        if self.is_empty or self.critical_coverage < MIN_CRITICAL_COVERAGE:
            return INSUFFICIENT_BAND
        if self.missing_critical:
            return CRITICAL_GAPS_BAND
        if self.has_minor_gaps:
            return MINOR_GAPS_BAND
        return NO_GAPS_BAND


class ChecklistInspector:
    """Applies ValidationRules to checklist payloads."""

    def __init__(self, rules: ValidationRules) -> None:
        self.rules = rules
        self._no_answer = {t.strip().lower() for t in rules.no_answer_tokens}

    def is_no_answer(self, answer: str) -> bool:
        text = answer.strip().lower().rstrip(".")
        return not text or text in self._no_answer

    def inspect(self, payload: Any) -> ChecklistInspection:
        """Inspect a checklist payload."""
        entries = flatten_checklist(payload or {})
        inspection = ChecklistInspection(
            entries=entries, critical_total=len(self.rules.critical_fields)
        )

        for entry in entries:
            if entry.label and self.is_no_answer(entry.answer):
                inspection.no_answer_fields.append(entry.label)

        for rule in self.rules.fields:
            if self._present(rule, entries):
                continue
            if rule.critical:
                inspection.missing_critical.append(rule.name)
            else:
                inspection.missing_optional.append(rule.name)
        return inspection

    def _present(self, rule: FieldRule, entries: Iterable[ChecklistEntry]) -> bool:
        """A field is present when an answered entry's label names it as a whole word."""
        patterns = [
            re.compile(rf"\b{re.escape(name.lower())}s?\b") for name in rule.all_names()
        ]
        for entry in entries:
            if self.is_no_answer(entry.answer):
                continue
            label = _label_words(entry.label)
            if any(p.search(label) for p in patterns):
                return True
        return False


def clamp_to_band(score: Optional[int], band: Tuple[int, int]) -> int:
    """Clamp a model score into a band; None maps to the band's low end."""
    low, high = band
    if score is None:
        return low
    return max(low, min(high, score))


def quality_level(score: int) -> str:
    """HIGH for 8-10, MEDIUM for 4-7, LOW for 1-3."""
    if score >= 8:
        return "HIGH"
    if score >= 4:
        return "MEDIUM"
    return "LOW"
