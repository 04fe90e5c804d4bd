"""
Delta Validation Stage.

First stage of the comparison pipeline: checks the reported changes
against the baseline and rates the quality of the update data.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from safety_pipeline.contracts.base import StageContract
from safety_pipeline.domain.comparison import ComparisonInput
from safety_pipeline.domain.payloads import DeltaValidationPayload

if TYPE_CHECKING:
    from safety_pipeline.pipeline.context import PipelineContext


def comparison_input(context: PipelineContext) -> ComparisonInput:
    return ComparisonInput.from_request(context.payload, context.reference)


def reported(value) -> str:
    """Prompt rendering of an optional delta field."""
    if value is None:
        return "Not reported"
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class DeltaValidationContract(StageContract):
    """Validate reported changes since the baseline."""

    stage_id = "comparison_agent_1"
    key = "delta_validation"
    name = "Delta Validator"
    output_schema = DeltaValidationPayload

    def build_prompt(self, context: PipelineContext) -> str:
        data = comparison_input(context)
        baseline, delta = data.baseline, data.delta
        score = baseline.risk_score if baseline.risk_score is not None else "Unknown"

        return f"""You are a safety data validator. Compare baseline JHA conditions with the reported changes.

BASELINE JHA:
{baseline.query}

ORIGINAL RISK SCORE: {score}

REPORTED CHANGES:
- Changed Categories: {', '.join(delta.changed_categories) or 'None'}
- New Wind Speed: {reported(delta.new_wind_speed)}
- New Crew: {reported(delta.new_crew_members)}
- New Hazards: {reported(delta.new_hazards)}
- User's Risk Assessment: {delta.user_risk_assessment}

TASK:
1. Validate each reported change category
2. Identify any missing critical information
3. Flag any inconsistencies between the user's risk assessment and the reported changes
4. Provide a quality score (0-10) for the update data

Return JSON:
{{
  "validationStatus": "complete|incomplete|inconsistent",
  "qualityScore": 8,
  "validatedChanges": ["weather", "personnel"],
  "missingInformation": ["temperature details"],
  "inconsistencies": ["User says riskier but no new hazards reported"],
  "dataCompleteness": 75
}}"""

    def fallback(self, context: PipelineContext) -> DeltaValidationPayload:
        """Accept the reported categories without claiming the data is complete."""
        delta = comparison_input(context).delta
        return DeltaValidationPayload(
            validation_status="incomplete",
            quality_score=5,
            validated_changes=delta.changed_categories,
            missing_information=["Automated validation unavailable"],
            data_completeness=80,
        )
