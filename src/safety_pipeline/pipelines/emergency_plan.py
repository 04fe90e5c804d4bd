"""
Emergency Action Plan Pipeline.

Questionnaire validation -> emergency classification -> procedure
generation -> document assembly.
"""

from __future__ import annotations

from typing import Any, Dict

from safety_pipeline.config.models import EngineConfig
from safety_pipeline.contracts.document_assembly import DocumentAssemblyContract
from safety_pipeline.contracts.eap_validation import QuestionnaireValidationContract
from safety_pipeline.contracts.emergency_classification import (
    EmergencyClassificationContract,
)
from safety_pipeline.contracts.procedure_generation import ProcedureGenerationContract
from safety_pipeline.pipeline.context import PipelineContext
from safety_pipeline.pipeline.orchestrator import PipelineDefinition

NAME = "emergency_plan"
VERSION = "eap-v1.0"
AGENT_TYPE = "eap_generator"
DESCRIPTION = "OSHA emergency action plan from a site questionnaire"


def summarize(context: PipelineContext) -> Dict[str, Any]:
    """Headline figures of an emergency plan run."""
    validation = context.get("questionnaire_validation") or {}
    procedures = context.get("procedures") or {}
    document = context.get("document") or {}
    return {
        "completeness": document.get("completeness"),
        "oshaCompliant": document.get("oshaCompliant"),
        "complete": validation.get("complete"),
        "missingRequired": validation.get("missingRequired", []),
        "procedureCount": len(procedures.get("procedures", [])),
        "templateProcedures": procedures.get("fallbacks", []),
    }


def build_definition(config: EngineConfig) -> PipelineDefinition:
    """Stage contracts wired to the configured stage settings."""
    stages = config.emergency_plan
    return PipelineDefinition(
        name=NAME,
        version=VERSION,
        contracts=[
            QuestionnaireValidationContract(stages.validation),
            EmergencyClassificationContract(stages.classification),
            ProcedureGenerationContract(stages.procedures),
            DocumentAssemblyContract(stages.assembly),
        ],
        agent_type=AGENT_TYPE,
        summarize=summarize,
        description=DESCRIPTION,
        tags=["eap", "questionnaire"],
    )
