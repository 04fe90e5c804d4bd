"""
Stage Contracts.

Safety analysis:
    - ChecklistValidationContract, RiskAssessmentContract,
      IncidentPredictionContract, SafetyReportContract

Comparison:
    - DeltaValidationContract, RiskComparisonContract, DecisionContract,
      ComparisonReportContract

Emergency action plan:
    - QuestionnaireValidationContract, EmergencyClassificationContract,
      ProcedureGenerationContract, DocumentAssemblyContract
"""

from safety_pipeline.contracts.base import (
    FanOutStageContract,
    StageContract,
    validate_payload,
)
from safety_pipeline.contracts.comparison_report import ComparisonReportContract
from safety_pipeline.contracts.decision import DecisionContract, evaluate_decision_rules
from safety_pipeline.contracts.delta_validation import DeltaValidationContract
from safety_pipeline.contracts.document_assembly import DocumentAssemblyContract
from safety_pipeline.contracts.eap_validation import QuestionnaireValidationContract
from safety_pipeline.contracts.emergency_classification import (
    EmergencyClassificationContract,
)
from safety_pipeline.contracts.prediction import IncidentPredictionContract
from safety_pipeline.contracts.procedure_generation import ProcedureGenerationContract
from safety_pipeline.contracts.risk_assessment import RiskAssessmentContract
from safety_pipeline.contracts.risk_comparison import RiskComparisonContract
from safety_pipeline.contracts.safety_report import SafetyReportContract
from safety_pipeline.contracts.validation import ChecklistValidationContract

__all__ = [
    "ChecklistValidationContract",
    "ComparisonReportContract",
    "DecisionContract",
    "DeltaValidationContract",
    "DocumentAssemblyContract",
    "EmergencyClassificationContract",
    "FanOutStageContract",
    "IncidentPredictionContract",
    "ProcedureGenerationContract",
    "QuestionnaireValidationContract",
    "RiskAssessmentContract",
    "RiskComparisonContract",
    "SafetyReportContract",
    "StageContract",
    "evaluate_decision_rules",
    "validate_payload",
]
