"""
Canned Model Responses.

Stage answers shaped the way the model service returns them, for use with
the ScriptedModelAdapter.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List


def as_model_text(value: Any, fenced: bool = True) -> str:
    """Render a payload the way a chat model typically answers."""
    body = json.dumps(value, indent=2)
    if fenced:
        return f"Here is the analysis you asked for:\n```json\n{body}\n```\nLet me know if you need more."
    return body


VALIDATION: Dict[str, Any] = {
    "qualityScore": 9,
    "dataQuality": "HIGH",
    "missingCritical": [],
    "insufficientResponses": [],
    "weatherPresent": True,
    "weatherRisks": [],
    "concerns": {"CRITICAL": [], "HIGH": [], "MEDIUM": ["Heat later in the day"], "LOW": []},
    "tradeSpecificGaps": [],
    "recommendedAction": "PROCEED",
}

RISK_ASSESSMENT: Dict[str, Any] = {
    "riskSummary": {"overallRiskLevel": "HIGH", "highestRiskScore": 70, "industryContext": "Roofing"},
    "hazards": [
        {
            "name": "Heat stress",
            "category": "Health",
            "probability": 0.2,
            "consequence": "Serious",
            "riskScore": 45,
            "recommendedControls": ["Water, rest, shade"],
        },
        {
            "name": "Fall from roof edge",
            "category": "Falls",
            "probability": 12,
            "consequence": "fatal",
            "riskScore": 72,
            "inadequateControls": ["No guardrail on north edge"],
            "recommendedControls": ["Install guardrails"],
            "regulatoryRequirement": "29 CFR 1926.501",
        },
    ],
    "topThreats": ["Fall from roof edge"],
    "immediateActions": ["Install guardrail on north edge"],
}

PREDICTION: Dict[str, Any] = {
    "incidentName": "Fall from unprotected roof edge",
    "timeframe": "Next 2-4 hours of work",
    "probability": 35,
    "confidence": "HIGH",
    "causalChain": [
        {"stage": "Root cause", "description": "Guardrail missing on north edge"},
        {"stage": "Trigger", "description": "Worker steps back while handling membrane"},
    ],
    "leadingIndicators": [
        {"indicator": "Workers within 6 ft of edge untied", "type": "BEHAVIORAL"},
        {"indicator": "Material staged near edge", "type": "CONDITION"},
        {"indicator": "Gusts above 20 mph", "type": "ENVIRONMENTAL"},
    ],
    "interventions": {
        "preventive": [{"action": "Install guardrail"}],
        "mitigative": [{"action": "Rescue plan"}],
        "recommended": "Install guardrail before work resumes",
    },
}

DELTA_VALIDATION: Dict[str, Any] = {
    "validationStatus": "complete",
    "qualityScore": 8,
    "validatedChanges": ["weather", "crew"],
    "missingInformation": [],
    "inconsistencies": [],
    "dataCompleteness": 90,
}

RISK_COMPARISON_SAFER: Dict[str, Any] = {
    "currentRiskScore": 40,
    "riskScoreDelta": -15,
    "improvements": [{"category": "crew", "description": "Experienced crew returned"}],
    "degradations": [],
    "newHazards": [],
}

DECISION_GO: Dict[str, Any] = {
    "decision": "go",
    "reasoning": "Conditions improved since the baseline",
    "requiredActions": [],
    "workRestrictions": [],
    "monitoringRequirements": ["Check wind hourly"],
}

COMPARISON_REPORT: Dict[str, Any] = {
    "executiveSummary": "Conditions improved; work may continue.",
    "comparisonReport": "# JHA Comparison\n\nDecision: GO",
    "keyFindings": ["Experienced crew returned"],
    "criticalChanges": [],
}

CLASSIFICATION: Dict[str, Any] = {
    "requiredEmergencies": [
        {
            "type": "fall from height rescue",
            "reason": "Work at 85 feet with swing stage operations",
            "oshaReference": "29 CFR 1926.502(d)(20)",
            "criticalDetails": ["6-minute rescue window"],
            "priority": "CRITICAL",
        }
    ],
    "optionalEmergencies": ["extreme_heat_protocol"],
    "totalProcedures": 4,
}


def procedure(title: str = "SITE PROCEDURE") -> Dict[str, Any]:
    """A generated procedure for one emergency type."""
    return {
        "title": title,
        "whenApplicable": "Any emergency of this type",
        "procedureSteps": "1. Alert\n2. Evacuate\n3. Account for all workers",
        "siteSpecificFactors": "Wind at height",
        "equipmentNeeded": "Radios",
        "trainingRequired": "Quarterly drills",
    }


def safety_analysis_responses() -> List[str]:
    """Model answers for the three model-backed safety analysis stages."""
    return [
        as_model_text(VALIDATION),
        as_model_text(RISK_ASSESSMENT),
        as_model_text(PREDICTION, fenced=False),
    ]


def comparison_responses() -> List[str]:
    """Model answers for all four comparison stages."""
    return [
        as_model_text(DELTA_VALIDATION),
        as_model_text(RISK_COMPARISON_SAFER),
        as_model_text(DECISION_GO),
        as_model_text(COMPARISON_REPORT),
    ]
