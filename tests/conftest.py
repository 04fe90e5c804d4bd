"""
Pytest Configuration and Shared Fixtures.

This module contains fixtures available to all tests.
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from safety_pipeline.adapters.console_logger import ConsoleAuditLogger
from safety_pipeline.adapters.memory_audit_sink import InMemoryAuditSink
from safety_pipeline.adapters.metrics_collector import InMemoryMetricsCollector
from safety_pipeline.adapters.scripted_model import ScriptedModelAdapter
from safety_pipeline.config.models import EngineConfig
from safety_pipeline.pipeline.context import PipelineContext


@pytest.fixture
def console_logger() -> ConsoleAuditLogger:
    """Create console logger for testing."""
    return ConsoleAuditLogger(verbose=False)


@pytest.fixture
def metrics_collector() -> InMemoryMetricsCollector:
    """Create metrics collector for testing."""
    return InMemoryMetricsCollector()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    """Create in-memory audit sink for testing."""
    return InMemoryAuditSink()


@pytest.fixture
def default_config() -> EngineConfig:
    """Create default engine configuration."""
    return EngineConfig()


@pytest.fixture
def offline_model() -> ScriptedModelAdapter:
    """Model adapter whose every call fails."""
    return ScriptedModelAdapter.unavailable()


@pytest.fixture
def complete_checklist() -> Dict[str, Any]:
    """Checklist answering every configured field."""
    return {
        "id": "chk-001",
        "template": "Roofing JHA",
        "sections": [
            {
                "title": "Site",
                "responses": [
                    {"question": "Site location", "response": "123 Main St, Springfield"},
                    {"question": "Work type", "response": "Roofing - membrane replacement"},
                    {"question": "Supervisor / competent person", "response": "Maria Lopez"},
                ],
            },
            {
                "title": "Controls",
                "responses": [
                    {"question": "Emergency plan and assembly point", "response": "North lot, posted at gate"},
                    {"question": "Worker certifications", "response": "All crew OSHA 30, fall protection trained"},
                    {"question": "Equipment inspection date", "response": "Harnesses and lanyards inspected 2024-06-01"},
                    {"question": "PPE requirements", "response": "Hard hat, harness, gloves, eye protection"},
                    {"question": "Hazard identification", "response": "Unprotected edges, skylights, heat"},
                ],
            },
        ],
    }


@pytest.fixture
def weather() -> Dict[str, Any]:
    """Calm weather reference data."""
    return {"temperature": 72, "windSpeed": 8, "conditions": "Clear"}


@pytest.fixture
def safety_context(complete_checklist, weather) -> PipelineContext:
    """Context for the safety analysis pipeline with weather data."""
    return PipelineContext(complete_checklist, {"weather": weather}, "analysis-1")


@pytest.fixture
def questionnaire() -> Dict[str, Any]:
    """Complete emergency plan questionnaire for a high-rise site."""
    return {
        "companyName": "Skyline Glazing LLC",
        "siteAddress": "500 Tower Ave",
        "city": "Chicago",
        "state": "IL",
        "zipCode": "60601",
        "projectDescription": "Curtain wall installation on 12-story office building",
        "buildingType": "Commercial high-rise",
        "siteType": "construction",
        "buildingHeight": 90,
        "workElevation": 85,
        "constructionPhase": "Envelope",
        "totalEmployees": 24,
        "emergencyCoordinator": {"name": "Dana Reyes", "title": "Site Superintendent", "phone": "312-555-0101"},
        "alternateCoordinator": {"name": "Sam Ortiz", "title": "Foreman", "phone": "312-555-0102"},
        "nearestHospital": {"name": "Northwestern Memorial", "phone": "312-555-0199", "address": "251 E Huron St", "distance": 1.2},
        "fireStation": {"phone": "312-555-0111", "estimatedResponseTime": 4},
        "localPolice": {"phone": "312-555-0122"},
        "primaryAssembly": {"location": "NE corner parking lot", "gpsCoordinates": "41.89, -87.62"},
        "secondaryAssembly": {"location": "Plaza across Tower Ave"},
        "alarmSystems": ["Air horn", "Radio broadcast"],
        "hazards": {"fallFromHeight": True, "swingStage": True, "craneOperations": True, "hotWork": False},
        "equipment": ["Tower crane", "Swing stage platforms"],
        "weatherConcerns": ["High winds", "Severe storms"],
        "radioChannel": "Channel 4",
        "rescueCapability": "local_fire_ems",
    }


@pytest.fixture
def baseline() -> Dict[str, Any]:
    """Baseline job hazard analysis record."""
    return {
        "id": "jha-42",
        "query": "Glass panel installation on level 8 with tower crane",
        "response": "Top hazards: falls from height, suspended loads, wind.",
        "riskScore": 55,
    }
