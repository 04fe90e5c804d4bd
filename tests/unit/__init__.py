"""
Unit Tests - Testing Individual Components in Isolation.

Each component is tested in isolation with mocked dependencies.
Unit tests should be fast, deterministic, and focused.

Test Files:
    - test_extractor.py: JSON extraction from model text
    - test_stage_runner.py: Stage execution and fallback paths
    - test_orchestrator.py: Sequencing, metadata and audit writes
    - test_decision.py: GO / NO-GO decision rules
    - test_config_loader.py: Configuration loading/validation
"""
