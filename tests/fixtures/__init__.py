"""
Test Fixtures - Shared Test Data.

This package contains reusable test data:
    - model_responses.py: Canned model answers for every model-backed stage

Usage:
    Import directly in test files, or use the pytest fixtures in conftest.py.
"""
