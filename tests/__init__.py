"""
Test Suite for Safety Pipeline.

Test organization:
    - unit/: Unit tests for individual components
    - integration/: End-to-end pipeline tests with a scripted model

Running Tests:
    pytest tests/                           # All tests
    pytest tests/unit/                      # Unit tests only
    pytest tests/integration/               # Integration tests only
"""
