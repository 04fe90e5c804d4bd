"""
Integration Tests - End-to-End Pipeline Tests.

These tests verify that all components work together correctly.
Integration tests use the ScriptedModelAdapter to avoid calling the
model service while testing the full workflow.

Test Files:
    - test_safety_analysis_pipeline.py: Checklist to job hazard analysis
    - test_comparison_pipeline.py: Baseline versus update decision
    - test_emergency_plan_pipeline.py: Questionnaire to emergency action plan
"""
