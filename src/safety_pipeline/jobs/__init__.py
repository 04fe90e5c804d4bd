"""
Batch Jobs.

Components:
    - BatchAnalysisJob: paced pipeline runs over many requests
    - EmbeddingBackfillJob: paced embedding of stored analyses
"""

from safety_pipeline.jobs.backfill import BackfillItem, EmbeddedAnalysis, EmbeddingBackfillJob
from safety_pipeline.jobs.batch import BatchAnalysisJob

__all__ = ["BackfillItem", "BatchAnalysisJob", "EmbeddedAnalysis", "EmbeddingBackfillJob"]
