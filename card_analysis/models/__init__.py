"""Data models for card analysis."""

from card_analysis.models.analysis_job import AnalysisJob, JobStatus, JobType
from card_analysis.models.card import Card
from card_analysis.models.card_analysis import (
    AnalysisMethod,
    AnalysisStatus,
    CardAnalysis,
    CardType,
    ComplexityLevel,
    ContentDomain,
)

__all__ = [
    "AnalysisJob",
    "AnalysisMethod",
    "AnalysisStatus",
    "Card",
    "CardAnalysis",
    "CardType",
    "ComplexityLevel",
    "ContentDomain",
    "JobStatus",
    "JobType",
]
