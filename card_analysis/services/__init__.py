"""Services layer for card analysis."""

from card_analysis.services.analysis import AnalysisService, analysis_service
from card_analysis.services.classifier import CardAnalyzer
from card_analysis.services.job_queue import JobQueue, job_queue
from card_analysis.services.worker import AnalysisWorker

__all__ = [
    "AnalysisService",
    "analysis_service",
    "AnalysisWorker",
    "CardAnalyzer",
    "JobQueue",
    "job_queue",
]
