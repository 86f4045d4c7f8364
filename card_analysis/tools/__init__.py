"""Trigger and read tools for card analysis."""

from card_analysis.tools.analyze import analysis_get, analysis_trigger
from card_analysis.tools.backlog import analysis_backlog, analysis_job_status
from card_analysis.tools.deck import analysis_trigger_deck
from card_analysis.tools.reanalyze import analysis_reanalyze

__all__ = [
    "analysis_trigger",
    "analysis_trigger_deck",
    "analysis_reanalyze",
    "analysis_get",
    "analysis_backlog",
    "analysis_job_status",
]
