"""analysis_reanalyze tool for admin-triggered re-runs."""

from datetime import datetime

from card_analysis.config import settings
from card_analysis.db import get_session
from card_analysis.models import ContentDomain
from card_analysis.services import job_queue


async def analysis_reanalyze(
    domain: str | None = None,
    before_date: str | None = None,
    min_version: int | None = None,
    user_id: str | None = None,
    priority: int = settings.analysis_reanalysis_priority,
) -> dict:
    """Queue reanalysis for every card matching the filters.

    Reanalysis never overwrites: each job appends a new analysis version.

    Args:
        domain: Only cards with an analysis in this domain.
        before_date: ISO-8601 date; only cards with an analysis created before it.
        min_version: Only cards with an analysis version below this.
        user_id: Requesting admin, recorded on each job.
        priority: Queue priority (default: 1, ahead of regular requests).

    Returns:
        dict with status "queued", queued_count and the queued jobs, or
        "error" for invalid filters.

    Example:
        >>> analysis_reanalyze(domain="mathematics", min_version=2)
        {"status": "queued", "queued_count": 2, "jobs": [{"job_id": "...", "card_id": "..."}]}
    """
    try:
        domain_filter = ContentDomain(domain) if domain else None
    except ValueError:
        return {"status": "error", "reason": f"Unknown domain: {domain}"}

    try:
        before = datetime.fromisoformat(before_date) if before_date else None
    except ValueError:
        return {"status": "error", "reason": f"Invalid before_date: {before_date}"}

    async with get_session() as session:
        jobs = await job_queue.enqueue_reanalysis(
            session,
            domain=domain_filter,
            before_date=before,
            min_version=min_version,
            user_id=user_id,
            priority=priority,
        )
        return {
            "status": "queued",
            "queued_count": len(jobs),
            "jobs": [{"job_id": str(job.id), "card_id": job.card_id} for job in jobs],
        }
