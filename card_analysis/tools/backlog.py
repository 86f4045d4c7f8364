"""analysis_backlog and analysis_job_status tools for the queue read surface."""

from uuid import UUID

from card_analysis.db import get_session
from card_analysis.services import job_queue


async def analysis_backlog() -> dict:
    """Get job counts by status and by job type.

    Example:
        >>> analysis_backlog()
        {
            "status": "ok",
            "backlog": {
                "pending": 4, "processing": 1, "completed": 12, "failed": 1,
                "by_type": {"single": {"pending": 4, ...}, "batch": {...}}
            }
        }
    """
    async with get_session() as session:
        backlog = await job_queue.get_backlog(session)
    return {"status": "ok", "backlog": backlog}


async def analysis_job_status(job_id: str) -> dict:
    """Get the status of an analysis job."""
    try:
        jid = UUID(job_id)
    except ValueError:
        return {"status": "error", "reason": "invalid job_id"}

    async with get_session() as session:
        job = await job_queue.get_job(session, jid)
        if job is None:
            return {"status": "not_found"}
        return job.to_dict()
