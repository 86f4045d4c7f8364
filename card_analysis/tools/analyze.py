"""analysis_trigger and analysis_get tools for single-card analysis."""

from card_analysis.db import get_session
from card_analysis.errors import CardNotFoundError
from card_analysis.services import analysis_service, job_queue


async def analysis_trigger(
    card_id: str,
    user_id: str | None = None,
    immediate: bool = False,
    priority: int = 0,
) -> dict:
    """Analyze a card now, or queue it for the background workers.

    Args:
        card_id: Card identifier.
        user_id: Requesting user, recorded on the job.
        immediate: Run the analysis synchronously and return the result
            (default: False, queue a job).
        priority: Queue priority; higher is claimed first (default: 0).

    Returns:
        dict with status "completed" and the analysis when immediate,
        "queued" and job metadata otherwise, or "error" with a reason.

    Example:
        >>> analysis_trigger(card_id="card_123")
        {"status": "queued", "job_id": "...", "card_id": "card_123", "queued_at": "..."}
    """
    if immediate:
        try:
            async with get_session() as session:
                record = await analysis_service.analyze_card(session, card_id)
        except CardNotFoundError as exc:
            return {"status": "error", "reason": str(exc)}
        return {"status": "completed", "analysis": record.to_dict()}

    async with get_session() as session:
        job = await job_queue.enqueue_single(session, card_id, user_id=user_id, priority=priority)
        return {
            "status": "queued",
            "job_id": str(job.id),
            "card_id": job.card_id,
            "queued_at": job.created_at.isoformat(),
        }


async def analysis_get(card_id: str) -> dict:
    """Get the current analysis for a card."""
    async with get_session() as session:
        record = await analysis_service.get_latest(session, card_id)
        if record is None:
            return {
                "status": "not_found",
                "reason": "No analysis exists for this card. Trigger analysis first.",
            }
        return record.to_dict()
