"""analysis_trigger_deck tool for batch analysis of a whole deck."""

from card_analysis.db import get_session
from card_analysis.errors import DeckNotFoundError
from card_analysis.services import job_queue


async def analysis_trigger_deck(
    deck_id: str,
    user_id: str | None = None,
    priority: int = 0,
) -> dict:
    """Queue every card in a deck for background analysis as one batch job.

    Args:
        deck_id: Deck identifier.
        user_id: Requesting user, recorded on the job.
        priority: Queue priority; higher is claimed first (default: 0).

    Returns:
        dict with status "queued", job_id and the precomputed total_cards,
        or "error" when the deck has no cards.
    """
    try:
        async with get_session() as session:
            job = await job_queue.enqueue_batch(session, deck_id, user_id=user_id, priority=priority)
            result = {
                "status": "queued",
                "job_id": str(job.id),
                "deck_id": job.deck_id,
                "total_cards": job.total_cards,
                "queued_at": job.created_at.isoformat(),
            }
    except DeckNotFoundError as exc:
        return {"status": "error", "reason": str(exc)}
    return result
