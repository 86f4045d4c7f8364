"""Error types and retry classification for analysis jobs."""

import errno

from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError


class AnalysisError(Exception):
    """Base class for analysis pipeline errors."""

    retryable = True


class CardNotFoundError(AnalysisError):
    """Referenced card does not exist in the content store."""

    retryable = False

    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class DeckNotFoundError(AnalysisError):
    """Referenced deck does not exist in the content store."""

    retryable = False

    def __init__(self, deck_id: str):
        super().__init__(f"Deck not found: {deck_id}")
        self.deck_id = deck_id


class UnknownJobTypeError(AnalysisError):
    """Job record carries a kind the worker cannot process."""

    retryable = False

    def __init__(self, job_type: str):
        super().__init__(f"Unknown job type: {job_type}")
        self.job_type = job_type


RETRYABLE_ERRNOS = {errno.ECONNREFUSED, errno.ECONNRESET, errno.ETIMEDOUT}

# admin_shutdown: the server terminated the connection
RETRYABLE_PGCODES = {"57P01"}


def is_retryable_error(error: BaseException) -> bool:
    """Classify a job failure as retryable or permanent.

    Connection failures, timeouts and rate limits are retryable. Validation
    failures (missing card or deck) are not. Anything unrecognised is retried
    so work is never silently dropped.
    """
    if isinstance(error, AnalysisError):
        return error.retryable

    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    if isinstance(error, OSError) and error.errno in RETRYABLE_ERRNOS:
        return True

    if isinstance(error, (OperationalError, InterfaceError, DisconnectionError)):
        return True
    if isinstance(error, DBAPIError):
        if error.connection_invalidated:
            return True
        if getattr(error.orig, "pgcode", None) in RETRYABLE_PGCODES:
            return True

    message = str(error).lower()
    if "rate limit" in message:
        return True
    if "not found" in message:
        return False

    return True
