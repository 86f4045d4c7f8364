"""Database layer for the card analysis worker."""

from card_analysis.db.connection import close_db, get_engine, get_session, init_db

__all__ = [
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
]
