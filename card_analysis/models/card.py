"""Read-only view of the flashcard content store."""

from typing import Any

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class Card(SQLModel, table=True):
    """A flashcard as owned by the card/deck store.

    Content may be plain text, HTML, a JSON string envelope or a decoded
    JSON object. The analysis pipeline never writes to this table.
    """

    __tablename__ = "cards"

    card_id: str = Field(primary_key=True, max_length=64)
    deck_id: str = Field(index=True, max_length=64)
    front_content: Any = Field(default=None, sa_column=Column(JSON))
    back_content: Any = Field(default=None, sa_column=Column(JSON))
