"""Analysis job model for the background analysis queue."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class JobType(str, Enum):
    """Kinds of queued analysis work."""

    SINGLE = "single"
    BATCH = "batch"
    REANALYSIS = "reanalysis"


class JobStatus(str, Enum):
    """States for analysis jobs."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalysisJob(SQLModel, table=True):
    """Queued card analysis job record.

    A row is ``processing`` only while a worker owns it; ``locked_by`` and
    ``locked_at`` are cleared whenever it leaves that state.
    """

    __tablename__ = "analysis_jobs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_type: JobType = Field(default=JobType.SINGLE)

    # Target: a card for single/reanalysis jobs, a deck for batch jobs
    card_id: str | None = Field(default=None, index=True)
    deck_id: str | None = Field(default=None, index=True)

    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    priority: int = Field(default=0)

    # Retry tracking
    attempt_count: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)

    # Worker claiming
    locked_by: str | None = Field(default=None, max_length=64, index=True)
    locked_at: datetime | None = Field(default=None)

    # Batch progress
    total_cards: int | None = Field(default=None)
    processed_cards: int = Field(default=0)
    failed_cards: int = Field(default=0)

    last_error: str | None = Field(default=None)
    user_id: str | None = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = Field(default=None)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        """Convert job to dictionary for API responses."""
        return {
            "job_id": str(self.id),
            "job_type": self.job_type.value,
            "status": self.status.value,
            "card_id": self.card_id,
            "deck_id": self.deck_id,
            "priority": self.priority,
            "attempt_count": self.attempt_count,
            "max_attempts": self.max_attempts,
            "locked_by": self.locked_by,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
            "total_cards": self.total_cards,
            "processed_cards": self.processed_cards,
            "failed_cards": self.failed_cards,
            "last_error": self.last_error,
            "user_id": self.user_id,
            "queued_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
