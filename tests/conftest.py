"""Pytest configuration and fixtures for card analysis tests."""

import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

# Set test environment variables BEFORE importing card_analysis modules
# This ensures the Settings singleton loads with test values
TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="card_analysis_test_"))
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_DIR / 'test.db'}"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["LOG_LEVEL"] = "DEBUG"

import pytest
from sqlalchemy import select, update
from sqlmodel import SQLModel

from card_analysis.db import get_engine, get_session, init_db
from card_analysis.models import AnalysisJob, Card, CardAnalysis
from card_analysis.services.job_queue import JobQueue


@pytest.fixture
async def db_engine():
    """Create tables on the test database; empty them after each test."""
    await init_db()
    engine = get_engine()

    yield engine

    async with engine.begin() as conn:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await conn.execute(table.delete())
    # Pooled connections must not outlive the test's event loop
    await engine.dispose()


@pytest.fixture
def queue() -> JobQueue:
    return JobQueue(max_attempts=3)


@pytest.fixture
def add_rows(db_engine):
    """Persist model instances in their own committed transaction."""

    async def _add(*rows):
        async with get_session() as session:
            session.add_all(rows)
        return rows

    return _add


@pytest.fixture
def fetch_job(db_engine):
    """Load the current state of a job in a fresh session."""

    async def _fetch(job_id) -> AnalysisJob:
        async with get_session() as session:
            return await session.get(AnalysisJob, job_id)

    return _fetch


@pytest.fixture
def fetch_analyses(db_engine):
    """Load every analysis row for a card, oldest version first."""

    async def _fetch(card_id: str) -> list[CardAnalysis]:
        async with get_session() as session:
            result = await session.execute(
                select(CardAnalysis)
                .where(CardAnalysis.card_id == card_id)
                .order_by(CardAnalysis.analysis_version)
            )
            return list(result.scalars().all())

    return _fetch


@pytest.fixture
def backdate_claim(db_engine):
    """Move a job's claim time into the past."""

    async def _backdate(job_id, minutes: int) -> None:
        async with get_session() as session:
            await session.execute(
                update(AnalysisJob)
                .where(AnalysisJob.id == job_id)
                .values(locked_at=datetime.utcnow() - timedelta(minutes=minutes))
            )

    return _backdate


@pytest.fixture
def math_card() -> Card:
    """A card with strong mathematics keyword evidence."""
    return Card(
        card_id="card_math",
        deck_id="deck_calculus",
        front_content="What is the derivative of a polynomial?",
        back_content="The derivative of a polynomial lowers each exponent by one.",
    )


@pytest.fixture
def ambiguous_card() -> Card:
    """A card with no domain keywords at all."""
    return Card(
        card_id="card_greeting",
        deck_id="deck_misc",
        front_content="Bonjour",
        back_content="Hello",
    )
