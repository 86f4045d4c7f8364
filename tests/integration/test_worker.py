"""Integration tests for the background analysis worker."""

import asyncio

import pytest
from sqlalchemy import update

from card_analysis.db import get_session
from card_analysis.models import AnalysisJob, JobStatus, JobType
from card_analysis.services.analysis import AnalysisService
from card_analysis.services.worker import AnalysisWorker
from tests.factories import AnalysisJobFactory, BatchJobFactory, CardFactory


class FlakyAnalysisService(AnalysisService):
    """Fails with a connection error for selected cards."""

    def __init__(self, failing_cards: set[str]):
        super().__init__()
        self.failing_cards = failing_cards

    async def analyze_card(self, session, card_id):
        if card_id in self.failing_cards:
            raise ConnectionError(f"connection reset while analyzing {card_id}")
        return await super().analyze_card(session, card_id)


class StoppingAnalysisService(AnalysisService):
    """Requests a worker stop after a fixed number of cards."""

    def __init__(self, stop_after: int):
        super().__init__()
        self.stop_after = stop_after
        self.worker: AnalysisWorker | None = None
        self.calls = 0

    async def analyze_card(self, session, card_id):
        record = await super().analyze_card(session, card_id)
        self.calls += 1
        if self.calls == self.stop_after:
            self.worker.request_stop()
        return record


class ProgressRecordingService(AnalysisService):
    """Records the stored progress of a job before each card is analyzed."""

    def __init__(self, job_id, fetch_job):
        super().__init__()
        self.job_id = job_id
        self.fetch_job = fetch_job
        self.seen: list[int] = []

    async def analyze_card(self, session, card_id):
        self.seen.append((await self.fetch_job(self.job_id)).processed_cards)
        return await super().analyze_card(session, card_id)


class ReclaimingAnalysisService(AnalysisService):
    """Hands the job to another worker during the first card, as the reaper would."""

    def __init__(self, job_id):
        super().__init__()
        self.job_id = job_id
        self.calls = 0

    async def analyze_card(self, session, card_id):
        self.calls += 1
        if self.calls == 1:
            async with get_session() as other:
                await other.execute(
                    update(AnalysisJob).where(AnalysisJob.id == self.job_id).values(locked_by="worker_other")
                )
        return await super().analyze_card(session, card_id)


@pytest.fixture
def make_worker(queue):
    def _make(analysis: AnalysisService | None = None, **kwargs) -> AnalysisWorker:
        options = {
            "worker_id": "worker_test",
            "poll_interval_seconds": 0.05,
            "batch_size": 10,
            "stale_check_interval_seconds": 60,
            "stale_minutes": 10,
            "progress_interval": 10,
            "queue": queue,
            "analysis": analysis or AnalysisService(),
        }
        options.update(kwargs)
        return AnalysisWorker(**options)

    return _make


class TestSingleJobs:
    """Tests for single-card and reanalysis jobs."""

    async def test_run_once_processes_single_job(self, make_worker, add_rows, math_card, fetch_job, fetch_analyses):
        (job,) = await add_rows(AnalysisJobFactory(card_id=math_card.card_id))
        await add_rows(math_card)

        processed = await make_worker().run_once()

        assert processed == 1
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.processed_cards == 1
        assert stored.failed_cards == 0
        assert stored.locked_by is None
        assert len(await fetch_analyses(math_card.card_id)) == 1

    async def test_run_once_empty_queue(self, make_worker, db_engine):
        assert await make_worker().run_once() == 0

    async def test_reanalysis_job_appends_version(self, make_worker, add_rows, math_card, fetch_analyses):
        await add_rows(math_card)
        await add_rows(
            AnalysisJobFactory(card_id=math_card.card_id),
            AnalysisJobFactory(card_id=math_card.card_id, job_type=JobType.REANALYSIS),
        )

        assert await make_worker().run_once() == 2

        versions = [a.analysis_version for a in await fetch_analyses(math_card.card_id)]
        assert versions == [1, 2]

    async def test_missing_card_fails_permanently(self, make_worker, add_rows, fetch_job):
        (job,) = await add_rows(AnalysisJobFactory(card_id="card_missing"))

        await make_worker().run_once()

        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.FAILED
        assert stored.attempt_count == 1
        assert stored.failed_cards == 1
        assert stored.last_error == "Card not found: card_missing"

    async def test_transient_failure_is_retried(self, make_worker, add_rows, math_card, fetch_job):
        """Test a connection error requeues the job until attempts run out."""
        await add_rows(math_card)
        (job,) = await add_rows(AnalysisJobFactory(card_id=math_card.card_id))
        worker = make_worker(FlakyAnalysisService({math_card.card_id}))

        await worker.run_once()
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.PENDING
        assert stored.attempt_count == 1
        assert stored.failed_cards == 0

        await worker.run_once()
        await worker.run_once()
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.FAILED
        assert stored.attempt_count == 3
        assert stored.failed_cards == 1
        assert await worker.run_once() == 0

    async def test_jobs_processed_in_claim_order(self, make_worker, add_rows, fetch_analyses):
        cards = CardFactory.build_batch(3, deck_id="deck_1")
        await add_rows(*cards)
        low, high = AnalysisJobFactory.build_batch(2)
        low.card_id = cards[0].card_id
        high.card_id = cards[1].card_id
        high.priority = 5
        await add_rows(low, high)

        assert await make_worker(batch_size=1).run_once() == 1
        assert len(await fetch_analyses(cards[1].card_id)) == 1
        assert await fetch_analyses(cards[0].card_id) == []


class TestBatchJobs:
    """Tests for deck batch jobs."""

    async def test_batch_job_analyzes_every_card(self, make_worker, add_rows, fetch_job, fetch_analyses):
        cards = CardFactory.build_batch(5, deck_id="deck_bio", domain="sciences")
        await add_rows(*cards)
        (job,) = await add_rows(BatchJobFactory(deck_id="deck_bio", total_cards=5))

        await make_worker().run_once()

        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.processed_cards == 5
        assert stored.failed_cards == 0
        for card in cards:
            assert len(await fetch_analyses(card.card_id)) == 1

    async def test_card_failures_do_not_fail_batch(self, make_worker, add_rows, fetch_job, fetch_analyses):
        cards = CardFactory.build_batch(4, deck_id="deck_mixed")
        await add_rows(*cards)
        (job,) = await add_rows(BatchJobFactory(deck_id="deck_mixed", total_cards=4))
        failing = {cards[1].card_id, cards[3].card_id}

        await make_worker(FlakyAnalysisService(failing)).run_once()

        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.processed_cards == 2
        assert stored.failed_cards == 2
        assert await fetch_analyses(cards[1].card_id) == []
        assert len(await fetch_analyses(cards[0].card_id)) == 1

    async def test_empty_deck_fails_permanently(self, make_worker, add_rows, fetch_job):
        (job,) = await add_rows(BatchJobFactory(deck_id="deck_empty", total_cards=3))

        await make_worker().run_once()

        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.FAILED
        assert stored.last_error == "Deck not found: deck_empty"

    async def test_progress_checkpoints(self, make_worker, add_rows, fetch_job):
        """Test progress is saved at the interval while the job is still running."""
        cards = CardFactory.build_batch(5, deck_id="deck_progress")
        await add_rows(*cards)
        (job,) = await add_rows(BatchJobFactory(deck_id="deck_progress", total_cards=5))
        analysis = ProgressRecordingService(job.id, fetch_job)

        await make_worker(analysis, progress_interval=2).run_once()

        # Checkpoints land after cards 2 and 4; the final count on completion
        assert analysis.seen == [0, 0, 2, 2, 4]
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.processed_cards == 5

    async def test_reclaimed_batch_is_abandoned(self, make_worker, add_rows, fetch_job):
        """Test a worker stops a batch, and leaves its counters alone, once another worker owns it."""
        cards = CardFactory.build_batch(3, deck_id="deck_reclaimed")
        await add_rows(*cards)
        (job,) = await add_rows(BatchJobFactory(deck_id="deck_reclaimed", total_cards=3))
        analysis = ReclaimingAnalysisService(job.id)

        await make_worker(analysis, progress_interval=1).run_once()

        assert analysis.calls == 1
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.PROCESSING
        assert stored.locked_by == "worker_other"
        assert stored.processed_cards == 0

    async def test_stop_mid_batch_releases_job(self, make_worker, add_rows, fetch_job, fetch_analyses):
        """Test a stop request ends the batch at a card boundary and requeues it."""
        cards = CardFactory.build_batch(5, deck_id="deck_stop")
        await add_rows(*cards)
        (job,) = await add_rows(BatchJobFactory(deck_id="deck_stop", total_cards=5))
        analysis = StoppingAnalysisService(stop_after=2)
        worker = make_worker(analysis)
        analysis.worker = worker

        await worker.run_once()

        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.PROCESSING
        assert stored.locked_by == "worker_test"
        assert stored.processed_cards == 2
        assert analysis.calls == 2

        assert await worker.release_owned_jobs() == 1
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.PENDING
        assert stored.locked_by is None
        assert stored.attempt_count == 0


class TestLifecycle:
    """Tests for starting and stopping the worker loops."""

    async def test_start_processes_and_stop_releases(self, make_worker, add_rows, math_card, fetch_job):
        await add_rows(math_card)
        (job,) = await add_rows(AnalysisJobFactory(card_id=math_card.card_id))
        worker = make_worker()

        worker.start()
        assert worker.is_running
        for _ in range(100):
            if (await fetch_job(job.id)).status == JobStatus.COMPLETED:
                break
            await asyncio.sleep(0.05)
        await worker.stop()

        assert not worker.is_running
        assert worker.stopping
        assert (await fetch_job(job.id)).status == JobStatus.COMPLETED

    async def test_start_is_idempotent(self, make_worker, db_engine):
        worker = make_worker()

        worker.start()
        task = worker._poll_task
        worker.start()
        assert worker._poll_task is task

        await worker.stop()
        assert not worker.is_running

    async def test_stop_releases_claimed_jobs(self, make_worker, add_rows, fetch_job, queue):
        (job,) = await add_rows(AnalysisJobFactory())
        async with get_session() as session:
            await queue.claim(session, "worker_test", 10)

        await make_worker(poll_interval_seconds=60).stop()

        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.PENDING
        assert stored.locked_by is None

    async def test_reaper_releases_stale_jobs(self, make_worker, add_rows, fetch_job, backdate_claim, queue):
        (job,) = await add_rows(AnalysisJobFactory())
        async with get_session() as session:
            await queue.claim(session, "worker_dead", 10)
        await backdate_claim(job.id, minutes=11)

        assert await make_worker().release_stale_jobs() == 1
        stored = await fetch_job(job.id)
        assert stored.status == JobStatus.PENDING
        assert stored.locked_by is None

    def test_default_worker_id(self):
        worker = AnalysisWorker()
        assert worker.worker_id.startswith("worker_")
        assert worker.worker_id != AnalysisWorker().worker_id
