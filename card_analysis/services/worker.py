"""Background worker that claims and processes analysis jobs."""

import asyncio
import logging
import signal
from contextlib import suppress
from uuid import uuid4

from sqlalchemy import select

from card_analysis.config import settings
from card_analysis.db import get_session
from card_analysis.errors import DeckNotFoundError, UnknownJobTypeError
from card_analysis.models import AnalysisJob, Card, JobType
from card_analysis.services.analysis import AnalysisService, analysis_service
from card_analysis.services.job_queue import JobQueue, job_queue

logger = logging.getLogger(__name__)


class AnalysisWorker:
    """Polls the job queue and processes claimed jobs one at a time.

    Two tasks run per worker: the poll loop and the staleness reaper. Both
    wait on the same stop event, so ``stop()`` ends the ticking, lets the
    in-flight job reach a card or job boundary, and then hands any jobs this
    worker still owns back to the queue.
    """

    def __init__(
        self,
        worker_id: str | None = None,
        poll_interval_seconds: float = settings.analysis_poll_interval_seconds,
        batch_size: int = settings.analysis_batch_size,
        stale_check_interval_seconds: float = settings.analysis_stale_check_interval_seconds,
        stale_minutes: int = settings.analysis_stale_minutes,
        progress_interval: int = settings.analysis_batch_progress_interval,
        queue: JobQueue = job_queue,
        analysis: AnalysisService = analysis_service,
    ):
        self.worker_id = worker_id or settings.analysis_worker_id or f"worker_{uuid4().hex}"
        self._poll_interval_seconds = poll_interval_seconds
        self._batch_size = batch_size
        self._stale_check_interval_seconds = stale_check_interval_seconds
        self._stale_minutes = stale_minutes
        self._progress_interval = max(1, progress_interval)
        self._queue = queue
        self._analysis = analysis

        self._stop_event = asyncio.Event()
        self._poll_task: asyncio.Task | None = None
        self._reaper_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the poll loop and the staleness reaper."""
        if self.is_running:
            logger.info("Worker %s already running", self.worker_id)
            return

        self._stop_event.clear()
        loop = asyncio.get_running_loop()
        self._poll_task = loop.create_task(self._poll_loop(), name=f"analysis-poll-{self.worker_id}")
        self._reaper_task = loop.create_task(self._reaper_loop(), name=f"analysis-reaper-{self.worker_id}")
        logger.info("Started analysis worker %s", self.worker_id)

    def request_stop(self) -> None:
        """Ask the loops to finish at the next job or card boundary."""
        self._stop_event.set()

    async def stop(self) -> None:
        """Stop gracefully and release jobs still held by this worker."""
        logger.info("Stopping analysis worker %s", self.worker_id)
        self.request_stop()

        # The in-flight job finishes at its next job or card boundary
        if self._poll_task is not None:
            await self._poll_task
            self._poll_task = None

        if self._reaper_task is not None:
            self._reaper_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._reaper_task
            self._reaper_task = None

        await self.release_owned_jobs()
        logger.info("Stopped analysis worker %s", self.worker_id)

    async def run_forever(self) -> None:
        """Run until SIGINT or SIGTERM arrives, then stop gracefully."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.request_stop)

        self.start()
        try:
            await self._stop_event.wait()
            logger.info("Termination signal received by worker %s", self.worker_id)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.stop()

    async def _wait(self, seconds: float) -> bool:
        """Sleep until the next tick or a stop request. Returns True when stopping."""
        with suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        return self._stop_event.is_set()

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Error in poll cycle of worker %s", self.worker_id)
            if await self._wait(self._poll_interval_seconds):
                break

    async def _reaper_loop(self) -> None:
        while not await self._wait(self._stale_check_interval_seconds):
            try:
                await self.release_stale_jobs()
            except Exception:
                logger.exception("Error releasing stale jobs")

    async def run_once(self) -> int:
        """Claim one batch and process it sequentially. Returns jobs processed."""
        async with get_session() as session:
            jobs = await self._queue.claim(session, self.worker_id, self._batch_size)

        if not jobs:
            return 0

        logger.info("Worker %s claimed %d job(s)", self.worker_id, len(jobs))

        processed = 0
        for job in jobs:
            if self._stop_event.is_set():
                break
            await self.process_job(job)
            processed += 1
        return processed

    async def process_job(self, job: AnalysisJob) -> None:
        """Process one claimed job. Failures are resolved, never raised."""
        logger.info("Processing job %s (type: %s)", job.id, job.job_type.value)
        try:
            if job.job_type in (JobType.SINGLE, JobType.REANALYSIS):
                await self._process_card_job(job)
            elif job.job_type == JobType.BATCH:
                await self._process_batch_job(job)
            else:
                raise UnknownJobTypeError(str(job.job_type))
        except Exception as exc:
            logger.exception("Error processing job %s", job.id)
            try:
                await self._complete(job, success=False, error=exc)
            except Exception:
                logger.exception("Could not record failure of job %s", job.id)

    async def _process_card_job(self, job: AnalysisJob) -> None:
        try:
            async with get_session() as session:
                record = await self._analysis.analyze_card(session, job.card_id)
        except Exception as exc:
            logger.warning("Analysis of card %s failed: %s", job.card_id, exc)
            await self._complete(job, success=False, error=exc, processed=0, failed=1)
            return

        logger.info(
            "Analyzed card %s: version %d, domain %s",
            job.card_id,
            record.analysis_version,
            record.detected_domain.value,
        )
        await self._complete(job, success=True, processed=1, failed=0)

    async def _process_batch_job(self, job: AnalysisJob) -> None:
        logger.info("Processing batch job %s for deck %s (%s cards)", job.id, job.deck_id, job.total_cards)
        processed = 0
        failed = 0

        try:
            async with get_session() as session:
                result = await session.execute(
                    select(Card.card_id).where(Card.deck_id == job.deck_id).order_by(Card.card_id)
                )
                card_ids = list(result.scalars().all())
            if not card_ids:
                raise DeckNotFoundError(job.deck_id)

            for card_id in card_ids:
                if self._stop_event.is_set():
                    await self._save_progress(job, processed, failed)
                    logger.info(
                        "Stop requested during batch job %s after %d card(s)",
                        job.id,
                        processed + failed,
                    )
                    return

                try:
                    async with get_session() as session:
                        await self._analysis.analyze_card(session, card_id)
                    processed += 1
                except Exception as exc:
                    logger.warning("Failed to analyze card %s in job %s: %s", card_id, job.id, exc)
                    failed += 1

                if (processed + failed) % self._progress_interval == 0:
                    if not await self._save_progress(job, processed, failed):
                        logger.warning("Batch job %s was reclaimed by another worker, abandoning it", job.id)
                        return
        except Exception as exc:
            await self._complete(job, success=False, error=exc, processed=processed, failed=failed)
            return

        await self._complete(job, success=True, processed=processed, failed=failed)
        logger.info("Completed batch job %s: %d processed, %d failed", job.id, processed, failed)

    async def _save_progress(self, job: AnalysisJob, processed: int, failed: int) -> bool:
        async with get_session() as session:
            return await self._queue.update_progress(session, job.id, processed, failed, worker_id=self.worker_id)

    async def _complete(
        self,
        job: AnalysisJob,
        success: bool,
        error: BaseException | None = None,
        processed: int | None = None,
        failed: int | None = None,
    ) -> bool:
        async with get_session() as session:
            updated = await self._queue.complete(
                session,
                job.id,
                success,
                error=error,
                processed=processed,
                failed=failed,
                worker_id=self.worker_id,
            )
        if updated and success:
            logger.info("Completed job %s", job.id)
        return updated

    async def release_stale_jobs(self) -> int:
        """Staleness reaper sweep: requeue jobs abandoned by any worker."""
        async with get_session() as session:
            released = await self._queue.release_stale(session, self._stale_minutes)
        if released:
            logger.info("Released %d stale job(s)", released)
        return released

    async def release_owned_jobs(self) -> int:
        """Requeue every job this worker still holds."""
        async with get_session() as session:
            released = await self._queue.release_owned(session, self.worker_id)
        if released:
            logger.info("Released %d job(s) held by worker %s", released, self.worker_id)
        return released
