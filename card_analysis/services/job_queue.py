"""Shared work queue for analysis jobs.

Workers coordinate only through this table. Claiming is a single UPDATE over
a ``FOR UPDATE SKIP LOCKED`` subquery, so concurrent claimers receive
disjoint rows and never wait on rows another worker is taking.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from card_analysis.config import settings
from card_analysis.errors import DeckNotFoundError, is_retryable_error
from card_analysis.models import (
    AnalysisJob,
    Card,
    CardAnalysis,
    ContentDomain,
    JobStatus,
    JobType,
)

logger = logging.getLogger(__name__)


class JobQueue:
    """Enqueue, claim and resolve analysis jobs."""

    def __init__(self, max_attempts: int = settings.analysis_max_attempts):
        self.max_attempts = max_attempts

    # ------------------------------------------------------------------
    # Enqueueing
    # ------------------------------------------------------------------

    async def enqueue_single(
        self,
        session: AsyncSession,
        card_id: str,
        user_id: str | None = None,
        priority: int = 0,
        job_type: JobType = JobType.SINGLE,
    ) -> AnalysisJob:
        """Queue one card for background analysis."""
        job = AnalysisJob(
            job_type=job_type,
            card_id=card_id,
            priority=priority,
            max_attempts=self.max_attempts,
            user_id=user_id,
        )
        session.add(job)
        await session.flush()
        return job

    async def enqueue_batch(
        self,
        session: AsyncSession,
        deck_id: str,
        user_id: str | None = None,
        priority: int = 0,
    ) -> AnalysisJob:
        """Queue every card in a deck as one batch job.

        Raises:
            DeckNotFoundError: The deck has no cards in the content store.
        """
        total = await session.execute(
            select(func.count()).select_from(Card).where(Card.deck_id == deck_id)
        )
        total_cards = total.scalar() or 0
        if total_cards == 0:
            raise DeckNotFoundError(deck_id)

        job = AnalysisJob(
            job_type=JobType.BATCH,
            deck_id=deck_id,
            total_cards=total_cards,
            priority=priority,
            max_attempts=self.max_attempts,
            user_id=user_id,
        )
        session.add(job)
        await session.flush()
        return job

    async def enqueue_reanalysis(
        self,
        session: AsyncSession,
        domain: ContentDomain | None = None,
        before_date: datetime | None = None,
        min_version: int | None = None,
        user_id: str | None = None,
        priority: int = settings.analysis_reanalysis_priority,
    ) -> list[AnalysisJob]:
        """Queue a reanalysis job for every card matching the filters.

        Filters apply to any stored analysis of the card: ``domain`` matches
        the detected domain, ``before_date`` matches analyses created before
        it, ``min_version`` matches versions below it. With no filters every
        card is queued.
        """
        stmt = (
            select(Card.card_id)
            .distinct()
            .outerjoin(CardAnalysis, CardAnalysis.card_id == Card.card_id)
            .order_by(Card.card_id)
        )
        if domain:
            stmt = stmt.where(CardAnalysis.detected_domain == ContentDomain(domain))
        if before_date:
            stmt = stmt.where(CardAnalysis.created_at < before_date)
        if min_version:
            stmt = stmt.where(CardAnalysis.analysis_version < min_version)

        card_ids = (await session.execute(stmt)).scalars().all()

        jobs = [
            AnalysisJob(
                job_type=JobType.REANALYSIS,
                card_id=card_id,
                priority=priority,
                max_attempts=self.max_attempts,
                user_id=user_id,
            )
            for card_id in card_ids
        ]
        session.add_all(jobs)
        await session.flush()

        logger.info("Queued %d cards for reanalysis", len(jobs))
        return jobs

    # ------------------------------------------------------------------
    # Claim protocol
    # ------------------------------------------------------------------

    async def claim(self, session: AsyncSession, worker_id: str, batch_size: int) -> list[AnalysisJob]:
        """Atomically claim up to ``batch_size`` pending jobs for a worker.

        Jobs are taken by priority (highest first), then FIFO. Rows locked by
        another claimer are skipped rather than waited on.
        """
        result = await session.execute(self._claim_statement(worker_id, batch_size, datetime.utcnow()))
        claimed_ids = list(result.scalars().all())
        if not claimed_ids:
            return []

        jobs = await session.execute(
            select(AnalysisJob)
            .where(AnalysisJob.id.in_(claimed_ids))
            .order_by(AnalysisJob.priority.desc(), AnalysisJob.created_at)
            .execution_options(populate_existing=True)
        )
        return list(jobs.scalars().all())

    @staticmethod
    def _claim_statement(worker_id: str, batch_size: int, now: datetime):
        """UPDATE ... WHERE id IN (SELECT ... FOR UPDATE SKIP LOCKED) RETURNING id."""
        candidates = (
            select(AnalysisJob.id)
            .where(
                AnalysisJob.status == JobStatus.PENDING,
                AnalysisJob.attempt_count < AnalysisJob.max_attempts,
            )
            .order_by(AnalysisJob.priority.desc(), AnalysisJob.created_at)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        return (
            update(AnalysisJob)
            .where(AnalysisJob.id.in_(candidates))
            .values(
                status=JobStatus.PROCESSING,
                locked_by=worker_id,
                locked_at=now,
                updated_at=now,
            )
            .returning(AnalysisJob.id)
            .execution_options(synchronize_session=False)
        )

    async def complete(
        self,
        session: AsyncSession,
        job_id: UUID,
        success: bool,
        error: BaseException | None = None,
        processed: int | None = None,
        failed: int | None = None,
        worker_id: str | None = None,
    ) -> bool:
        """Resolve a claimed job.

        Success marks it completed. A failure consumes one attempt; the job
        fails permanently when the error is not retryable or the attempt
        budget is spent, and otherwise returns to ``pending`` immediately.
        When ``worker_id`` is given, a job no longer owned by that worker is
        left untouched.

        Returns:
            True if the job was updated.
        """
        result = await session.execute(
            select(AnalysisJob).where(AnalysisJob.id == job_id).with_for_update()
        )
        job = result.scalar_one_or_none()
        if job is None:
            logger.warning("Cannot complete job %s: not found", job_id)
            return False
        if worker_id is not None and job.locked_by != worker_id:
            logger.warning(
                "Job %s is no longer owned by %s (owner: %s), skipping completion",
                job_id,
                worker_id,
                job.locked_by,
            )
            return False

        now = datetime.utcnow()
        job.locked_by = None
        job.locked_at = None
        job.updated_at = now

        if success:
            job.status = JobStatus.COMPLETED
            self._set_counters(job, processed, failed)
            job.completed_at = now
            job.last_error = None
        else:
            job.attempt_count += 1
            job.last_error = str(error) if error is not None else None
            retryable = error is None or is_retryable_error(error)
            if not retryable or job.attempt_count >= job.max_attempts:
                job.status = JobStatus.FAILED
                self._set_counters(job, processed, failed)
                logger.error(
                    "Job %s failed permanently after %d attempt(s): %s",
                    job_id,
                    job.attempt_count,
                    job.last_error,
                )
            else:
                # TODO: add a retry delay (e.g. a not_before column) to avoid hot-looping on transient failures
                job.status = JobStatus.PENDING
                logger.warning(
                    "Job %s will be retried (attempt %d of %d): %s",
                    job_id,
                    job.attempt_count,
                    job.max_attempts,
                    job.last_error,
                )

        await session.flush()
        return True

    @staticmethod
    def _set_counters(job: AnalysisJob, processed: int | None, failed: int | None) -> None:
        # Final counters only; a requeued job keeps its last checkpoint
        if processed is not None:
            job.processed_cards = processed
        if failed is not None:
            job.failed_cards = failed

    async def update_progress(
        self,
        session: AsyncSession,
        job_id: UUID,
        processed: int,
        failed: int,
        worker_id: str | None = None,
    ) -> bool:
        """Checkpoint batch job counters.

        When ``worker_id`` is given, only a job still owned by that worker is
        updated.

        Returns:
            True if the job was updated.
        """
        stmt = update(AnalysisJob).where(AnalysisJob.id == job_id)
        if worker_id is not None:
            stmt = stmt.where(AnalysisJob.locked_by == worker_id)
        result = await session.execute(
            stmt
            .values(processed_cards=processed, failed_cards=failed, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            logger.warning("Progress of job %s not saved: missing or not owned by %s", job_id, worker_id)
            return False
        return True

    async def release_stale(self, session: AsyncSession, max_age_minutes: int) -> int:
        """Return jobs claimed longer than ``max_age_minutes`` ago to the queue."""
        now = datetime.utcnow()
        cutoff = now - timedelta(minutes=max_age_minutes)
        result = await session.execute(
            update(AnalysisJob)
            .where(
                AnalysisJob.status == JobStatus.PROCESSING,
                AnalysisJob.locked_at < cutoff,
            )
            .values(status=JobStatus.PENDING, locked_by=None, locked_at=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def release_owned(self, session: AsyncSession, worker_id: str) -> int:
        """Return every job held by ``worker_id`` to the queue."""
        result = await session.execute(
            update(AnalysisJob)
            .where(
                AnalysisJob.status == JobStatus.PROCESSING,
                AnalysisJob.locked_by == worker_id,
            )
            .values(
                status=JobStatus.PENDING,
                locked_by=None,
                locked_at=None,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def get_job(self, session: AsyncSession, job_id: UUID) -> AnalysisJob | None:
        return await session.get(AnalysisJob, job_id)

    async def get_backlog(self, session: AsyncSession) -> dict:
        """Count jobs by status, and by status within each job type."""
        result = await session.execute(
            select(AnalysisJob.status, AnalysisJob.job_type, func.count())
            .group_by(AnalysisJob.status, AnalysisJob.job_type)
        )

        summary: dict = {status.value: 0 for status in JobStatus}
        by_type: dict[str, dict[str, int]] = {}
        for status, job_type, count in result:
            summary[status.value] += count
            counts = by_type.setdefault(job_type.value, {s.value: 0 for s in JobStatus})
            counts[status.value] = count

        summary["by_type"] = by_type
        return summary


# Global singleton
job_queue = JobQueue()
