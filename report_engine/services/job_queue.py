"""Durable at-least-once work queue backed by the ``report_jobs`` table."""

import logging
from typing import Callable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from report_engine.database import utcnow
from report_engine.models.job import JOB_CLAIMED, JOB_QUEUED, QueueJob

logger = logging.getLogger(__name__)


class JobQueue:
    """Enqueue/claim/delete/release over a SQL table.

    Claimed jobs stay in the table until deleted, so a crashed worker's job
    can be released back for redelivery.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def enqueue(self, kind: str, subject: str, record_id) -> QueueJob:
        with self._session_factory() as db:
            job = QueueJob(kind=kind, subject=str(subject), record_id=record_id, status=JOB_QUEUED)
            db.add(job)
            db.commit()
            db.refresh(job)
        logger.info(f"Enqueued job {job.job_id} ({kind}, subject {subject}, record {record_id})")
        return job

    def claim(self) -> Optional[QueueJob]:
        """Claim the oldest queued job, or None if the queue is empty."""
        with self._session_factory() as db:
            job = (
                db.query(QueueJob)
                .filter(QueueJob.status == JOB_QUEUED)
                .order_by(QueueJob.created_at)
                .with_for_update(skip_locked=True)
                .first()
            )
            if job is None:
                return None
            job.status = JOB_CLAIMED
            job.claimed_at = utcnow()
            job.attempts = (job.attempts or 0) + 1
            db.commit()
            db.refresh(job)
            return job

    def delete(self, job: QueueJob) -> None:
        with self._session_factory() as db:
            db.query(QueueJob).filter(QueueJob.job_id == job.job_id).delete(synchronize_session=False)
            db.commit()

    def release(self, job: QueueJob, error: Optional[str] = None) -> None:
        """Make a claimed job visible again for redelivery."""
        with self._session_factory() as db:
            db.query(QueueJob).filter(QueueJob.job_id == job.job_id).update(
                {"status": JOB_QUEUED, "claimed_at": None, "last_error": error},
                synchronize_session=False,
            )
            db.commit()
        logger.warning(f"Released job {job.job_id} back to the queue")

    def count(self) -> int:
        """Number of jobs waiting to be claimed."""
        with self._session_factory() as db:
            return db.query(func.count(QueueJob.job_id)).filter(QueueJob.status == JOB_QUEUED).scalar() or 0
