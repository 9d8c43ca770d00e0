"""Background worker for processing queued report generations."""

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from report_engine.database import utcnow
from report_engine.errors import ReportError, StoreUnavailable
from report_engine.services.job_queue import JobQueue
from report_engine.services.orchestrator import ReportOrchestrator
from report_engine.services.report_store import ReportStore

logger = logging.getLogger(__name__)


@dataclass
class WorkerSummary:
    """Outcome of one drain of the queue."""

    processed: int = 0
    failed: int = 0
    skipped: int = 0
    remaining: int = 0


class QueueWorker:
    """Claims queued jobs and runs them through the orchestrator."""

    def __init__(
        self,
        orchestrator: ReportOrchestrator,
        queue: JobQueue,
        store: ReportStore,
        poll_interval: float = 5,
        stale_after_seconds: int = 1800,
    ):
        """Initialize worker."""
        self.orchestrator = orchestrator
        self.queue = queue
        self.store = store
        self.poll_interval = poll_interval
        self.stale_after_seconds = stale_after_seconds

    def process(self, limit: Optional[int] = None) -> WorkerSummary:
        """
        Drain the queue.

        Args:
            limit: Maximum number of jobs to handle (None drains everything)

        Returns:
            Counts of processed, failed and skipped jobs plus the queue depth
        """
        summary = WorkerSummary()
        self.store.fail_stale_processing(utcnow() - timedelta(seconds=self.stale_after_seconds))

        # Released jobs become claimable again; handle each at most once per drain
        seen: Set = set()
        handled = 0
        while limit is None or handled < limit:
            job = self.queue.claim()
            if job is None:
                break
            if job.job_id in seen:
                self.queue.release(job, job.last_error)
                break
            seen.add(job.job_id)
            handled += 1
            self.process_job(job, summary)

        summary.remaining = self.queue.count()
        logger.info(
            f"Queue drain finished: {summary.processed} processed, {summary.failed} failed, "
            f"{summary.skipped} skipped, {summary.remaining} remaining"
        )
        return summary

    def process_job(self, job, summary: WorkerSummary) -> None:
        """Process a single job."""
        logger.info(f"Processing job {job.job_id} ({job.kind}, subject {job.subject}, attempt {job.attempts})")

        try:
            report = self.orchestrator.process_queued(job)
        except StoreUnavailable as e:
            logger.error(f"Job {job.job_id} could not claim its record: {e}")
            self.queue.release(job, str(e))
            summary.failed += 1
            return
        except ReportError as e:
            # The record is already persisted as failed; redelivery cannot help
            logger.error(f"Job {job.job_id} failed with {e.code}: {e}")
            self.queue.delete(job)
            summary.failed += 1
            return
        except Exception as e:
            logger.error(f"Job {job.job_id} crashed: {e}", exc_info=True)
            self.queue.release(job, str(e))
            summary.failed += 1
            return

        self.queue.delete(job)
        if report is None:
            summary.skipped += 1
        else:
            summary.processed += 1
            logger.info(f"Job {job.job_id} published version {report.version}")

    def wait_for_database(self, max_wait: int = 60) -> None:
        """Block until the queue table is reachable or ``max_wait`` elapses."""
        logger.info("Worker started - waiting for database to be ready...")
        waited = 0
        while waited < max_wait:
            try:
                self.queue.count()
                logger.info("Database is ready, starting worker loop")
                return
            except SQLAlchemyError as e:
                logger.info(f"Waiting for migrations to complete... ({waited}s): {e}")
                time.sleep(2)
                waited += 2

        logger.error(f"Database not ready after {max_wait} seconds, starting anyway...")

    def run(self, stop_event=None):
        """Main worker loop.

        Args:
            stop_event: Optional threading.Event to signal worker to stop
        """
        self.wait_for_database()

        while True:
            if stop_event and stop_event.is_set():
                logger.info("Worker stop signal received")
                break

            try:
                summary = self.process()
                if summary.processed + summary.skipped == 0:
                    self._sleep(stop_event)
            except KeyboardInterrupt:
                logger.info("Worker shutting down")
                break
            except Exception as e:
                logger.error(f"Worker error: {e}", exc_info=True)
                self._sleep(stop_event)

    def _sleep(self, stop_event) -> None:
        if stop_event is not None:
            stop_event.wait(self.poll_interval)
        else:
            time.sleep(self.poll_interval)


def build_worker(engine) -> QueueWorker:
    return QueueWorker(
        engine.orchestrator,
        engine.queue,
        engine.store,
        poll_interval=engine.settings.WORKER_POLL_INTERVAL,
        stale_after_seconds=engine.settings.PROCESSING_STALE_SECONDS,
    )


def worker_loop(engine, stop_event=None):
    """Run worker loop (for use as background thread).

    Args:
        engine: Process engine built by ``build_engine``
        stop_event: Optional threading.Event to signal worker to stop
    """
    build_worker(engine).run(stop_event=stop_event)


def main():
    """Entry point for standalone worker."""
    from report_engine.bootstrap import build_engine, configure_logging

    configure_logging()
    engine = build_engine()
    try:
        build_worker(engine).run()
    finally:
        engine.close()


if __name__ == "__main__":
    main()
