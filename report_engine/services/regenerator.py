"""Bulk regeneration, deletion and statistics of a subject's reports."""

import logging
from typing import Iterable, Optional

from report_engine.errors import InsufficientData, ReportError, UnknownReportKind
from report_engine.schemas.report import RegenerationResult, UserStats
from report_engine.services.orchestrator import ReportOrchestrator

logger = logging.getLogger(__name__)


class SubjectReportRegenerator:
    """Administrative operations over every report kind of one subject."""

    def __init__(self, orchestrator: ReportOrchestrator):
        self.orchestrator = orchestrator

    def regenerate(self, subject, kinds: Optional[Iterable[str]] = None, queue: bool = True) -> RegenerationResult:
        """
        Regenerate reports for a subject.

        Args:
            subject: Subject identifier
            kinds: Kinds to regenerate (all registered kinds when empty)
            queue: Enqueue for the worker instead of generating inline

        Returns:
            Per-kind outcome; kinds lacking required inputs are skipped
        """
        subject = str(subject)
        kinds = list(kinds or self.orchestrator.registry.kinds())
        result = RegenerationResult()

        logger.info(
            f"Starting report regeneration for subject {subject}. "
            f"Kinds: {', '.join(kinds)}. Queue mode: {'yes' if queue else 'no'}"
        )

        for kind in kinds:
            try:
                if not self.orchestrator.has_minimum_data(subject, kind):
                    result.skipped[kind] = "Insufficient data"
                    logger.info(f"Skipping {kind} for subject {subject} - insufficient data")
                    continue

                if queue:
                    queued = self.orchestrator.enqueue_generation(subject, kind)
                    logger.info(f"Queued {kind} report for subject {subject} (record {queued.record_id})")
                else:
                    report = self.orchestrator.generate_or_fetch(subject, kind, force_regenerate=True)
                    logger.info(f"Generated {kind} report version {report.version} for subject {subject}")
                result.success.append(kind)
            except UnknownReportKind as e:
                result.failed[kind] = str(e)
                logger.warning(f"Report kind not found: {kind}")
            except InsufficientData:
                result.skipped[kind] = "Insufficient data"
            except ReportError as e:
                result.failed[kind] = e.user_message
                logger.error(f"Error regenerating {kind} report for subject {subject}: {e}")

        logger.info(
            f"Regeneration for subject {subject} finished: {len(result.success)} succeeded, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped"
        )
        return result

    def delete(self, subject, kinds: Optional[Iterable[str]] = None) -> int:
        """Delete every record of the given kinds (all kinds when empty)."""
        subject = str(subject)
        store = self.orchestrator.store

        if not kinds:
            count = store.delete_for_subject(subject)
        else:
            count = sum(store.delete_for_subject(subject, kind) for kind in kinds)

        self.orchestrator.invalidate_subject(subject)
        logger.info(f"Deleted {count} reports for subject {subject}")
        return count

    def statistics(self, subject) -> UserStats:
        return self.orchestrator.store.statistics_for_subject(str(subject))
