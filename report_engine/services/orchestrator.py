"""Report generation orchestrator.

Composes the input collector, content hasher, kind strategies, AI client,
report store, fast cache and job queue into the synchronous
``generate_or_fetch`` path and the asynchronous ``enqueue_generation`` /
``process_queued`` path.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from report_engine.database import utcnow
from report_engine.errors import InsufficientData, ParseError, ReportError, StoreUnavailable, UnexpectedError
from report_engine.kinds.base import KindRegistry, ReportKind
from report_engine.models.report import (
    STATUS_ARCHIVED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_PUBLISHED,
)
from report_engine.schemas.report import (
    EnqueueResult,
    RecordExport,
    Report,
    ReportStatus,
    ReportSummary,
    ReportVersionInfo,
    SubjectExport,
    VersionComparison,
)
from report_engine.services.cache import (
    ReportCache,
    listing_key,
    listing_tag,
    listing_tags,
    report_key,
    report_tags,
    subject_tag,
)
from report_engine.services.hashing import compute_source_hash
from report_engine.services.input_collector import InputCollector
from report_engine.services.job_queue import JobQueue
from report_engine.services.json_extraction import extract_json
from report_engine.services.llm_client import AIClientAdapter
from report_engine.services.report_store import GenerationMeta, ReportStore

logger = logging.getLogger(__name__)

_LISTING = TypeAdapter(List[ReportSummary])


class ReportOrchestrator:
    """Generate, cache, version and queue reports."""

    def __init__(
        self,
        store: ReportStore,
        cache: ReportCache,
        queue: JobQueue,
        ai_client: AIClientAdapter,
        collector: InputCollector,
        registry: KindRegistry,
        *,
        keep_count: int = 5,
        archive_cap: int = 20,
    ):
        self.store = store
        self.cache = cache
        self.queue = queue
        self.ai_client = ai_client
        self.collector = collector
        self.registry = registry
        self.keep_count = keep_count
        self.archive_cap = archive_cap

    # -- synchronous path ----------------------------------------------------

    def generate_or_fetch(self, subject, kind: str, force_regenerate: bool = False) -> Report:
        """
        Return the current report, generating a new version when inputs changed.

        A cached or stored report is only reused when its source hash matches
        the hash of the current inputs, so editing a form always leads to a
        new version on the next call.

        Raises:
            UnknownReportKind: If the kind is not registered
            InsufficientData: If a required input is missing
            GenerationTimeout, ParseError, UnexpectedError: Generation failed
        """
        report_kind = self.registry.get(kind)
        subject = str(subject)

        try:
            inputs, input_ids = self._collect_inputs(report_kind, subject)
            source_hash = compute_source_hash(inputs)

            if not force_regenerate:
                cached = self._cache_get(kind, subject)
                if cached is not None and cached.source_hash == source_hash:
                    logger.info(f"Cache hit for {kind}/{subject}")
                    return cached

                current = self.store.load_current(subject, kind)
                if current is not None and current.source_hash == source_hash:
                    logger.info(f"Inputs unchanged for {kind}/{subject}, returning version {current.version}")
                    report = Report.from_record(current)
                    self._cache_put(report)
                    return report

            logger.info(
                f"Generating {kind} for subject {subject} "
                f"({'forced' if force_regenerate else 'inputs changed or no report'})"
            )
            meta, payload = self._run_cycle(report_kind, subject, inputs, input_ids, source_hash)

            if not force_regenerate:
                # Another caller may have published the same inputs meanwhile
                current = self.store.load_current(subject, kind)
                if current is not None and current.source_hash == source_hash:
                    logger.info(f"Version {current.version} of {kind}/{subject} was published concurrently")
                    report = Report.from_record(current)
                    self._cache_put(report)
                    return report

            record = self.store.save_new_version(subject, kind, payload, meta)
        except ReportError as e:
            raise self._tag(e, kind, subject)
        except Exception as e:
            logger.error(f"Report generation failed for {kind}/{subject}: {e}", exc_info=True)
            raise UnexpectedError(str(e), kind=kind, subject=subject) from e

        return self._after_publish(record)

    def fetch_existing(self, subject, kind: str) -> Optional[Report]:
        """Cache/store lookup only; never generates."""
        self.registry.get(kind)
        subject = str(subject)

        cached = self._cache_get(kind, subject)
        if cached is not None:
            return self._record_view(cached) if cached.viewed_at is None else cached

        record = self.store.load_current(subject, kind)
        if record is None:
            return None

        report = Report.from_record(record)
        if report.viewed_at is None:
            return self._record_view(report)
        self._cache_put(report)
        return report

    # -- asynchronous path ---------------------------------------------------

    def enqueue_generation(self, subject, kind: str) -> EnqueueResult:
        """
        Queue a background generation and return immediately.

        An existing pending/processing record is returned unchanged instead
        of creating a second one.
        """
        report_kind = self.registry.get(kind)
        subject = str(subject)

        try:
            existing = self.store.find_in_flight(subject, kind)
            if existing is not None:
                logger.info(f"{kind}/{subject} already {existing.status} as record {existing.id}")
                return self._enqueue_result(existing)

            inputs, input_ids = self._collect_inputs(report_kind, subject)
            source_hash = compute_source_hash(inputs)

            record, created = self.store.create_pending(subject, kind, source_hash, input_ids)
            if not created:
                return self._enqueue_result(record)

            try:
                self.queue.enqueue(kind, subject, record.id)
            except Exception:
                # A pending record without a job would block every later enqueue
                self.store.transition(record.id, STATUS_FAILED, expected_status=STATUS_PENDING, error_code="EXCEPTION")
                raise
        except ReportError as e:
            raise self._tag(e, kind, subject)
        except Exception as e:
            logger.error(f"Failed to enqueue {kind}/{subject}: {e}", exc_info=True)
            raise UnexpectedError(str(e), kind=kind, subject=subject) from e

        logger.info(f"Queued {kind} for subject {subject} as record {record.id}")
        return self._enqueue_result(record)

    def process_queued(self, job) -> Optional[Report]:
        """
        Run the generation cycle for a queued job and publish its record in place.

        Returns:
            The published report, or None when the job's record is gone or no
            longer pending (already handled, deleted or superseded)

        Raises:
            StoreUnavailable: The record could not be loaded or claimed; it is untouched
            ReportError: The record has been marked failed with the error code
        """
        try:
            record = self.store.load(job.record_id)
            if record is None or record.status != STATUS_PENDING:
                logger.info(f"Skipping job {job.job_id}: record {job.record_id} is no longer pending")
                return None
            claimed = self.store.transition(record.id, STATUS_PROCESSING, expected_status=STATUS_PENDING)
        except Exception as e:
            logger.error(f"Could not claim record {job.record_id} for job {job.job_id}: {e}", exc_info=True)
            raise StoreUnavailable(str(e), kind=job.kind, subject=job.subject) from e

        if not claimed:
            logger.info(f"Skipping job {job.job_id}: record {record.id} claimed elsewhere")
            return None

        subject, kind = record.subject, record.kind
        try:
            report_kind = self.registry.get(kind)
            inputs, input_ids = self._collect_inputs(report_kind, subject)
            source_hash = compute_source_hash(inputs)
            meta, payload = self._run_cycle(report_kind, subject, inputs, input_ids, source_hash)
            published = self.store.publish_in_place(record.id, payload, meta)
        except ReportError as e:
            self._mark_failed(record.id, e.code)
            raise self._tag(e, kind, subject)
        except Exception as e:
            logger.error(f"Queued generation failed for {kind}/{subject}: {e}", exc_info=True)
            self._mark_failed(record.id, UnexpectedError.code)
            raise UnexpectedError(str(e), kind=kind, subject=subject) from e

        if published is None:
            logger.warning(f"Record {record.id} left processing before publish, discarding result")
            return None
        return self._after_publish(published)

    def has_minimum_data(self, subject, kind: str) -> bool:
        """True if every required input of the kind exists for the subject."""
        report_kind = self.registry.get(kind)
        return all(
            self.collector.get_latest_submission(form_id, str(subject)) is not None
            for form_id in report_kind.required_forms
        )

    def pending_report(self, subject, kind: str) -> Optional[EnqueueResult]:
        """The in-flight record for a report, if any."""
        record = self.store.find_in_flight(str(subject), kind)
        return self._enqueue_result(record) if record is not None else None

    def report_status(self, subject, kind: str) -> ReportStatus:
        """Polling view: in-flight state, last failure or current version."""
        self.registry.get(kind)
        subject = str(subject)
        status = ReportStatus(subject=subject, kind=kind, status="none")

        current = self.store.load_current(subject, kind)
        if current is not None:
            status.status = STATUS_PUBLISHED
            status.record_id = current.id
            status.version = current.version

        latest = self.store.load_latest_attempt(subject, kind)
        if latest is not None and latest.status in (STATUS_PENDING, STATUS_PROCESSING, STATUS_FAILED):
            status.status = latest.status
            status.record_id = latest.id
            if latest.status == STATUS_FAILED:
                status.error = latest.error_code

        return status

    # -- listings and history ------------------------------------------------

    def list_reports(self, subject) -> List[ReportSummary]:
        """Current report per kind for a subject (cached until the next write or view)."""
        subject = str(subject)
        key = listing_key(subject)

        raw = self.cache.get(key)
        if raw is not None:
            try:
                return _LISTING.validate_json(raw)
            except ValidationError:
                logger.warning(f"Discarding unreadable cached listing for subject {subject}")
                self.cache.delete(key)

        current = self.store.current_by_kind(subject)
        order = {kind: i for i, kind in enumerate(self.registry.kinds())}
        summaries = [
            ReportSummary(
                kind=kind,
                label=self._label(kind),
                version=record.version,
                generated_at=record.generated_at,
                viewed=record.viewed_at is not None,
            )
            for kind, record in sorted(current.items(), key=lambda item: (order.get(item[0], len(order)), item[0]))
        ]
        self.cache.set(key, _LISTING.dump_json(summaries), tags=listing_tags(subject))
        return summaries

    def report_versions(self, subject, kind: str) -> List[ReportVersionInfo]:
        return [
            ReportVersionInfo(
                record_id=r.id,
                version=r.version,
                status=r.status,
                generated_at=r.generated_at,
                generation_duration_seconds=r.generation_duration_seconds,
                model_identifier=r.model_identifier,
            )
            for r in self.store.list_versions(str(subject), kind)
        ]

    def report_version(self, subject, kind: str, version: int) -> Optional[Report]:
        """A specific published or archived version."""
        record = self.store.load_version(str(subject), kind, version)
        if record is None or record.status not in (STATUS_PUBLISHED, STATUS_ARCHIVED):
            return None
        return Report.from_record(record)

    def compare_versions(self, subject, kind: str, version1: int, version2: int) -> Optional[VersionComparison]:
        """Summarize what changed between two versions, or None if either is missing."""
        first = self.report_version(subject, kind, version1)
        second = self.report_version(subject, kind, version2)
        if first is None or second is None:
            return None

        changed = sorted(
            key
            for key in set(first.payload) | set(second.payload)
            if first.payload.get(key) != second.payload.get(key)
        )
        time_diff = None
        if first.generated_at is not None and second.generated_at is not None:
            time_diff = (second.generated_at - first.generated_at).total_seconds()

        return VersionComparison(
            version1=version1,
            version2=version2,
            generation_time_diff_seconds=time_diff,
            data_changed=bool(changed),
            changed_keys=changed,
        )

    def export_reports(self, subject) -> SubjectExport:
        """Current records of every kind in the persisted record shape."""
        subject = str(subject)
        current = self.store.current_by_kind(subject)
        return SubjectExport(
            subject=subject,
            exported_at=utcnow(),
            reports={kind: RecordExport.from_record(record) for kind, record in current.items()},
        )

    # -- cache maintenance ---------------------------------------------------

    def invalidate_subject(self, subject) -> None:
        """Drop every cached entry of a subject (call when a submission changes)."""
        self.cache.invalidate_by_tag(subject_tag(str(subject)))
        logger.info(f"Invalidated cached reports for subject {subject}")

    def clear_cache(self, subject, kind: Optional[str] = None) -> None:
        subject = str(subject)
        if kind is None:
            self.invalidate_subject(subject)
            return
        self.cache.delete(report_key(kind, subject))
        self.cache.invalidate_by_tag(listing_tag(subject))

    # -- internals -----------------------------------------------------------

    def _collect_inputs(self, report_kind: ReportKind, subject: str) -> Tuple[Dict[str, Dict[str, Any]], List[str]]:
        """Required inputs (all must exist) plus whichever optional inputs exist."""
        inputs: Dict[str, Dict[str, Any]] = {}
        input_ids: List[str] = []
        missing: List[str] = []

        for form_id in report_kind.required_forms:
            submission = self.collector.get_latest_submission(form_id, subject)
            if submission is None:
                missing.append(form_id)
                continue
            inputs[form_id] = submission.data
            input_ids.append(submission.submission_id)

        if missing:
            logger.info(f"{report_kind.kind}/{subject}: missing required inputs {missing}")
            raise InsufficientData(missing, kind=report_kind.kind, subject=subject)

        for form_id in report_kind.optional_forms:
            submission = self.collector.get_latest_submission(form_id, subject)
            if submission is not None:
                inputs[form_id] = submission.data
                input_ids.append(submission.submission_id)

        return inputs, input_ids

    def _run_cycle(
        self,
        report_kind: ReportKind,
        subject: str,
        inputs: Dict[str, Dict[str, Any]],
        input_ids: List[str],
        source_hash: str,
    ) -> Tuple[GenerationMeta, Dict[str, Any]]:
        """Prompt, call the AI, extract and validate. Nothing is persisted."""
        prompt = report_kind.build_prompt(inputs)

        start = time.monotonic()
        text = self.ai_client.complete(prompt, complex_report=report_kind.complex)
        duration = time.monotonic() - start

        payload = extract_json(text)
        if not report_kind.validate(payload):
            raise ParseError(f"{report_kind.kind}: response is missing required fields")

        logger.info(f"Generated {report_kind.kind} for subject {subject} in {duration:.2f}s")
        meta = GenerationMeta(
            source_hash=source_hash,
            source_input_ids=input_ids,
            duration_seconds=round(duration, 2),
            model_identifier=self.ai_client.model_for(report_kind.complex),
            generated_at=utcnow(),
        )
        return meta, payload

    def _after_publish(self, record) -> Report:
        """Retention, cache population and listing invalidation for a new version."""
        try:
            self.store.archive_older_than(
                record.subject, record.kind, keep_count=self.keep_count, hard_cap=self.archive_cap
            )
        except Exception as e:
            logger.error(f"Archiving old versions of {record.kind}/{record.subject} failed: {e}", exc_info=True)

        report = Report.from_record(record)
        self._cache_put(report)
        self.cache.invalidate_by_tag(listing_tag(report.subject))
        return report

    def _record_view(self, report: Report) -> Report:
        viewed_at = self.store.mark_viewed(report.record_id)
        if viewed_at is None:
            # Viewed through another cache or no longer current
            record = self.store.load(report.record_id)
            if record is not None and record.status == STATUS_PUBLISHED:
                report = Report.from_record(record)
                self._cache_put(report)
            return report

        report = report.model_copy(update={"viewed_at": viewed_at})
        self._cache_put(report)
        self.cache.invalidate_by_tag(listing_tag(report.subject))
        return report

    def _cache_get(self, kind: str, subject: str) -> Optional[Report]:
        key = report_key(kind, subject)
        raw = self.cache.get(key)
        if raw is None:
            return None
        try:
            return Report.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            self.cache.delete(key)
            return None

    def _cache_put(self, report: Report) -> None:
        self.cache.set(
            report_key(report.kind, report.subject),
            report.model_dump_json().encode("utf-8"),
            tags=report_tags(report.kind, report.subject),
        )

    def _mark_failed(self, record_id, error_code: str) -> None:
        try:
            self.store.transition(record_id, STATUS_FAILED, expected_status=STATUS_PROCESSING, error_code=error_code)
        except Exception as e:
            logger.error(f"Could not mark record {record_id} as failed: {e}", exc_info=True)

    def _label(self, kind: str) -> str:
        report_kind = self.registry.find(kind)
        return report_kind.label if report_kind is not None else kind

    @staticmethod
    def _enqueue_result(record) -> EnqueueResult:
        return EnqueueResult(status=record.status, record_id=record.id, queued_at=record.created_at)

    @staticmethod
    def _tag(error: ReportError, kind: str, subject: str) -> ReportError:
        error.kind = error.kind or kind
        error.subject = error.subject or subject
        logger.warning(f"{kind}/{subject} failed with {error.code}: {error}")
        return error
