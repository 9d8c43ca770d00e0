"""Versioned report storage with status lifecycle and retention."""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from report_engine.database import utcnow
from report_engine.models.report import (
    IN_FLIGHT_STATUSES,
    REPORT_STATUSES,
    STATUS_ARCHIVED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_PUBLISHED,
    ReportRecord,
)
from report_engine.schemas.report import UserStats

logger = logging.getLogger(__name__)


@dataclass
class GenerationMeta:
    """Bookkeeping stored alongside a generated payload."""

    source_hash: str
    source_input_ids: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    model_identifier: Optional[str] = None
    generated_at: Optional[datetime] = None


class VersionConflict(RuntimeError):
    """Could not claim a version number after repeated races."""


class ReportStore:
    """Durable store of report records keyed by (subject, kind, version)."""

    def __init__(self, session_factory: Callable[[], Session], max_version_retries: int = 3):
        self._session_factory = session_factory
        self.max_version_retries = max_version_retries

    # -- reads -------------------------------------------------------------

    def load(self, record_id) -> Optional[ReportRecord]:
        with self._session_factory() as db:
            return db.get(ReportRecord, _as_uuid(record_id))

    def load_current(self, subject: str, kind: str) -> Optional[ReportRecord]:
        """Highest-version published record, or None."""
        try:
            with self._session_factory() as db:
                return (
                    db.query(ReportRecord)
                    .filter(
                        ReportRecord.subject == str(subject),
                        ReportRecord.kind == kind,
                        ReportRecord.status == STATUS_PUBLISHED,
                    )
                    .order_by(ReportRecord.version.desc())
                    .first()
                )
        except (OperationalError, ProgrammingError) as e:
            logger.warning(f"Indexed lookup failed for {kind}/{subject}, falling back to scan: {e}")
            return self._scan_current(subject, kind)

    def _scan_current(self, subject: str, kind: str) -> Optional[ReportRecord]:
        with self._session_factory() as db:
            rows = db.query(ReportRecord).filter(ReportRecord.subject == str(subject)).all()
        published = [
            r for r in rows if r.kind == kind and r.status == STATUS_PUBLISHED and r.version is not None
        ]
        return max(published, key=lambda r: r.version, default=None)

    def find_in_flight(self, subject: str, kind: str) -> Optional[ReportRecord]:
        with self._session_factory() as db:
            return (
                db.query(ReportRecord)
                .filter(
                    ReportRecord.subject == str(subject),
                    ReportRecord.kind == kind,
                    ReportRecord.status.in_(IN_FLIGHT_STATUSES),
                )
                .order_by(ReportRecord.created_at.desc())
                .first()
            )

    def load_latest_attempt(self, subject: str, kind: str) -> Optional[ReportRecord]:
        """Most recently created record of any status."""
        with self._session_factory() as db:
            return (
                db.query(ReportRecord)
                .filter(ReportRecord.subject == str(subject), ReportRecord.kind == kind)
                .order_by(ReportRecord.created_at.desc())
                .first()
            )

    def load_version(self, subject: str, kind: str, version: int) -> Optional[ReportRecord]:
        with self._session_factory() as db:
            return (
                db.query(ReportRecord)
                .filter(
                    ReportRecord.subject == str(subject),
                    ReportRecord.kind == kind,
                    ReportRecord.version == version,
                )
                .first()
            )

    def list_versions(self, subject: str, kind: str) -> List[ReportRecord]:
        """All records of a report, newest version first (unversioned last)."""
        with self._session_factory() as db:
            rows = (
                db.query(ReportRecord)
                .filter(ReportRecord.subject == str(subject), ReportRecord.kind == kind)
                .all()
            )
        return sorted(rows, key=lambda r: (r.version is not None, r.version or 0), reverse=True)

    def list_for_subject(
        self, subject: str, status: Optional[str] = None, kind: Optional[str] = None
    ) -> List[ReportRecord]:
        with self._session_factory() as db:
            query = db.query(ReportRecord).filter(ReportRecord.subject == str(subject))
            if status is not None:
                query = query.filter(ReportRecord.status == status)
            if kind is not None:
                query = query.filter(ReportRecord.kind == kind)
            return query.order_by(ReportRecord.created_at.desc()).all()

    def current_by_kind(self, subject: str) -> Dict[str, ReportRecord]:
        """Current published record per kind."""
        latest: Dict[str, ReportRecord] = {}
        for record in self.list_for_subject(subject, status=STATUS_PUBLISHED):
            best = latest.get(record.kind)
            if best is None or record.version > best.version:
                latest[record.kind] = record
        return latest

    def statistics_for_subject(self, subject: str) -> UserStats:
        records = self.list_for_subject(subject)
        if not records:
            return UserStats()
        return UserStats(
            total=len(records),
            by_type=dict(Counter(r.kind for r in records)),
            by_status=dict(Counter(r.status for r in records)),
            has_reports=True,
        )

    # -- writes ------------------------------------------------------------

    @staticmethod
    def _next_version(db: Session, subject: str, kind: str) -> int:
        current = (
            db.query(func.max(ReportRecord.version))
            .filter(ReportRecord.subject == str(subject), ReportRecord.kind == kind)
            .scalar()
        )
        return (current or 0) + 1

    def save_new_version(
        self, subject: str, kind: str, payload: Dict[str, Any], meta: GenerationMeta
    ) -> ReportRecord:
        """
        Insert a published record with version max(existing)+1.

        The unique (subject, kind, version) constraint turns a concurrent
        writer into an IntegrityError; the version is then recomputed.

        Raises:
            VersionConflict: If every attempt lost the race
        """
        for attempt in range(1, self.max_version_retries + 1):
            with self._session_factory() as db:
                version = self._next_version(db, subject, kind)
                record = ReportRecord(
                    subject=str(subject),
                    kind=kind,
                    version=version,
                    status=STATUS_PUBLISHED,
                    payload=payload,
                    generated_at=meta.generated_at or utcnow(),
                    generation_duration_seconds=meta.duration_seconds,
                    model_identifier=meta.model_identifier,
                    source_hash=meta.source_hash,
                    source_input_ids=list(meta.source_input_ids),
                )
                db.add(record)
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.warning(
                        f"Version {version} of {kind} for subject {subject} taken, "
                        f"retrying ({attempt}/{self.max_version_retries})"
                    )
                    continue
                db.refresh(record)
                logger.info(f"Saved report version {version} for subject {subject} ({kind})")
                return record

        raise VersionConflict(f"Could not assign a version for {kind}/{subject}")

    def create_pending(
        self, subject: str, kind: str, source_hash: str, source_input_ids: List[str]
    ) -> Tuple[ReportRecord, bool]:
        """
        Create a pending record unless one is already in flight.

        Returns:
            (record, created) where created is False if an existing
            pending/processing record was returned instead
        """
        existing = self.find_in_flight(subject, kind)
        if existing is not None:
            return existing, False

        with self._session_factory() as db:
            record = ReportRecord(
                subject=str(subject),
                kind=kind,
                status=STATUS_PENDING,
                source_hash=source_hash,
                source_input_ids=list(source_input_ids),
            )
            db.add(record)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                record = None

            if record is not None:
                db.refresh(record)
                return record, True

        # Lost the race to a concurrent enqueue
        existing = self.find_in_flight(subject, kind)
        if existing is None:
            raise RuntimeError(f"In-flight insert for {kind}/{subject} conflicted but no record found")
        return existing, False

    def transition(
        self,
        record_id,
        new_status: str,
        *,
        expected_status: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> bool:
        """
        Move a record to a new status.

        Args:
            record_id: Record to update
            new_status: Target status
            expected_status: Only update if the record currently has this status
            error_code: Failure classification stored with ``failed``

        Returns:
            True if a row was updated
        """
        if new_status not in REPORT_STATUSES:
            raise ValueError(f"Unknown report status: {new_status}")

        values: Dict[str, Any] = {"status": new_status, "updated_at": utcnow()}
        if new_status == STATUS_FAILED:
            values["error_code"] = error_code

        with self._session_factory() as db:
            query = db.query(ReportRecord).filter(ReportRecord.id == _as_uuid(record_id))
            if expected_status is not None:
                query = query.filter(ReportRecord.status == expected_status)
            updated = query.update(values, synchronize_session=False)
            db.commit()

        if updated:
            logger.info(f"Report record {record_id} -> {new_status}")
        return bool(updated)

    def publish_in_place(
        self, record_id, payload: Dict[str, Any], meta: GenerationMeta
    ) -> Optional[ReportRecord]:
        """
        Publish a processing record with a freshly assigned version.

        Returns:
            The published record, or None if it no longer exists or is no
            longer processing
        """
        for attempt in range(1, self.max_version_retries + 1):
            with self._session_factory() as db:
                record = db.get(ReportRecord, _as_uuid(record_id))
                if record is None or record.status != STATUS_PROCESSING:
                    return None

                version = self._next_version(db, record.subject, record.kind)
                record.version = version
                record.status = STATUS_PUBLISHED
                record.payload = payload
                record.generated_at = meta.generated_at or utcnow()
                record.generation_duration_seconds = meta.duration_seconds
                record.model_identifier = meta.model_identifier
                record.source_hash = meta.source_hash
                record.source_input_ids = list(meta.source_input_ids)
                record.error_code = None
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.warning(
                        f"Version {version} taken while publishing {record_id}, "
                        f"retrying ({attempt}/{self.max_version_retries})"
                    )
                    continue
                db.refresh(record)
                logger.info(
                    f"Published record {record_id} as version {version} "
                    f"for subject {record.subject} ({record.kind})"
                )
                return record

        raise VersionConflict(f"Could not assign a version while publishing {record_id}")

    def mark_viewed(self, record_id) -> Optional[datetime]:
        """Set viewed_at on a published record the first time it is read."""
        viewed_at = utcnow()
        with self._session_factory() as db:
            updated = (
                db.query(ReportRecord)
                .filter(
                    ReportRecord.id == _as_uuid(record_id),
                    ReportRecord.status == STATUS_PUBLISHED,
                    ReportRecord.viewed_at.is_(None),
                )
                .update({"viewed_at": viewed_at}, synchronize_session=False)
            )
            db.commit()
        return viewed_at if updated else None

    def archive_older_than(
        self, subject: str, kind: str, keep_count: int = 5, hard_cap: int = 0
    ) -> Tuple[int, int]:
        """
        Keep the newest ``keep_count`` published versions, archive the rest.

        Archived records beyond ``hard_cap`` (newest first) are deleted;
        ``hard_cap`` of 0 keeps every archived version.

        Returns:
            (archived, pruned) counts
        """
        archived = pruned = 0
        with self._session_factory() as db:
            published = (
                db.query(ReportRecord)
                .filter(
                    ReportRecord.subject == str(subject),
                    ReportRecord.kind == kind,
                    ReportRecord.status == STATUS_PUBLISHED,
                )
                .order_by(ReportRecord.version.desc())
                .all()
            )
            for record in published[keep_count:]:
                record.status = STATUS_ARCHIVED
                archived += 1
                logger.info(f"Archived report version {record.version} for subject {subject} ({kind})")
            db.flush()

            if hard_cap > 0:
                old = (
                    db.query(ReportRecord)
                    .filter(
                        ReportRecord.subject == str(subject),
                        ReportRecord.kind == kind,
                        ReportRecord.status == STATUS_ARCHIVED,
                    )
                    .order_by(ReportRecord.version.desc())
                    .all()
                )
                for record in old[hard_cap:]:
                    db.delete(record)
                    pruned += 1
                if pruned:
                    logger.info(f"Pruned {pruned} archived versions for subject {subject} ({kind})")

            db.commit()
        return archived, pruned

    def fail_stale_processing(self, older_than: datetime) -> int:
        """Mark processing records untouched since ``older_than`` as failed."""
        with self._session_factory() as db:
            updated = (
                db.query(ReportRecord)
                .filter(
                    ReportRecord.status == STATUS_PROCESSING,
                    ReportRecord.updated_at < older_than,
                )
                .update(
                    {"status": STATUS_FAILED, "error_code": "STALE", "updated_at": utcnow()},
                    synchronize_session=False,
                )
            )
            db.commit()
        if updated:
            logger.warning(f"Marked {updated} stale processing report(s) as failed")
        return updated

    def delete_for_subject(self, subject: str, kind: Optional[str] = None) -> int:
        with self._session_factory() as db:
            query = db.query(ReportRecord).filter(ReportRecord.subject == str(subject))
            if kind is not None:
                query = query.filter(ReportRecord.kind == kind)
            deleted = query.delete(synchronize_session=False)
            db.commit()
        logger.info(f"Deleted {deleted} reports for subject {subject}")
        return deleted


def _as_uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
