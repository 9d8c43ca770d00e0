"""Report-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Submission(BaseModel):
    """Latest completed submission of one form for one subject."""

    submission_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class Report(BaseModel):
    """A published report as returned to callers and stored in the fast cache."""

    record_id: UUID
    subject: str
    kind: str
    version: int
    status: str
    payload: Dict[str, Any]
    generated_at: Optional[datetime] = None
    generation_duration_seconds: Optional[float] = None
    model_identifier: Optional[str] = None
    source_hash: Optional[str] = None
    viewed_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record) -> "Report":
        return cls(
            record_id=record.id,
            subject=record.subject,
            kind=record.kind,
            version=record.version,
            status=record.status,
            payload=record.payload or {},
            generated_at=record.generated_at,
            generation_duration_seconds=record.generation_duration_seconds,
            model_identifier=record.model_identifier,
            source_hash=record.source_hash,
            viewed_at=record.viewed_at,
        )


class EnqueueResult(BaseModel):
    """Response after queueing a background generation."""

    status: str
    record_id: UUID
    queued_at: Optional[datetime] = None


class ReportStatus(BaseModel):
    """Polling view of a report's lifecycle."""

    subject: str
    kind: str
    status: str  # 'none', 'pending', 'processing', 'published', 'failed'
    record_id: Optional[UUID] = None
    version: Optional[int] = None
    error: Optional[str] = None


class ReportSummary(BaseModel):
    """One row of a subject's report listing."""

    kind: str
    label: str
    version: int
    generated_at: Optional[datetime] = None
    viewed: bool = False


class ReportVersionInfo(BaseModel):
    """One version in a report's history."""

    record_id: UUID
    version: Optional[int] = None
    status: str
    generated_at: Optional[datetime] = None
    generation_duration_seconds: Optional[float] = None
    model_identifier: Optional[str] = None


class VersionComparison(BaseModel):
    """Difference summary between two versions of the same report."""

    version1: int
    version2: int
    generation_time_diff_seconds: Optional[float] = None
    data_changed: bool
    changed_keys: List[str] = Field(default_factory=list)


class RecordExport(BaseModel):
    """Serialized form of a persisted record (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    subject: str
    kind: str
    version: Optional[int] = None
    status: str
    generated_at: Optional[datetime] = None
    generation_duration_seconds: Optional[float] = None
    model_identifier: Optional[str] = None
    source_hash: Optional[str] = None
    source_input_ids: List[str] = Field(default_factory=list)
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def from_record(cls, record) -> "RecordExport":
        return cls(
            id=record.id,
            subject=record.subject,
            kind=record.kind,
            version=record.version,
            status=record.status,
            generated_at=record.generated_at,
            generation_duration_seconds=record.generation_duration_seconds,
            model_identifier=record.model_identifier,
            source_hash=record.source_hash,
            source_input_ids=[str(i) for i in (record.source_input_ids or [])],
            payload=record.payload,
        )


class SubjectExport(BaseModel):
    """All current reports of a subject."""

    subject: str
    exported_at: datetime
    reports: Dict[str, RecordExport]


class UserStats(BaseModel):
    """Report counts for one subject."""

    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_status: Dict[str, int] = Field(default_factory=dict)
    has_reports: bool = False


class RegenerationResult(BaseModel):
    """Outcome of regenerating several report kinds for a subject."""

    success: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    skipped: Dict[str, str] = Field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        total = len(self.success) + len(self.failed) + len(self.skipped)
        return total > 0 and len(self.failed) == total


class QueueStatus(BaseModel):
    """Queue depth."""

    pending: int
