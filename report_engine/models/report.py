"""Versioned report record model."""

import uuid

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text, UniqueConstraint, Uuid, text

from report_engine.database import Base, JSONType, utcnow

STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_PUBLISHED = "published"
STATUS_ARCHIVED = "archived"
STATUS_FAILED = "failed"

REPORT_STATUSES = (
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_PUBLISHED,
    STATUS_ARCHIVED,
    STATUS_FAILED,
)
IN_FLIGHT_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)

_IN_FLIGHT_WHERE = text("status IN ('pending', 'processing')")


class ReportRecord(Base):
    """One generated (or in-flight) version of a report for a subject and kind."""

    __tablename__ = "report_records"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    subject = Column(String(255), nullable=False)
    kind = Column(String(64), nullable=False)
    version = Column(Integer)  # NULL until published
    status = Column(String(16), nullable=False)
    payload = Column(JSONType)
    generated_at = Column(DateTime(timezone=True))
    generation_duration_seconds = Column(Float)
    model_identifier = Column(Text)
    source_hash = Column(String(64))
    source_input_ids = Column(JSONType, default=list)
    viewed_at = Column(DateTime(timezone=True))
    error_code = Column(String(32))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("subject", "kind", "version", name="uq_report_records_version"),
        Index("idx_report_records_subject_kind_status", "subject", "kind", "status"),
        Index(
            "uq_report_records_in_flight",
            "subject",
            "kind",
            unique=True,
            postgresql_where=_IN_FLIGHT_WHERE,
            sqlite_where=_IN_FLIGHT_WHERE,
        ),
    )

    def __repr__(self) -> str:
        return f"<ReportRecord {self.kind} subject={self.subject} v{self.version} {self.status}>"
