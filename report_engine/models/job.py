"""Queue job model backing the durable generation queue."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid

from report_engine.database import Base, utcnow

JOB_QUEUED = "queued"
JOB_CLAIMED = "claimed"


class QueueJob(Base):
    """A queued request to generate one pending report record."""

    __tablename__ = "report_jobs"

    job_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    kind = Column(String(64), nullable=False)
    subject = Column(String(255), nullable=False)
    record_id = Column(Uuid, ForeignKey("report_records.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), nullable=False, default=JOB_QUEUED)  # 'queued', 'claimed'
    attempts = Column(Integer, default=0)
    last_error = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    claimed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_report_jobs_status", "status"),
        Index("idx_report_jobs_record_id", "record_id"),
    )
