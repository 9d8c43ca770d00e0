"""Form submission table read by the default input collector."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from report_engine.database import Base, JSONType, utcnow


class FormSubmission(Base):
    """A user's answers to one data-collection form."""

    __tablename__ = "form_submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(String(64), nullable=False)
    subject = Column(String(255), nullable=False)
    data = Column(JSONType, nullable=False, default=dict)
    completed = Column(Boolean, nullable=False, default=True)
    changed_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (Index("idx_form_submissions_form_subject", "form_id", "subject"),)
