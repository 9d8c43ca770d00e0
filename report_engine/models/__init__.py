"""SQLAlchemy ORM models."""

from report_engine.models.job import QueueJob
from report_engine.models.report import ReportRecord
from report_engine.models.submission import FormSubmission

__all__ = [
    "FormSubmission",
    "QueueJob",
    "ReportRecord",
]
