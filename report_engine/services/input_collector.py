"""Lookup of the latest completed form submission for a subject."""

import logging
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from report_engine.models.submission import FormSubmission
from report_engine.schemas.report import Submission

logger = logging.getLogger(__name__)


class InputCollector(Protocol):
    """Read-only access to externally owned form answers."""

    def get_latest_submission(self, form_id: str, subject: str) -> Optional[Submission]:
        ...


class DatabaseInputCollector:
    """Reads the ``form_submissions`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def get_latest_submission(self, form_id: str, subject: str) -> Optional[Submission]:
        """Most recently changed completed submission, or None."""
        with self._session_factory() as db:
            row = (
                db.query(FormSubmission)
                .filter(
                    FormSubmission.form_id == form_id,
                    FormSubmission.subject == str(subject),
                    FormSubmission.completed.is_(True),
                )
                .order_by(FormSubmission.changed_at.desc(), FormSubmission.id.desc())
                .first()
            )
            if row is None:
                return None
            return Submission(submission_id=str(row.id), data=dict(row.data or {}))

    def record_submission(
        self, form_id: str, subject: str, data: Dict[str, Any], completed: bool = True
    ) -> Submission:
        """Insert a submission (fixtures, imports and tests)."""
        with self._session_factory() as db:
            row = FormSubmission(form_id=form_id, subject=str(subject), data=data, completed=completed)
            db.add(row)
            db.commit()
            logger.info(f"Recorded {form_id} submission {row.id} for subject {subject}")
            return Submission(submission_id=str(row.id), data=dict(data))
