"""Error taxonomy for report generation.

Every failure inside a generation cycle is converted to one of four kinds
before it leaves the orchestrator. ``user_message`` is safe to show to the
end caller; ``str(error)`` carries the internal detail and is only logged.
"""

from typing import Optional


class ReportError(Exception):
    """Base class for classified report generation failures."""

    code = "EXCEPTION"
    user_message = "An unexpected error occurred. Please try again later."
    retryable = True

    def __init__(self, detail: str = "", *, kind: Optional[str] = None, subject: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail
        self.kind = kind
        self.subject = subject

    def to_dict(self) -> dict:
        """Caller-facing representation (no internal detail)."""
        return {"error": self.code, "message": self.user_message, "retryable": self.retryable}


class InsufficientData(ReportError):
    """Required inputs are missing; only the user can fix this."""

    code = "INSUFFICIENT_DATA"
    user_message = "Please complete the required assessments before generating this report."
    retryable = False

    def __init__(self, missing_forms=(), **kwargs):
        self.missing_forms = list(missing_forms)
        detail = "Missing required inputs: " + ", ".join(self.missing_forms) if self.missing_forms else ""
        super().__init__(detail, **kwargs)


class GenerationTimeout(ReportError):
    """The AI provider did not answer within the deadline (after retry)."""

    code = "API_TIMEOUT"
    user_message = (
        "The AI service timed out. This analysis requires complex processing. "
        "Please try again in a moment."
    )


class ParseError(ReportError):
    """The model output never reduced to valid, schema-conforming JSON."""

    code = "PARSE_ERROR"
    user_message = "Unable to parse AI response. Please try regenerating the analysis."


class UnexpectedError(ReportError):
    """Catch-all for provider and store failures."""

    code = "EXCEPTION"


class StoreUnavailable(UnexpectedError):
    """The store failed before a queued record could be claimed.

    Nothing was persisted on the record, so the job should be redelivered.
    """


class UnknownReportKind(LookupError):
    """Raised when a report kind is not registered."""
