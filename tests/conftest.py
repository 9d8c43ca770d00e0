"""Pytest configuration and fixtures."""

import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from report_engine.bootstrap import build_engine
from report_engine.config import Settings
from report_engine.database import init_db
from report_engine.kinds.base import KindRegistry, ReportKind
from report_engine.services.cache import InMemoryReportCache
from report_engine.services.input_collector import DatabaseInputCollector
from report_engine.services.llm_client import StreamedResponse, WholeResponse
from report_engine.services.report_store import ReportStore


class FakeProvider:
    """Completion provider returning scripted responses.

    Each entry is a string (returned whole), a list of strings (streamed),
    or an exception (raised). The last entry repeats once the script runs out.
    """

    def __init__(self, *responses):
        self.responses = list(responses) or [json.dumps({"summary": "ok"})]
        self.requests = []

    def chat(self, request):
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, list):
            return StreamedResponse(iter(item))
        return WholeResponse(item)

    @property
    def calls(self) -> int:
        return len(self.requests)


def sample_prompt(inputs):
    role = inputs["task_analysis"].get("role", "unknown")
    skills = ", ".join(inputs["skills_gap"].get("current", []))
    confidence = inputs.get("confidence", {}).get("confidence_level")
    extra = f"\nConfidence: {confidence}" if confidence else ""
    return f"Role: {role}\nSkills: {skills}{extra}\nReturn JSON with a summary."


SAMPLE_KIND = ReportKind(
    kind="career_transitions",
    label="Career Transitions",
    required_forms=("task_analysis", "skills_gap"),
    optional_forms=("confidence",),
    build_prompt=sample_prompt,
    required_keys=("summary",),
)

COMPLEX_KIND = ReportKind(
    kind="summary",
    label="Journey Summary",
    required_forms=("task_analysis",),
    build_prompt=lambda inputs: "Summarize.",
    required_keys=("summary",),
    complex=True,
)


@pytest.fixture(scope="function")
def session_factory():
    """In-memory SQLite database shared across threads for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield TestingSessionLocal

    engine.dispose()


@pytest.fixture
def test_db(session_factory):
    """A single database session."""
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def store(session_factory):
    return ReportStore(session_factory)


@pytest.fixture
def collector(session_factory):
    return DatabaseInputCollector(session_factory)


@pytest.fixture
def provider():
    return FakeProvider(json.dumps({"summary": "Strong transition candidate."}))


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="sqlite://",
        AI_RETRY_DELAY_SECONDS=0,
        REPORT_KEEP_COUNT=5,
        REPORT_ARCHIVE_CAP=20,
        SIMPLE_REPORT_MODEL="test/simple",
        COMPLEX_REPORT_MODEL="test/complex",
    )


@pytest.fixture
def engine(test_settings, session_factory, provider, collector):
    """Fully wired engine over the test database and fake provider."""
    return build_engine(
        settings=test_settings,
        session_factory=session_factory,
        provider=provider,
        cache=InMemoryReportCache(),
        collector=collector,
        registry=KindRegistry([SAMPLE_KIND, COMPLEX_KIND]),
    )


@pytest.fixture
def orchestrator(engine):
    return engine.orchestrator


@pytest.fixture
def complete_inputs(collector):
    """Record both required inputs for subject 42."""
    collector.record_submission("task_analysis", "42", {"role": "engineer"})
    collector.record_submission("skills_gap", "42", {"current": ["python"]})
    return collector
