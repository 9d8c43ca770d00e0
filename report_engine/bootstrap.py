"""Process-wide wiring of the report engine components."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from sqlalchemy.orm import Session

from report_engine.config import Settings, settings as default_settings
from report_engine.kinds import KindRegistry, default_registry
from report_engine.services.cache import InMemoryReportCache, RedisReportCache, ReportCache
from report_engine.services.input_collector import DatabaseInputCollector, InputCollector
from report_engine.services.job_queue import JobQueue
from report_engine.services.llm_client import AIClientAdapter, CompletionProvider, OpenRouterProvider
from report_engine.services.orchestrator import ReportOrchestrator
from report_engine.services.regenerator import SubjectReportRegenerator
from report_engine.services.report_store import ReportStore

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or default_settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@dataclass
class Engine:
    """Everything a process needs to serve and generate reports."""

    settings: Settings
    store: ReportStore
    cache: ReportCache
    queue: JobQueue
    ai_client: AIClientAdapter
    orchestrator: ReportOrchestrator
    regenerator: SubjectReportRegenerator
    http_client: Optional[httpx.Client] = None

    def close(self) -> None:
        if self.http_client is not None:
            self.http_client.close()


def build_engine(
    settings: Optional[Settings] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    provider: Optional[CompletionProvider] = None,
    cache: Optional[ReportCache] = None,
    collector: Optional[InputCollector] = None,
    registry: Optional[KindRegistry] = None,
) -> Engine:
    """
    Build the engine once per process.

    The HTTP client backing the AI provider is created here and shared by
    every request and worker thread. Any collaborator can be supplied to
    replace the default built from settings.
    """
    settings = settings or default_settings
    if session_factory is None:
        from report_engine.database import SessionLocal

        session_factory = SessionLocal

    http_client = None
    if provider is None:
        http_client = httpx.Client(timeout=httpx.Timeout(settings.AI_TIMEOUT_SECONDS))
        provider = OpenRouterProvider(
            http_client,
            api_key=settings.AI_API_KEY,
            base_url=settings.AI_BASE_URL,
            site_url=settings.SITE_URL,
            site_name=settings.SITE_NAME,
        )
        if not settings.AI_API_KEY:
            logger.warning("AI_API_KEY is not set; report generation will fail")

    if cache is None:
        if settings.REDIS_URL:
            cache = RedisReportCache.from_url(settings.REDIS_URL)
            logger.info("Using Redis report cache")
        else:
            cache = InMemoryReportCache()
            logger.info("REDIS_URL not set, using in-process report cache")

    ai_client = AIClientAdapter(
        provider,
        system_prompt=settings.SYSTEM_PROMPT,
        simple_model=settings.SIMPLE_REPORT_MODEL,
        complex_model=settings.COMPLEX_REPORT_MODEL,
        max_tokens=settings.AI_MAX_TOKENS,
        temperature=settings.AI_TEMPERATURE,
        timeout_seconds=settings.AI_TIMEOUT_SECONDS,
        stream=settings.AI_STREAM,
        retry_delay_seconds=settings.AI_RETRY_DELAY_SECONDS,
    )
    store = ReportStore(session_factory)
    queue = JobQueue(session_factory)
    orchestrator = ReportOrchestrator(
        store,
        cache,
        queue,
        ai_client,
        collector or DatabaseInputCollector(session_factory),
        registry or default_registry(),
        keep_count=settings.REPORT_KEEP_COUNT,
        archive_cap=settings.REPORT_ARCHIVE_CAP,
    )

    return Engine(
        settings=settings,
        store=store,
        cache=cache,
        queue=queue,
        ai_client=ai_client,
        orchestrator=orchestrator,
        regenerator=SubjectReportRegenerator(orchestrator),
        http_client=http_client,
    )

