"""Database engine, session factory and declarative base."""

from datetime import datetime, timezone

from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, sessionmaker

from report_engine.config import settings

Base = declarative_base()

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp for column defaults."""
    return datetime.now(timezone.utc)


def make_engine(url: str):
    """Create an engine; SQLite needs cross-thread access for the worker thread."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create all tables (used for SQLite deployments and tests)."""
    import report_engine.models  # noqa: F401  register mappers

    Base.metadata.create_all(bind or engine)
