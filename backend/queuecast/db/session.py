"""
Engine and session factory for the forecast database.

Tests swap ``ENGINE``/``SessionLocal`` (and the two getters) for a shared
in-memory engine before the app is imported, so application code should go
through ``get_sessionmaker()`` rather than binding to ``SessionLocal`` at
import time.
"""
from __future__ import annotations

import logging
import os
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from queuecast.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

DEFAULT_DATABASE_URL = "sqlite:///./queuecast.db"


def _running_tests() -> bool:
    return (settings.ENV or "dev").lower() == "test" or "PYTEST_CURRENT_TEST" in os.environ


def _select_database_url() -> str:
    candidates = []
    if _running_tests():
        candidates += [settings.TEST_DATABASE_URL, os.getenv("TEST_DATABASE_URL")]
    candidates += [settings.DATABASE_URL, os.getenv("DATABASE_URL")]
    return next((url for url in candidates if url), DEFAULT_DATABASE_URL)


def _enforce_ssl_requirements(raw_url: str) -> str:
    url = make_url(raw_url)
    wants_ssl = settings.DB_REQUIRE_SSL and url.get_backend_name().startswith("postgresql")
    if wants_ssl and "sslmode" not in url.query:
        url = url.update_query_dict({"sslmode": "require"})
    return url.render_as_string(hide_password=False)


def _is_memory_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _build_engine(raw_url: str) -> Engine:
    url = make_url(raw_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True, future=True)

    # Forecast writes happen on worker threads (asyncio.to_thread).
    connect_args = {"check_same_thread": False}
    if _is_memory_sqlite(url):
        # One connection, otherwise every checkout sees an empty database.
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool, future=True)
    return create_engine(url, connect_args=connect_args, future=True)


DATABASE_URL = _enforce_ssl_requirements(_select_database_url())
ENGINE: Engine = _build_engine(DATABASE_URL)
engine: Engine = ENGINE
SessionLocal: sessionmaker[Session] = sessionmaker(
    bind=ENGINE,
    autoflush=False,
    expire_on_commit=False,
    future=True,
)

logger.info("db.engine backend=%s url=%s", ENGINE.dialect.name, ENGINE.url.render_as_string(hide_password=True))


def get_engine() -> Engine:
    return ENGINE


def get_sessionmaker() -> sessionmaker[Session]:
    return SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create any missing tables. Production schemas are managed by Alembic."""
    # Imported here; base.py pulls in the models, which import Base back.
    from queuecast.db.base import Base  # pylint: disable=import-outside-toplevel

    Base.metadata.create_all(bind=bind or get_engine())
