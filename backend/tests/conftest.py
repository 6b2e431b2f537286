import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend/ is importable as the top-level "queuecast" package even when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Ensure the application runs in test/sqlite mode *before* importing any app modules
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("PREDICTION_LATENCY_MS", "0")

# Import the DB session module first so we can patch it before the app is imported
import queuecast.db.session as app_db_session  # type: ignore

# --- Use a single in-memory SQLite DB for the whole test session ---
ENGINE = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
SessionTesting = sessionmaker(
    bind=ENGINE, autocommit=False, autoflush=False, expire_on_commit=False, future=True
)

# --- Ensure tests and app code share the SAME in-memory engine/sessionmaker ---
setattr(app_db_session, "ENGINE", ENGINE)
setattr(app_db_session, "engine", ENGINE)
app_db_session.SessionLocal = SessionTesting
app_db_session.get_engine = lambda: ENGINE            # type: ignore
app_db_session.get_sessionmaker = lambda: SessionTesting  # type: ignore

from queuecast.db.base import Base
from queuecast.dependencies import get_prediction_service, reset_dependencies
from queuecast.main import app
from queuecast.services.estimation import EstimationEngine, ModelConfig, ModelType
from queuecast.services.forecast_store import SqlForecastStore
from queuecast.services.prediction import PredictionService
from queuecast.services.signals import DemoSignalProvider

Base.metadata.create_all(bind=ENGINE)

TEST_MODEL = ModelConfig(
    model_id="m1",
    model_type=ModelType.NEURAL,
    accuracy_threshold=0.9,
)


class FrozenClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


@pytest.fixture(scope="function")
def reset_db():
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    reset_dependencies()
    yield
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    reset_dependencies()


@pytest.fixture(scope="function")
def db(reset_db):
    session = SessionTesting()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def db_session(db):
    yield db


@pytest.fixture(scope="function")
def forecast_store(reset_db):
    return SqlForecastStore(SessionTesting)


@pytest.fixture(scope="function")
def engine():
    return EstimationEngine(TEST_MODEL, DemoSignalProvider())


@pytest.fixture(scope="function")
def prediction_service(engine, forecast_store):
    service = PredictionService(engine, forecast_store)
    app.dependency_overrides[get_prediction_service] = lambda: service
    try:
        yield service
    finally:
        app.dependency_overrides.pop(get_prediction_service, None)


@pytest.fixture(scope="function")
def client(prediction_service):
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def frozen_clock():
    return FrozenClock()
