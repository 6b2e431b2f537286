"""
Dependency wiring for the FastAPI app and the scheduler.
"""

from __future__ import annotations

from queuecast.config import get_settings
from queuecast.db import session as db_session
from queuecast.services.estimation import create_engine_from_settings
from queuecast.services.forecast_store import (
    ForecastStore,
    InMemoryForecastStore,
    SqlForecastStore,
)
from queuecast.services.prediction import PredictionService

_forecast_store: ForecastStore | None = None
_prediction_service: PredictionService | None = None


def get_forecast_store() -> ForecastStore:
    global _forecast_store
    if _forecast_store:
        return _forecast_store

    settings = get_settings()
    if settings.USE_IN_MEMORY_STORE:
        _forecast_store = InMemoryForecastStore()
    else:
        _forecast_store = SqlForecastStore(db_session.get_sessionmaker())
    return _forecast_store


def get_prediction_service() -> PredictionService:
    """
    Return the process-wide service so the monotonic run stamps survive across requests.
    """
    global _prediction_service
    if _prediction_service:
        return _prediction_service

    settings = get_settings()
    engine = create_engine_from_settings(settings, session_factory=db_session.get_sessionmaker())
    _prediction_service = PredictionService(engine, get_forecast_store())
    return _prediction_service


def reset_dependencies() -> None:
    """Drop cached instances (used by tests after patching the database)."""
    global _forecast_store, _prediction_service
    _forecast_store = None
    _prediction_service = None
