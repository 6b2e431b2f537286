"""
Forecast service: compute, retrieve and sweep per-queue forecasts.

Every public method returns a value; estimation and store exceptions are
logged and converted into ``PredictionFailure`` so callers branch on the
result type instead of catching.
"""
from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Tuple, Union

import structlog

from queuecast.observability.metrics import (
    ESTIMATION_LATENCY,
    FORECASTS_SWEPT,
    PREDICTION_RUNS,
)
from queuecast.services.estimation import (
    EstimationEngine,
    EstimationError,
    InsufficientData,
    ModelConfig,
)
from queuecast.services.forecast_store import ForecastRecord, ForecastStore

logger = structlog.get_logger("prediction")

RETENTION_WINDOW = timedelta(days=2)


class FailureKind(str, Enum):
    INSUFFICIENT_DATA = "insufficient_data"
    ESTIMATION_FAILED = "estimation_failed"
    NOT_FOUND = "not_found"
    STORE_FAILED = "store_failed"
    INVALID_REQUEST = "invalid_request"


@dataclass(frozen=True)
class PredictionFailure:
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class ForecastResult:
    queue_id: str
    est_wait_time: float
    entry_probability: float
    confidence_interval: Tuple[float, float]


@dataclass(frozen=True)
class StoredForecast(ForecastResult):
    last_run: datetime


@dataclass(frozen=True)
class SweepResult:
    deleted: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PredictionService:
    def __init__(
        self,
        engine: EstimationEngine,
        store: ForecastStore,
        *,
        retention: timedelta = RETENTION_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.engine = engine
        self.store = store
        self.retention = retention
        self._clock = clock
        self._stamp_lock = threading.Lock()
        self._last_stamp: Optional[datetime] = None

    @property
    def config(self) -> ModelConfig:
        return self.engine.config

    def _next_stamp(self) -> datetime:
        # Strictly increasing even when two computes land on the same clock tick.
        with self._stamp_lock:
            now = self._clock()
            if self._last_stamp is not None and now <= self._last_stamp:
                now = self._last_stamp + timedelta(microseconds=1)
            self._last_stamp = now
            return now

    async def compute(
        self, queue_id: str, model_id: Optional[str] = None
    ) -> Union[ForecastResult, PredictionFailure]:
        if not queue_id or not queue_id.strip():
            return PredictionFailure(FailureKind.INVALID_REQUEST, "queueID must be a non-empty identifier.")

        active = self.config
        if model_id is not None and model_id != active.model_id:
            # TODO: reject mismatched model IDs once more than one engine can be registered.
            logger.warning(
                "prediction.model_mismatch",
                queue_id=queue_id,
                requested_model_id=model_id,
                active_model_id=active.model_id,
            )

        start = time.perf_counter()
        try:
            outcome = await self.engine.estimate(queue_id)
        except EstimationError as exc:
            PREDICTION_RUNS.labels(outcome="estimation_failed").inc()
            logger.exception("prediction.estimation_failed", queue_id=queue_id)
            return PredictionFailure(
                FailureKind.ESTIMATION_FAILED,
                f"Failed to generate prediction due to internal estimation error: {exc}",
            )
        finally:
            ESTIMATION_LATENCY.observe(time.perf_counter() - start)

        if isinstance(outcome, InsufficientData):
            PREDICTION_RUNS.labels(outcome="insufficient_data").inc()
            logger.info("prediction.insufficient_data", queue_id=queue_id)
            return PredictionFailure(
                FailureKind.INSUFFICIENT_DATA,
                f"Insufficient information to generate a prediction for queue '{queue_id}'.",
            )

        record = ForecastRecord(
            queue_id=queue_id,
            model_id=active.model_id,
            model_type=active.model_type.value,
            accuracy_threshold=active.accuracy_threshold,
            est_wait_time=outcome.est_wait_time,
            entry_probability=min(1.0, max(0.0, outcome.entry_probability)),
            confidence_interval=outcome.confidence_interval,
            last_run=self._next_stamp(),
        )
        try:
            await asyncio.to_thread(self.store.upsert, record)
        except Exception as exc:
            PREDICTION_RUNS.labels(outcome="store_failed").inc()
            logger.exception("prediction.store_failed", queue_id=queue_id)
            return PredictionFailure(FailureKind.STORE_FAILED, f"Failed to store prediction: {exc}")

        PREDICTION_RUNS.labels(outcome="stored").inc()
        logger.info(
            "prediction.stored",
            queue_id=queue_id,
            est_wait_time=record.est_wait_time,
            entry_probability=record.entry_probability,
        )
        return ForecastResult(
            queue_id=queue_id,
            est_wait_time=record.est_wait_time,
            entry_probability=record.entry_probability,
            confidence_interval=record.confidence_interval,
        )

    async def retrieve(self, queue_id: str) -> Union[StoredForecast, PredictionFailure]:
        try:
            record = await asyncio.to_thread(self.store.find, queue_id)
        except Exception as exc:
            logger.exception("prediction.retrieve_failed", queue_id=queue_id)
            return PredictionFailure(FailureKind.STORE_FAILED, f"Failed to retrieve forecast: {exc}")

        if record is None:
            return PredictionFailure(FailureKind.NOT_FOUND, f"No forecast found for queue '{queue_id}'.")
        return StoredForecast(
            queue_id=record.queue_id,
            est_wait_time=record.est_wait_time,
            entry_probability=record.entry_probability,
            confidence_interval=record.confidence_interval,
            last_run=record.last_run,
        )

    async def sweep(self) -> Union[SweepResult, PredictionFailure]:
        """Delete forecasts whose last run is older than the retention window."""
        cutoff = self._clock() - self.retention
        try:
            deleted = await asyncio.to_thread(self.store.delete_older_than, cutoff)
        except Exception as exc:
            logger.exception("prediction.sweep_failed", cutoff=cutoff.isoformat())
            return PredictionFailure(FailureKind.STORE_FAILED, f"Failed to clean old reports: {exc}")

        FORECASTS_SWEPT.inc(deleted)
        logger.info("prediction.swept", deleted=deleted, cutoff=cutoff.isoformat())
        return SweepResult(deleted=deleted)
