from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union

import structlog

from queuecast.models.user_report import UserReport
from queuecast.services.prediction import (
    FailureKind,
    ForecastResult,
    PredictionFailure,
    PredictionService,
)

logger = structlog.get_logger("syncs")


@dataclass(frozen=True)
class QueueStatusUpdate:
    queue_id: str
    est_wait_time: int
    est_ppl_in_line: int


class QueueStatusSink(Protocol):
    def update_status(self, update: QueueStatusUpdate) -> None:
        ...


async def refresh_from_report(
    service: PredictionService,
    report: UserReport,
    model_id: Optional[str] = None,
) -> Union[ForecastResult, PredictionFailure]:
    """Recompute the forecast for a report's queue once the report is validated."""
    if not report.validated:
        return PredictionFailure(
            FailureKind.INVALID_REQUEST,
            f"Report {report.id} is not yet validated",
        )
    outcome = await service.compute(report.queue_id, model_id or service.config.model_id)
    if not isinstance(outcome, PredictionFailure):
        logger.info("sync.report_to_predict", queue_id=report.queue_id, report_id=report.id)
    return outcome


async def predict_to_queue(
    service: PredictionService,
    sink: QueueStatusSink,
    queue_id: str,
) -> Union[QueueStatusUpdate, PredictionFailure]:
    """Push the stored forecast for ``queue_id`` to the queue-status sink."""
    forecast = await service.retrieve(queue_id)
    if isinstance(forecast, PredictionFailure):
        return forecast

    update = QueueStatusUpdate(
        queue_id=queue_id,
        est_wait_time=int(round(forecast.est_wait_time)),
        # Rough head count: the probability read as a percentage.
        est_ppl_in_line=int(round(forecast.entry_probability * 100)),
    )
    try:
        sink.update_status(update)
    except Exception as exc:
        logger.exception("sync.predict_to_queue_failed", queue_id=queue_id)
        return PredictionFailure(FailureKind.STORE_FAILED, f"Failed to update queue status: {exc}")

    logger.info(
        "sync.predict_to_queue",
        queue_id=queue_id,
        est_wait_time=update.est_wait_time,
        est_ppl_in_line=update.est_ppl_in_line,
    )
    return update
