import asyncio
from datetime import datetime, timezone

from queuecast.models.user_report import UserReport
from queuecast.services.prediction import FailureKind, ForecastResult
from queuecast.services.syncs import QueueStatusUpdate, predict_to_queue, refresh_from_report


class _RecordingSink:
    def __init__(self):
        self.updates = []

    def update_status(self, update):
        self.updates.append(update)


class _BrokenSink:
    def update_status(self, update):
        raise RuntimeError("queue service rejected the update")


def _report(validated: bool) -> UserReport:
    return UserReport(
        id=7,
        queue_id="location:popular_cafe",
        reported_wait_minutes=35.0,
        validated=validated,
        submitted_at=datetime.now(timezone.utc),
    )


def test_validated_report_refreshes_forecast(prediction_service, forecast_store):
    outcome = asyncio.run(refresh_from_report(prediction_service, _report(validated=True)))
    assert isinstance(outcome, ForecastResult)
    stored = forecast_store.find("location:popular_cafe")
    assert stored is not None
    assert stored.model_id == prediction_service.config.model_id


def test_unvalidated_report_is_ignored(prediction_service, forecast_store):
    outcome = asyncio.run(refresh_from_report(prediction_service, _report(validated=False)))
    assert outcome.kind is FailureKind.INVALID_REQUEST
    assert outcome.message == "Report 7 is not yet validated"
    assert forecast_store.count() == 0


def test_stored_forecast_is_pushed_to_queue(prediction_service):
    asyncio.run(prediction_service.compute("location:popular_cafe", "m1"))
    stored = asyncio.run(prediction_service.retrieve("location:popular_cafe"))
    sink = _RecordingSink()

    update = asyncio.run(predict_to_queue(prediction_service, sink, "location:popular_cafe"))
    assert update == QueueStatusUpdate(
        queue_id="location:popular_cafe",
        est_wait_time=round(stored.est_wait_time),
        est_ppl_in_line=round(stored.entry_probability * 100),
    )
    assert sink.updates == [update]


def test_missing_forecast_is_not_pushed(prediction_service):
    sink = _RecordingSink()
    outcome = asyncio.run(predict_to_queue(prediction_service, sink, "location:unknown"))
    assert outcome.kind is FailureKind.NOT_FOUND
    assert sink.updates == []


def test_sink_failure_is_reported(prediction_service):
    asyncio.run(prediction_service.compute("location:cafe", "m1"))
    outcome = asyncio.run(predict_to_queue(prediction_service, _BrokenSink(), "location:cafe"))
    assert outcome.kind is FailureKind.STORE_FAILED
    assert "rejected" in outcome.message
