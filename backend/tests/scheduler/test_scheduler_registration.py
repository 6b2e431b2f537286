# backend/tests/scheduler/test_scheduler_registration.py
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from queuecast.scheduler.jobs import sweep_stale_forecasts
from queuecast.scheduler.setup import configure_jobs, scheduler
from queuecast.services.forecast_store import ForecastRecord
from queuecast.services.prediction import SweepResult


def test_configure_jobs_registers_sweep() -> None:
    """
    configure_jobs() registers the interval staleness sweep.
    """
    # Start from a clean slate so repeated test runs don't accumulate jobs
    scheduler.remove_all_jobs()

    configure_jobs()

    jobs = {job.id: job for job in scheduler.get_jobs()}
    assert "sweep-stale-forecasts" in jobs
    assert jobs["sweep-stale-forecasts"].func is sweep_stale_forecasts

    scheduler.remove_all_jobs()


def test_sweep_job_deletes_stale_forecasts(prediction_service, forecast_store, monkeypatch) -> None:
    monkeypatch.setattr("queuecast.scheduler.jobs.get_prediction_service", lambda: prediction_service)
    forecast_store.upsert(
        ForecastRecord(
            queue_id="location:old_report_queue",
            model_id="m1",
            model_type="neural",
            accuracy_threshold=0.9,
            est_wait_time=12.0,
            entry_probability=0.88,
            confidence_interval=(10.0, 14.5),
            last_run=datetime.now(timezone.utc) - timedelta(days=3),
        )
    )

    assert asyncio.run(sweep_stale_forecasts()) == SweepResult(deleted=1)
    assert forecast_store.count() == 0


def test_sweep_job_raises_on_store_failure(prediction_service, monkeypatch) -> None:
    def _boom(cutoff):
        raise ConnectionError("database is unreachable")

    monkeypatch.setattr(prediction_service.store, "delete_older_than", _boom)
    monkeypatch.setattr("queuecast.scheduler.jobs.get_prediction_service", lambda: prediction_service)

    with pytest.raises(RuntimeError, match="Failed to clean old reports"):
        asyncio.run(sweep_stale_forecasts())
