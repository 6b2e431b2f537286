from __future__ import annotations

from queuecast.dependencies import get_prediction_service
from queuecast.observability.instrument import log_job
from queuecast.services.prediction import PredictionFailure, SweepResult


@log_job("forecast.sweep")
async def sweep_stale_forecasts() -> SweepResult:
    """
    Periodic staleness sweep.

    Deletes forecasts whose last run is older than the retention window. A
    store failure is raised so the job wrapper logs it and APScheduler records
    the run as failed; the next interval simply tries again.
    """
    outcome = await get_prediction_service().sweep()
    if isinstance(outcome, PredictionFailure):
        raise RuntimeError(outcome.message)
    return outcome
