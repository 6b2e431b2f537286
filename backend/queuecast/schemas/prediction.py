from __future__ import annotations
from datetime import datetime
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

from queuecast.services.prediction import ForecastResult, StoredForecast

class RunPredictionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    queue_id: str = Field(..., alias="queueID", description="Location/queue identifier")
    model_id: str | None = Field(None, alias="modelID", description="Model the caller expects to run")

class GetForecastIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    queue_id: str = Field(..., alias="queueID")

class PredictionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    queue_id: str = Field(..., alias="queueID")
    est_wait_time: float = Field(..., alias="estWaitTime", ge=0, description="Minutes")
    entry_probability: float = Field(..., alias="entryProbability", ge=0, le=1)
    confidence_interval: Tuple[float, float] = Field(..., alias="confidenceInterval")

    @classmethod
    def from_result(cls, result: ForecastResult) -> "PredictionOut":
        return cls(
            queue_id=result.queue_id,
            est_wait_time=result.est_wait_time,
            entry_probability=result.entry_probability,
            confidence_interval=result.confidence_interval,
        )

class ForecastOut(PredictionOut):
    last_run: datetime = Field(..., alias="lastRun", description="UTC time of the last successful run")

    @classmethod
    def from_stored(cls, stored: StoredForecast) -> "ForecastOut":
        return cls(
            queue_id=stored.queue_id,
            est_wait_time=stored.est_wait_time,
            entry_probability=stored.entry_probability,
            confidence_interval=stored.confidence_interval,
            last_run=stored.last_run,
        )

class ErrorOut(BaseModel):
    error: str
