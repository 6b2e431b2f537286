# queuecast/routers/prediction.py
"""
Prediction concept actions.

Every action is a POST with a JSON body and answers 200. Failures come back
as ``{"error": "<message>"}``; the HTTP status is not a success signal.

- runPrediction   {queueID, modelID} -> {queueID, estWaitTime, entryProbability, confidenceInterval}
- getForecast     {queueID}          -> same fields + lastRun (ISO 8601, UTC)
- cleanOldReports {}                 -> {}
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from queuecast.dependencies import get_prediction_service
from queuecast.schemas.common import error_response
from queuecast.schemas.prediction import (
    ForecastOut,
    GetForecastIn,
    PredictionOut,
    RunPredictionIn,
)
from queuecast.services.prediction import PredictionFailure, PredictionService

router = APIRouter(prefix="/Prediction", tags=["prediction"])


@router.post("/runPrediction")
async def run_prediction(
    body: RunPredictionIn,
    service: PredictionService = Depends(get_prediction_service),
):
    outcome = await service.compute(body.queue_id, body.model_id)
    if isinstance(outcome, PredictionFailure):
        return error_response(outcome.message)
    return JSONResponse(content=PredictionOut.from_result(outcome).model_dump(mode="json", by_alias=True))


@router.post("/getForecast")
async def get_forecast(
    body: GetForecastIn,
    service: PredictionService = Depends(get_prediction_service),
):
    outcome = await service.retrieve(body.queue_id)
    if isinstance(outcome, PredictionFailure):
        return error_response(outcome.message)
    return JSONResponse(content=ForecastOut.from_stored(outcome).model_dump(mode="json", by_alias=True))


@router.post("/cleanOldReports")
async def clean_old_reports(service: PredictionService = Depends(get_prediction_service)):
    outcome = await service.sweep()
    if isinstance(outcome, PredictionFailure):
        return error_response(outcome.message)
    return JSONResponse(content={})
