from fastapi import APIRouter, Depends

from queuecast.dependencies import get_prediction_service
from queuecast.schemas.common import meta_now, ok
from queuecast.services.prediction import PredictionService

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def healthcheck(service: PredictionService = Depends(get_prediction_service)):
    """Liveness plus the model the service is answering with."""
    config = service.config
    return ok(
        data={
            "status": "ok",
            "model_id": config.model_id,
            "model_type": config.model_type.value,
        },
        meta=meta_now(),
    )
