from __future__ import annotations
from typing import Any, Dict, Optional
from fastapi import status as http
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from datetime import datetime, timezone
from fastapi.encoders import jsonable_encoder

from queuecast.schemas.prediction import ErrorOut

API_VERSION = "0.1.0"

class ResponseMeta(BaseModel):
    params: Optional[Dict[str, Any]] = None
    generated_at: str
    version: str = API_VERSION

class Envelope(BaseModel):
    ok: bool
    data: Any | None = None
    meta: ResponseMeta

def ok(data: Any = None, meta: Optional[ResponseMeta] = None, status_code: int = http.HTTP_200_OK) -> JSONResponse:
    """
    Return the success envelope used by the operational endpoints.
    """
    if meta is None:
        meta = meta_now()
    payload = Envelope(ok=True, data=data, meta=meta).model_dump()
    return JSONResponse(content=jsonable_encoder(payload), status_code=status_code)

def error_response(message: str, status_code: int = http.HTTP_200_OK) -> JSONResponse:
    """
    Concept actions report failures as {"error": "..."} with a 200 status;
    callers check for the field rather than the status code.
    """
    return JSONResponse(content=ErrorOut(error=message).model_dump(), status_code=status_code)

def meta_now(**params) -> ResponseMeta:
    clean = {k: v for k, v in params.items() if v is not None}
    return ResponseMeta(
        params=clean or None,
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
