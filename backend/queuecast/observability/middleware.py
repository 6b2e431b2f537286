from __future__ import annotations

import time
import uuid
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .metrics import REQUEST_COUNTER, REQUEST_LATENCY, record_latency

logger = structlog.get_logger("http")

REQUEST_ID_HEADER = "X-Request-Id"
UNMATCHED_ROUTE = "<unmatched>"


def _route_label(request: Request) -> str:
    # Route template, never the raw path: unmatched URLs share one label.
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


def _observe(request: Request, elapsed_s: float, status_code: int) -> None:
    path = _route_label(request)
    record_latency(path, elapsed_s * 1000)
    REQUEST_COUNTER.labels(path=path, method=request.method, status=str(status_code)).inc()
    REQUEST_LATENCY.labels(path=path, method=request.method).observe(elapsed_s)


async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    start = time.perf_counter()
    try:
        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start
            _observe(request, elapsed, 500)
            logger.exception("request.error", status_code=500, duration_ms=round(elapsed * 1000, 2))
            raise

        elapsed = time.perf_counter() - start
        _observe(request, elapsed, response.status_code)
        logger.info(
            "request.completed",
            status_code=response.status_code,
            duration_ms=round(elapsed * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        structlog.contextvars.clear_contextvars()


def register_request_middleware(app: FastAPI) -> None:
    app.middleware("http")(request_context_middleware)


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort 500 in the same ``{"error": ...}`` shape the Prediction actions use."""
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        "request.unhandled_exception",
        exc_type=type(exc).__name__,
        error=str(exc),
    )
    payload: dict[str, Any] = {"error": "Internal Server Error"}
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=500, content=payload)
