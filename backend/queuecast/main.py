from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import router objects explicitly to avoid module name collisions
from queuecast.routers.health import router as health_router
from queuecast.routers.prediction import router as prediction_router
from queuecast.db.session import init_db
from queuecast.observability.logging import configure_logging
from queuecast.observability.middleware import register_request_middleware, unhandled_exception_handler
from queuecast.observability.metrics import router as observability_router
from queuecast.scheduler.setup import init_scheduler, shutdown_scheduler
from queuecast.schemas.common import API_VERSION

configure_logging()

DEV_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


def create_app() -> FastAPI:
    app = FastAPI(title="QueueCast", version=API_VERSION)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=DEV_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400
    )

    register_request_middleware(app)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.on_event("startup")
    async def _startup() -> None:
        try:
            init_db()
        except Exception:
            logging.getLogger(__name__).exception("Failed to create tables on startup")
            raise
        await init_scheduler()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await shutdown_scheduler()

    app.include_router(health_router)
    app.include_router(observability_router)
    app.include_router(prediction_router)

    return app


app = create_app()
