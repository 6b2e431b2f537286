# backend/queuecast/config.py
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # environment: "dev" for running the app locally, "test" for pytest
    ENV: str = "dev"

    DATABASE_URL: str | None = None
    TEST_DATABASE_URL: str | None = None
    DB_REQUIRE_SSL: bool = False
    # Keep forecasts in process memory instead of the database (demo/dev only).
    USE_IN_MEMORY_STORE: bool = False

    # --- Prediction model ---
    PREDICTION_MODEL_ID: str = "default_prediction_model_v1"
    PREDICTION_MODEL_TYPE: Literal["regression", "bayesian", "neural"] = "neural"
    PREDICTION_ACCURACY_THRESHOLD: float = Field(0.90, description="Target accuracy, 0..1")
    # "demo" uses the deterministic stub, "reports" layers validated user reports on top of it.
    PREDICTION_SIGNAL_SOURCE: Literal["demo", "reports"] = "demo"
    PREDICTION_LATENCY_MS: int = 0
    PREDICTION_TIMEOUT_SECONDS: float | None = None
    REPORT_LOOKBACK_MINUTES: int = 120

    # --- Scheduler ---
    SCHEDULER_ENABLED: bool = True
    # IANA timezone name used by APScheduler (e.g., "UTC", "America/New_York").
    SCHEDULER_TZ: str = "UTC"
    # Optional persistent job store URL. If None, jobs live in memory.
    SCHEDULER_DB_URL: str | None = None
    SWEEP_INTERVAL_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"

    @field_validator("PREDICTION_ACCURACY_THRESHOLD")
    @classmethod
    def _check_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("PREDICTION_ACCURACY_THRESHOLD must be between 0 and 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
