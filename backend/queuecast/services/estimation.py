# queuecast/services/estimation.py
"""
Wait-time estimation.

Blends a historical baseline with live, validated observations:

- live weight ``w = n / (n + PRIOR_STRENGTH)`` for ``n`` reported waits,
  so a handful of reports nudges the baseline and a crowd of them dominates;
- crowd levels shift the wait by a fixed number of minutes and lower the
  entry probability;
- entry probability falls linearly with the wait and is clamped to [0, 1];
- the confidence band is at least ``MIN_SPREAD`` minutes wide and skewed
  upwards (queues rarely move faster than expected).

No baseline and no reported waits means there is nothing to estimate from;
that is reported as ``InsufficientData``, never as a zero-minute forecast.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
from sqlalchemy.orm import Session, sessionmaker

from queuecast.config import Settings
from queuecast.services.signals import (
    DemoSignalProvider,
    ReportSignalProvider,
    SignalProvider,
    Signals,
)
from queuecast.utils.numeric import clamp, coerce_float

logger = logging.getLogger(__name__)

PRIOR_STRENGTH = 3.0
BASE_ENTRY_PROBABILITY = 0.98
WAIT_PENALTY_PER_MINUTE = 0.008
MIN_SPREAD = 2.0
SPREAD_RATIO = 0.25
UPPER_SKEW = 1.25

CROWD_WAIT_ADJUSTMENT = {"low": -2.0, "medium": 0.0, "high": 5.0}
CROWD_PROBABILITY_PENALTY = {"low": 0.0, "medium": 0.03, "high": 0.08}


class ModelType(str, Enum):
    REGRESSION = "regression"
    BAYESIAN = "bayesian"
    NEURAL = "neural"


@dataclass(frozen=True)
class ModelConfig:
    model_id: str
    model_type: ModelType
    accuracy_threshold: float


@dataclass(frozen=True)
class Estimate:
    est_wait_time: float
    entry_probability: float
    confidence_interval: Tuple[float, float]


@dataclass(frozen=True)
class InsufficientData:
    queue_id: str
    reason: str = "no baseline or live observations"


class EstimationError(Exception):
    """The signal provider or the combination step failed unexpectedly."""


def combine_signals(signals: Signals) -> Optional[Estimate]:
    """Pure combination rule; returns None when there is nothing to estimate from."""
    waits = np.array(
        [w for w in (coerce_float(o.wait_minutes) for o in signals.observations) if w is not None and w >= 0.0],
        dtype=float,
    )
    levels = [
        o.crowd_level.strip().lower()
        for o in signals.observations
        if o.crowd_level and o.crowd_level.strip().lower() in CROWD_WAIT_ADJUSTMENT
    ]
    baseline = coerce_float(signals.baseline_wait)
    if baseline is not None and baseline < 0.0:
        baseline = None

    if baseline is None and waits.size == 0:
        return None

    if waits.size and baseline is not None:
        w = waits.size / (waits.size + PRIOR_STRENGTH)
        wait = (1.0 - w) * baseline + w * float(waits.mean())
    elif waits.size:
        wait = float(waits.mean())
    else:
        wait = float(baseline)

    penalty = 0.0
    if levels:
        wait += float(np.mean([CROWD_WAIT_ADJUSTMENT[lv] for lv in levels]))
        penalty = float(np.mean([CROWD_PROBABILITY_PENALTY[lv] for lv in levels]))
    wait = max(0.0, wait)

    probability = clamp(
        round(BASE_ENTRY_PROBABILITY - WAIT_PENALTY_PER_MINUTE * wait - penalty, 2), 0.0, 1.0
    )

    observed_sd = float(waits.std(ddof=1)) if waits.size > 1 else 0.0
    spread = max(MIN_SPREAD, SPREAD_RATIO * wait, observed_sd)
    lower = round(max(0.0, wait - spread), 1)
    upper = round(wait + UPPER_SKEW * spread, 1)

    return Estimate(
        est_wait_time=round(wait, 1),
        entry_probability=probability,
        confidence_interval=(lower, upper),
    )


class EstimationEngine:
    """Runs the combination rule against one signal provider under one model configuration."""

    def __init__(
        self,
        config: ModelConfig,
        provider: SignalProvider,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.timeout = timeout
        logger.info(
            "estimation.engine_ready model_id=%s model_type=%s",
            config.model_id,
            config.model_type.value,
        )

    async def _fetch(self, queue_id: str) -> Signals:
        if self.timeout:
            return await asyncio.wait_for(self.provider.fetch(queue_id), timeout=self.timeout)
        return await self.provider.fetch(queue_id)

    async def estimate(self, queue_id: str) -> Union[Estimate, InsufficientData]:
        try:
            signals = await self._fetch(queue_id)
            result = combine_signals(signals)
        except asyncio.TimeoutError as exc:
            raise EstimationError(f"signal provider timed out after {self.timeout}s") from exc
        except EstimationError:
            raise
        except Exception as exc:
            raise EstimationError(str(exc) or type(exc).__name__) from exc

        if result is None:
            logger.info("estimation.insufficient_data queue_id=%s", queue_id)
            return InsufficientData(queue_id=queue_id)
        return result


def create_engine_from_settings(
    settings: Settings,
    session_factory: Optional[sessionmaker[Session]] = None,
) -> EstimationEngine:
    config = ModelConfig(
        model_id=settings.PREDICTION_MODEL_ID,
        model_type=ModelType(settings.PREDICTION_MODEL_TYPE),
        accuracy_threshold=float(settings.PREDICTION_ACCURACY_THRESHOLD),
    )
    provider: SignalProvider = DemoSignalProvider(latency_ms=settings.PREDICTION_LATENCY_MS)
    if settings.PREDICTION_SIGNAL_SOURCE == "reports":
        if session_factory is None:
            raise ValueError("the 'reports' signal source needs a database session factory")
        provider = ReportSignalProvider(
            session_factory,
            provider,
            lookback=timedelta(minutes=settings.REPORT_LOOKBACK_MINUTES),
        )
    return EstimationEngine(config, provider, timeout=settings.PREDICTION_TIMEOUT_SECONDS)
