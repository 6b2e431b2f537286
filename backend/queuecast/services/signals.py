"""
Signal providers feeding the estimation engine.

A provider returns the historical baseline for a queue together with any live
observations (validated user reports). Providers never decide whether the
signal is sufficient; that is the engine's job.
"""
from __future__ import annotations

import asyncio
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from queuecast.models.user_report import UserReport
from queuecast.utils.numeric import coerce_float

DEFAULT_NO_DATA_IDS = frozenset({"queue:insufficient_data", "loc:no-data"})

# (identifier fragment, baseline minutes); first match wins.
_DEMO_BASELINES: Tuple[Tuple[str, float], ...] = (
    ("popular_cafe", 30.0),
    ("cafe", 30.0),
    ("public_library", 7.0),
    ("library", 7.0),
)


@dataclass(frozen=True)
class LiveObservation:
    wait_minutes: Optional[float] = None
    crowd_level: Optional[str] = None


@dataclass(frozen=True)
class Signals:
    baseline_wait: Optional[float] = None
    observations: Tuple[LiveObservation, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.baseline_wait is None and not self.observations


class SignalProvider(Protocol):
    async def fetch(self, queue_id: str) -> Signals:
        ...


def _stable_baseline(queue_id: str) -> float:
    # 15..29 minutes, stable across processes (unlike hash()).
    return 15.0 + float(zlib.crc32(queue_id.encode("utf-8")) % 15)


class DemoSignalProvider:
    """Deterministic stand-in for a historical-trend source, keyed on identifier patterns."""

    def __init__(
        self,
        no_data_ids: Iterable[str] = DEFAULT_NO_DATA_IDS,
        latency_ms: int = 0,
    ) -> None:
        self.no_data_ids = frozenset(no_data_ids)
        self.latency_ms = max(0, int(latency_ms))

    async def fetch(self, queue_id: str) -> Signals:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000.0)

        lowered = queue_id.lower()
        if queue_id in self.no_data_ids or "insufficient" in lowered:
            return Signals()

        for fragment, minutes in _DEMO_BASELINES:
            if fragment in lowered:
                return Signals(baseline_wait=minutes)
        return Signals(baseline_wait=_stable_baseline(queue_id))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportSignalProvider:
    """
    Layers recent validated user reports over a baseline provider.

    Only reports with ``validated = true`` submitted inside the lookback window
    are used; older reports describe a queue that has since moved on.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        baseline: SignalProvider,
        *,
        lookback: timedelta = timedelta(minutes=120),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.baseline = baseline
        self.lookback = lookback
        self._clock = clock

    def _load_observations(self, queue_id: str, since: datetime) -> List[LiveObservation]:
        stmt = (
            select(UserReport.reported_wait_minutes, UserReport.reported_crowd_level)
            .where(
                UserReport.queue_id == queue_id,
                UserReport.validated.is_(True),
                UserReport.submitted_at >= since,
            )
            .order_by(UserReport.submitted_at.asc())
        )
        with self._session_factory() as db:
            rows = db.execute(stmt).all()
        return [
            LiveObservation(wait_minutes=coerce_float(wait), crowd_level=level)
            for wait, level in rows
        ]

    async def fetch(self, queue_id: str) -> Signals:
        base = await self.baseline.fetch(queue_id)
        since = self._clock() - self.lookback
        live = await asyncio.to_thread(self._load_observations, queue_id, since)
        return Signals(
            baseline_wait=base.baseline_wait,
            observations=base.observations + tuple(live),
        )
