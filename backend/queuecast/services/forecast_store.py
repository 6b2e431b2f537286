from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker

from queuecast.models.forecast import PredictionForecast


@dataclass(frozen=True)
class ForecastRecord:
    queue_id: str
    model_id: str
    model_type: str
    accuracy_threshold: float
    est_wait_time: float
    entry_probability: float
    confidence_interval: Tuple[float, float]
    last_run: datetime


class ForecastStore(Protocol):
    def upsert(self, record: ForecastRecord) -> None:
        ...

    def find(self, queue_id: str) -> Optional[ForecastRecord]:
        ...

    def delete_older_than(self, cutoff: datetime) -> int:
        ...

    def count(self) -> int:
        ...


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we write is UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _to_row(record: ForecastRecord) -> dict:
    lower, upper = record.confidence_interval
    return {
        "queue_id": record.queue_id,
        "model_id": record.model_id,
        "model_type": record.model_type,
        "accuracy_threshold": float(record.accuracy_threshold),
        "est_wait_time": float(record.est_wait_time),
        "entry_probability": float(record.entry_probability),
        "ci_lower": float(lower),
        "ci_upper": float(upper),
        "last_run": _as_utc(record.last_run),
    }


def _from_row(row: PredictionForecast) -> ForecastRecord:
    return ForecastRecord(
        queue_id=row.queue_id,
        model_id=row.model_id,
        model_type=row.model_type,
        accuracy_threshold=float(row.accuracy_threshold),
        est_wait_time=float(row.est_wait_time),
        entry_probability=float(row.entry_probability),
        confidence_interval=(float(row.ci_lower), float(row.ci_upper)),
        last_run=_as_utc(row.last_run),
    )


class SqlForecastStore:
    """Forecast persistence on the application database, one row per queue."""

    # Dialects with a single-statement INSERT .. ON CONFLICT DO UPDATE.
    _UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def upsert(self, record: ForecastRecord) -> None:
        values = _to_row(record)
        with self._session_factory() as db:
            dialect = db.get_bind().dialect.name
            insert = self._UPSERT_INSERTS.get(dialect)
            if insert is None:
                # merge() is a read-then-write and can lose a concurrent update.
                raise NotImplementedError(f"forecast upsert is not supported on dialect '{dialect}'")
            stmt = insert(PredictionForecast).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["queue_id"],
                set_={k: stmt.excluded[k] for k in values if k != "queue_id"},
            )
            db.execute(stmt)
            db.commit()

    def find(self, queue_id: str) -> Optional[ForecastRecord]:
        with self._session_factory() as db:
            row = db.get(PredictionForecast, queue_id)
            return _from_row(row) if row is not None else None

    def delete_older_than(self, cutoff: datetime) -> int:
        stmt = delete(PredictionForecast).where(PredictionForecast.last_run < _as_utc(cutoff))
        with self._session_factory() as db:
            result = db.execute(stmt)
            db.commit()
            return int(result.rowcount or 0)

    def count(self) -> int:
        with self._session_factory() as db:
            return int(db.scalar(select(func.count()).select_from(PredictionForecast)) or 0)


class InMemoryForecastStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._records: Dict[str, ForecastRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, record: ForecastRecord) -> None:
        with self._lock:
            self._records[record.queue_id] = replace(record, last_run=_as_utc(record.last_run))

    def find(self, queue_id: str) -> Optional[ForecastRecord]:
        with self._lock:
            return self._records.get(queue_id)

    def delete_older_than(self, cutoff: datetime) -> int:
        cutoff = _as_utc(cutoff)
        with self._lock:
            stale = [k for k, r in self._records.items() if r.last_run < cutoff]
            for k in stale:
                del self._records[k]
            return len(stale)

    def count(self) -> int:
        with self._lock:
            return len(self._records)
