from __future__ import annotations

import functools
import time
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from .metrics import JOB_DURATION

T = TypeVar("T")

logger = structlog.get_logger("job")


def _summary(result: Any) -> dict[str, Any]:
    # Sweep results expose `deleted`; anything sized reports its length.
    deleted = getattr(result, "deleted", None)
    if isinstance(deleted, int):
        return {"deleted": deleted}
    if hasattr(result, "__len__"):
        return {"result_size": len(result)}
    return {}


def log_job(name: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Wrap a coroutine job with start/finish events and a duration histogram."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.perf_counter()
            logger.info("job.start", job=name)
            try:
                result = await func(*args, **kwargs)
            except Exception:
                elapsed = time.perf_counter() - start
                JOB_DURATION.labels(job=name, status="error").observe(elapsed)
                logger.exception("job.error", job=name, duration_ms=round(elapsed * 1000, 2))
                raise
            elapsed = time.perf_counter() - start
            JOB_DURATION.labels(job=name, status="ok").observe(elapsed)
            logger.info(
                "job.completed",
                job=name,
                duration_ms=round(elapsed * 1000, 2),
                **_summary(result),
            )
            return result

        return wrapper

    return decorator
