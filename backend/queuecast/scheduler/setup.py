from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from pytz import timezone

from queuecast.scheduler.jobs import sweep_stale_forecasts
from queuecast.config import get_settings


settings = get_settings()


def _jobstore():
    if settings.SCHEDULER_DB_URL:
        return SQLAlchemyJobStore(url=settings.SCHEDULER_DB_URL)
    return MemoryJobStore()


# Global scheduler instance; jobs are registered on startup.
scheduler = AsyncIOScheduler(
    jobstores={"default": _jobstore()},
    timezone=timezone(settings.SCHEDULER_TZ),
)


def configure_jobs() -> None:
    """
    Register all recurring jobs with the scheduler.

    - sweep-stale-forecasts: delete forecasts past the retention window
    """
    scheduler.add_job(
        sweep_stale_forecasts,
        "interval",
        id="sweep-stale-forecasts",
        minutes=settings.SWEEP_INTERVAL_MINUTES,
        replace_existing=True,
        misfire_grace_time=600,
        coalesce=True,
        max_instances=1,
    )


async def init_scheduler() -> None:
    """
    FastAPI startup hook: start the scheduler if SCHEDULER_ENABLED is true.
    """
    if not settings.SCHEDULER_ENABLED:
        return
    configure_jobs()
    scheduler.start()


async def shutdown_scheduler() -> None:
    """
    FastAPI shutdown hook: stop the scheduler cleanly.
    """
    if scheduler.running:
        scheduler.shutdown(wait=False)
