from __future__ import annotations

import logging
from typing import Any, Dict

import structlog

from queuecast.config import get_settings

# APScheduler logs every job submission at INFO; the job wrapper already does.
_NOISY_LOGGERS = ("apscheduler.scheduler", "apscheduler.executors.default")


def configure_logging(level: str | None = None) -> None:
    """Send stdlib and structlog records through one JSON renderer on stdout."""
    settings = get_settings()
    log_level = (level or settings.LOG_LEVEL).upper()

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _stamp_environment(settings.ENV),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def _stamp_environment(env: str):
    def processor(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("env", env)
        return event_dict

    return processor
