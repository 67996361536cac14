from __future__ import annotations

import logging
import sys
from typing import Any, Callable, MutableMapping, cast

import structlog

from rental_monitor.config import DEBUG, LOG_LEVEL

Processor = Callable[[Any, str, MutableMapping[str, Any]], Any]

# HTTP/1.1 (requests) and HTTP/2 (httpx) client internals log every frame at DEBUG
NOISY_LOGGERS = ("urllib3", "requests", "httpx", "httpcore", "hpack", "h2")


def setup_logging() -> None:
    """
    Configure structlog for a monitor run.

    JSON lines for the scheduler's log collector, or a coloured console
    renderer when LOG_LEVEL=DEBUG. Events from user tasks running on worker
    threads go through the same configuration.
    """
    logging.basicConfig(
        format="[%(asctime)s] %(levelname)s in %(name)s:%(lineno)d: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        level=LOG_LEVEL,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = cast(
        Processor,
        structlog.dev.ConsoleRenderer(colors=True) if DEBUG else structlog.processors.JSONRenderer(),
    )
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if not DEBUG:
        # The console renderer prints tracebacks itself
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
