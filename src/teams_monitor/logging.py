"""Structured logging for the monitor process."""

import logging
import sys

import structlog

# stdlib loggers routed through the root handler
FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# inotify and fsevents emitters log every raw notification at DEBUG
QUIET_LOGGERS = ("watchdog",)


def _renderer(debug: bool) -> structlog.typing.Processor:
    if debug:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging(debug: bool = False) -> None:
    """Configure structlog and the standard library loggers.

    Debug mode renders readable console lines; otherwise each event is
    one JSON object on stdout. Watchdog's own loggers stay at WARNING
    whatever the level.

    Args:
        debug: Enable debug-level, console-rendered logging when True.
    """
    level = logging.DEBUG if debug else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _renderer(debug),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in FORWARDED_LOGGERS:
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
