"""Structured logging for the search pipeline.

Console output is human readable; when a log file is configured the same
events are written there as JSON lines. Each pipeline run binds a short
``search_id`` so interleaved runs can be told apart.
"""

import logging
import sys
import time
import uuid
from pathlib import Path
from typing import Any

import structlog

# Libraries that log every request or scoring step at INFO/DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "readability", "readability.readability", "primp")

SEARCH_CONTEXT_KEYS = ("search_id", "engine")


def setup_logging(
    level: str | None = "INFO",
    log_file: Path | None = None,
    show_timestamps: bool = True,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name, or None for INFO
        log_file: When set, events also go to this file as JSON
        show_timestamps: Prefix console lines with the time of day
    """
    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=handlers, format="%(message)s", force=True)

    # Third-party chatter stays out of the pipeline trace unless debugging
    library_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
    ]
    if show_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="%H:%M:%S" if not log_file else "iso"))

    if log_file:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Return the structlog logger for a pipeline component.

    Args:
        name: Dotted component name, e.g. "searchlight.search.fetcher"
    """
    return structlog.get_logger(name)


def bind_search_context(**extra: Any) -> str:
    """Tag every event of the current task with a fresh search id.

    Args:
        **extra: Additional fields to bind, such as ``engine``

    Returns:
        str: The generated search id
    """
    search_id = uuid.uuid4().hex[:8]
    structlog.contextvars.bind_contextvars(search_id=search_id, **extra)
    return search_id


def clear_search_context() -> None:
    """Drop the fields bound by ``bind_search_context``."""
    structlog.contextvars.unbind_contextvars(*SEARCH_CONTEXT_KEYS)


class Timer:
    """Measures a block and logs how long it took.

    Works with both ``with`` and ``async with``. A block that raises is
    logged as failed, with the exception type, and the exception propagates.

    Usage:
        async with Timer("fetch_contents", logger) as timer:
            await fetcher.fetch_contents(items)
        timer.elapsed  # seconds
    """

    def __init__(self, name: str, logger: Any | None = None):
        self.name = name
        self.logger = logger or get_logger("searchlight.timer")
        self.elapsed: float = 0.0
        self._started: float = 0.0

    def _start(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def _stop(self, exc_type: type[BaseException] | None) -> None:
        self.elapsed = time.perf_counter() - self._started
        if exc_type is None:
            self.logger.debug("Timed block finished", block=self.name, elapsed_s=round(self.elapsed, 3))
        else:
            self.logger.debug(
                "Timed block failed",
                block=self.name,
                elapsed_s=round(self.elapsed, 3),
                error_type=exc_type.__name__,
            )

    def __enter__(self) -> "Timer":
        return self._start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self._stop(exc_type)

    async def __aenter__(self) -> "Timer":
        return self._start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._stop(exc_type)
