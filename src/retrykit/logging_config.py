"""Structured logging setup for processes that use retrykit.

The executor logs through structlog and binds ``operation`` and ``attempt``
in contextvars for the duration of an execution. This module installs the
processor chain that renders those events: JSON lines in production, a
colored console otherwise. Call it once at process start:

    from retrykit.config import Settings
    from retrykit.logging_config import configure_logging_from_settings

    configure_logging_from_settings(Settings())
"""

import logging
import sys
from datetime import timedelta
from typing import IO, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from retrykit.config import Settings

APP_NAME = "retrykit"

# Client libraries whose per-request logs duplicate the retry events
NOISY_LOGGERS = ("httpx", "httpcore")


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every event with the emitting library."""
    event_dict.setdefault("app", APP_NAME)
    return event_dict


def render_durations(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace timedelta values with integer milliseconds under a ``_ms`` key.

    ``delay=timedelta(seconds=1.5)`` becomes ``delay_ms=1500``, which both
    renderers print as a plain number.
    """
    for key in [k for k, v in event_dict.items() if isinstance(v, timedelta)]:
        event_dict[f"{key}_ms"] = int(event_dict.pop(key).total_seconds() * 1000)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    stream: Optional[IO[str]] = None,
) -> None:
    """Route structlog and stdlib logging through one formatted handler.

    Args:
        log_level: Level name; unknown names fall back to INFO. Per-attempt
            failures and computed delays are only visible at DEBUG.
        environment: "production" selects JSON output
        stream: Destination, stdout by default
    """
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    json_output = environment.lower() == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        render_durations,
    ]
    if json_output:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def configure_logging_from_settings(settings: Settings, stream: Optional[IO[str]] = None) -> None:
    """Apply LOG_LEVEL and ENVIRONMENT from settings."""
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, stream=stream)
