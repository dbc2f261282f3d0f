"""
Structured logging configuration using structlog.

Every check logs event-style keys (feed_fetched, page_fetch_error, ...).
A refresh run binds its run_id, and each check binds the source URL and
kind, so one source can be followed through the strategy chain.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Event keys holding URLs, truncated in output
URL_KEYS = ("source", "url", "link", "feed_url", "content_identity")
MAX_LOGGED_URL = 120


def shorten_urls(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Truncate URL values in an event."""
    for key in URL_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_LOGGED_URL:
            event_dict[key] = value[:MAX_LOGGED_URL - 3] + "..."
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    run_id: Optional[str] = None
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output logs as JSON
        run_id: Optional refresh run ID to include in all log entries
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )

    # Request-level chatter from the HTTP stack
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        shorten_urls,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    if run_id:
        structlog.contextvars.bind_contextvars(run_id=run_id)


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Get a logger instance.

    Args:
        name: Optional logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger


def bind_context(**kwargs) -> None:
    """Bind additional context to all subsequent log entries."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


def source_context(url: str, kind: str):
    """
    Bind the source being checked to every entry logged inside the block.

    The previous context is restored on exit, so concurrent checks in one
    batch never see each other's source.
    """
    return structlog.contextvars.bound_contextvars(source=url, source_kind=kind)
