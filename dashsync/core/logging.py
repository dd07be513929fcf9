"""Structured logging for dashsync.

The library never configures logging itself. Applications call
configure_logging() once at startup to get:

- JSON output in production and staging, console output otherwise
- service and environment on every entry
- namespace and request fields derived from a bound fingerprint

Cache and search components log through get_logger(__name__) and bind
fields such as fingerprint, request_seq and prefix rather than formatting
them into the message.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from dashsync.core.config import get_settings
from dashsync.core.constants import FILTER_SEPARATOR, KEY_SEPARATOR


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add service context to all log entries.

    Args:
        logger: The wrapped logger object.
        method_name: The name of the method called on the logger.
        event_dict: The event dictionary to process.

    Returns:
        Updated event dictionary with service context.
    """
    settings = get_settings()
    event_dict["service"] = settings.service_name
    event_dict["environment"] = settings.environment
    return event_dict


def add_query_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Derive query fields from a bound fingerprint.

    Adds ``namespace`` (the fingerprint's first segment) so logs can be
    filtered per entity, and ``request`` as ``{fingerprint}#{request_seq}``,
    the same label the cache gives its fetch tasks.

    Args:
        logger: The wrapped logger object.
        method_name: The name of the method called on the logger.
        event_dict: The event dictionary to process.

    Returns:
        Updated event dictionary.
    """
    fingerprint = event_dict.get("fingerprint")
    if not isinstance(fingerprint, str) or not fingerprint:
        return event_dict

    path = fingerprint.partition(FILTER_SEPARATOR)[0]
    event_dict.setdefault("namespace", path.partition(KEY_SEPARATOR)[0])
    request_seq = event_dict.get("request_seq")
    if request_seq is not None:
        event_dict["request"] = f"{fingerprint}#{request_seq}"
    return event_dict


def configure_logging() -> None:
    """Configure structured logging for the application.

    In development: Human-readable colored output
    In production: JSON-formatted structured logs
    """
    settings = get_settings()

    use_json = settings.environment in ("production", "staging")

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        add_query_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(settings.log_level.upper()),
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name (module name recommended).

    Returns:
        Configured structlog BoundLogger instance.

    Example:
        ```python
        from dashsync.core.logging import get_logger

        logger = get_logger(__name__)
        logger.debug("Fetch started", fingerprint="features/list", request_seq=3)
        ```
    """
    return structlog.get_logger(name)


# Convenience type alias
Logger = structlog.BoundLogger
