"""Structured logging configuration using structlog.

Stamps every event with the slide being worked on and the operation in
progress, and supports configurable output formats (JSON for production,
colored console for dev).
"""

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from slidekit.config import settings

# Context variables for slide correlation
_slide: ContextVar[str | None] = ContextVar("slide", default=None)
_operation: ContextVar[str | None] = ContextVar("operation", default=None)


def set_slide_context(
    slide: str | None = None,
    operation: str | None = None,
) -> None:
    """Set slide correlation fields for the current context.

    Args:
        slide: Path of the slide being processed
        operation: Name of the operation in progress (e.g. "open")
    """
    if slide is not None:
        _slide.set(slide)
    if operation is not None:
        _operation.set(operation)


def clear_slide_context() -> None:
    """Clear all slide correlation context variables."""
    _slide.set(None)
    _operation.set(None)


def _add_slide_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to add slide correlation fields to log events."""
    _ = logger, method_name  # Required by structlog processor signature
    slide = _slide.get()
    operation = _operation.get()

    if slide is not None:
        event_dict.setdefault("slide", slide)
    if operation is not None:
        event_dict["operation"] = operation

    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog with the specified settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.LOG_LEVEL.
        log_format: Output format ("console" or "json").
                    Defaults to settings.LOG_FORMAT.

    Raises:
        ConfigError: If the format comes from settings and is not recognized.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.require_log_format()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_slide_context,
    ]

    if log_format == "json":
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
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging to match
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
