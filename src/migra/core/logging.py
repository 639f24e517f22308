"""
Structured logging for migra.

Configures structlog once at CLI startup and hands out named loggers to the
rest of the package. Log output always goes to stderr (or to a file) so that
``--json`` summaries written to stdout stay machine readable.

Usage:
    >>> from migra.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.info("engine.service.start", service="billing", operation="deploy")

Event names are dotted (``component.thing.what``) and carry key-value
fields instead of interpolated messages.

Tags:
    logging, structlog, observability, migra
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "migra"

_LEVEL_ALIASES = {"warn": "WARNING"}


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _resolve_level(level: str) -> int:
    name = _LEVEL_ALIASES.get(level.lower(), level.upper())
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level}")
    return resolved


class _StreamLoggerFactory:
    """PrintLogger factory that resolves ``sys.stderr`` at call time."""

    def __init__(self, file: TextIO | None = None):
        self._file = file

    def __call__(self, *args: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=self._file or sys.stderr)


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    service: str = "migra",
    log_file: str | None = None,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (debug, info, warn, error; case-insensitive)
        json_format: True for JSON lines, False for colored console output
        service: Service name to include in logs
        log_file: Append logs to this file instead of stderr
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    numeric_level = _resolve_level(level)

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=log_file is None))

    stream = open(log_file, "a", encoding="utf-8") if log_file else None

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=_StreamLoggerFactory(stream),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs of the current thread."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(tenant="acme", operation="deploy"):
            logger.info("tenant.start")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
