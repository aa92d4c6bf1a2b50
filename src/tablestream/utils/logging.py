"""Logging configuration for tablestream.

Structured logging with:
- JSON and console renderers
- Per-cycle context propagation
- Redaction of credentials
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from pathlib import Path
from typing import IO, Any

import structlog

cycle_id_var: ContextVar[str | None] = ContextVar("cycle_id", default=None)

# Log file opened by setup_logging, closed by shutdown_logging
_log_file: IO[str] | None = None

SENSITIVE_KEYS = frozenset({
    "password", "secret", "token", "api_key", "apikey",
    "authorization", "credential", "private_key",
    "access_key", "secret_key", "aws_sec_key", "aws_key_id",
})


def add_context_info(
    logger: structlog.BoundLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add the current polling cycle to log events."""
    if cycle_id := cycle_id_var.get():
        event_dict.setdefault("cycle_id", cycle_id)
    return event_dict


def sanitize_event(
    logger: structlog.BoundLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Redact sensitive values from log events."""

    def sanitize_dict(d: dict) -> dict:
        result = {}
        for key, value in d.items():
            key_lower = str(key).lower()
            if any(s in key_lower for s in SENSITIVE_KEYS):
                result[key] = "[REDACTED]"
            elif isinstance(value, dict):
                result[key] = sanitize_dict(value)
            else:
                result[key] = value
        return result

    return sanitize_dict(event_dict)


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    log_file: str | None = None,
    service_name: str = "tablestream",
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (json or console)
        log_file: Optional file path for log output
        service_name: Service name for log identification
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_context_info,
        sanitize_event,
        structlog.processors.format_exc_info,
    ]

    if format == "json":
        processors = shared_processors + [
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    global _log_file
    previous_file, _log_file = _log_file, None

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _log_file = log_path.open("a", buffering=1)
        logger_factory: Any = structlog.WriteLoggerFactory(file=_log_file)
    else:
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )
    if previous_file is not None:
        previous_file.close()

    # botocore and sqlalchemy log through the standard library
    logging.basicConfig(
        format="%(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    get_logger("tablestream").info(
        "Logging initialized",
        service=service_name,
        level=level,
        format=format,
    )


def shutdown_logging() -> None:
    """Close the log file opened by ``setup_logging``, if any."""
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a logger instance with optional initial context.

    Args:
        name: Logger name (module name recommended)
        **initial_context: Initial context to bind to the logger

    Returns:
        Configured structlog BoundLogger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "cycle_id_var",
    "add_context_info",
    "sanitize_event",
]
