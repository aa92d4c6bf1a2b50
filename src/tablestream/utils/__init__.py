"""Utility modules for tablestream."""

from tablestream.utils.logging import setup_logging, shutdown_logging, get_logger
from tablestream.utils.helpers import (
    generate_id,
    format_size,
    parse_duration,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "generate_id",
    "format_size",
    "parse_duration",
]
