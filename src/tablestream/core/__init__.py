"""Core module for tablestream."""

from tablestream.core.config import Settings, get_settings
from tablestream.core.exceptions import (
    TableStreamError,
    ConfigurationError,
    TableInitError,
    CorruptStateError,
    CheckpointError,
    ConnectivityError,
    ExtractionError,
    FormattingError,
    OversizedRecordError,
    DeliveryError,
    RetryExhaustedError,
)

__all__ = [
    "Settings",
    "get_settings",
    "TableStreamError",
    "ConfigurationError",
    "TableInitError",
    "CorruptStateError",
    "CheckpointError",
    "ConnectivityError",
    "ExtractionError",
    "FormattingError",
    "OversizedRecordError",
    "DeliveryError",
    "RetryExhaustedError",
]
