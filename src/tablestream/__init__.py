"""
tablestream - stream relational tables into Amazon Kinesis.

Polls tables incrementally with resumable per-table checkpoints and
delivers the extracted records to a Kinesis stream in size-limited batches.
"""

__version__ = "0.1.0"

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
)
from tablestream.core.router import EventRouter
from tablestream.delivery import KinesisOutput
from tablestream.orchestration import SQLInput

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "EventRouter",
    "KinesisOutput",
    "SQLInput",
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
]
