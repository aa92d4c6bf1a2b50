"""Streaming sink connectors."""

from tablestream.connectors.streaming.kinesis import (
    KinesisConnectionConfig,
    StreamConnectionManager,
)

__all__ = [
    "KinesisConnectionConfig",
    "StreamConnectionManager",
]
