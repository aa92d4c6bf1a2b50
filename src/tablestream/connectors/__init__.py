"""Source and sink connectors."""

from tablestream.connectors.base import (
    BaseConnector,
    ConnectorConfig,
    ConnectorType,
    DatabaseConnector,
)

__all__ = [
    "BaseConnector",
    "ConnectorConfig",
    "ConnectorType",
    "DatabaseConnector",
]
