"""Base connector interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

import structlog

from tablestream.core.exceptions import ConnectivityError

logger = structlog.get_logger()


class ConnectorType(str, Enum):
    """Types of connectors."""

    DATABASE = "database"
    STREAMING = "streaming"


@dataclass
class ConnectorConfig:
    """Base configuration for connectors."""

    name: str
    connector_type: ConnectorType = ConnectorType.DATABASE
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseConnector(ABC):
    """Abstract base class for all connectors."""

    connector_type: ConnectorType = ConnectorType.DATABASE

    def __init__(self, config: ConnectorConfig) -> None:
        self.config = config
        self.logger = logger.bind(
            connector=config.name,
            connector_type=self.connector_type.value,
        )
        self._connected = False

    @abstractmethod
    def connect(self) -> None:
        """Establish the connection."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection."""
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Test if the connection is valid."""
        pass

    @property
    def is_connected(self) -> bool:
        """Check if connector is connected."""
        return self._connected

    def __enter__(self) -> "BaseConnector":
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.disconnect()

    def _validate_connection(self) -> None:
        """Ensure connector is connected."""
        if not self._connected:
            raise ConnectivityError(
                "Connector is not connected",
                connector_type=self.connector_type.value,
            )


class DatabaseConnector(BaseConnector):
    """Source database the extractors poll."""

    connector_type = ConnectorType.DATABASE

    def is_alive(self) -> bool:
        """Liveness check used before each polling cycle."""
        return self._connected and self.test_connection()

    def reconnect(self) -> None:
        """Drop and re-establish the connection.

        Raises:
            ConnectivityError: If the database is still unreachable
        """
        self.disconnect()
        self.connect()
        if not self.test_connection():
            raise ConnectivityError(
                "Database unreachable after reconnect",
                connector_type=self.connector_type.value,
            )

    @abstractmethod
    def get_primary_key(self, table: str) -> list[str]:
        """Primary key columns of a table, in key order."""
        pass

    @abstractmethod
    def get_columns(self, table: str) -> list[str]:
        """Column names of a table."""
        pass

    @abstractmethod
    def select_after(
        self,
        table: str,
        order_column: str,
        after: Any | None = None,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Stream rows whose ``order_column`` is greater than ``after``.

        Rows come in ascending ``order_column`` order. ``after=None`` reads
        from the beginning; ``limit`` of None or <= 0 means unbounded.
        """
        pass
