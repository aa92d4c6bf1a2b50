"""Relational database connectors."""

from tablestream.connectors.databases.sql import (
    SQLSourceConfig,
    SQLSourceConnector,
    create_source_connector,
)

__all__ = ["SQLSourceConfig", "SQLSourceConnector", "create_source_connector"]
