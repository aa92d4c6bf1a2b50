"""Relational source connector built on SQLAlchemy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy import MetaData, Table, create_engine, inspect, select, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from tablestream.connectors.base import (
    ConnectorConfig,
    ConnectorType,
    DatabaseConnector,
)
from tablestream.core.config import SourceConfig
from tablestream.core.exceptions import ConnectivityError, ExtractionError

# Driver names accepted in configuration, mapped to SQLAlchemy drivernames
ADAPTER_ALIASES = {
    "mysql": "mysql+pymysql",
    "mysql2": "mysql+pymysql",
    "postgresql": "postgresql+psycopg2",
    "postgres": "postgresql+psycopg2",
    "sqlite": "sqlite",
    "sqlite3": "sqlite",
}


@dataclass
class SQLSourceConfig(ConnectorConfig):
    """Connection options for a relational source."""

    adapter: str = "sqlite"
    host: str | None = None
    port: int | None = None
    database: str = ""
    username: str | None = None
    password: str | None = None
    socket: str | None = None

    def __post_init__(self) -> None:
        self.connector_type = ConnectorType.DATABASE

    @classmethod
    def from_source_config(cls, config: SourceConfig) -> "SQLSourceConfig":
        return cls(
            name=f"{config.adapter}:{config.database}",
            adapter=config.adapter,
            host=config.host,
            port=config.port,
            database=config.database,
            username=config.username,
            password=config.password.get_secret_value() if config.password else None,
            socket=config.socket,
        )

    @property
    def drivername(self) -> str:
        return ADAPTER_ALIASES.get(self.adapter.lower(), self.adapter)


class SQLSourceConnector(DatabaseConnector):
    """Polls tables through a SQLAlchemy engine."""

    def __init__(self, config: SQLSourceConfig) -> None:
        super().__init__(config)
        self.sql_config = config
        self._engine: Engine | None = None
        self._tables: dict[str, Table] = {}

    def _get_url(self) -> URL:
        """Build the connection URL."""
        cfg = self.sql_config
        drivername = cfg.drivername

        if drivername.startswith("sqlite"):
            return URL.create(drivername, database=cfg.database or None)

        query: dict[str, str] = {}
        host = cfg.host
        if cfg.socket:
            if drivername.startswith("mysql"):
                query["unix_socket"] = cfg.socket
            elif drivername.startswith("postgresql"):
                # libpq takes the socket directory as host
                query["host"] = cfg.socket
                host = None

        return URL.create(
            drivername,
            username=cfg.username,
            password=cfg.password,
            host=host,
            port=cfg.port,
            database=cfg.database or None,
            query=query,
        )

    @property
    def engine(self) -> Engine:
        self._validate_connection()
        assert self._engine is not None
        return self._engine

    def connect(self) -> None:
        """Create the engine and check the database answers."""
        try:
            self._engine = create_engine(self._get_url(), pool_pre_ping=True)
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
            raise ConnectivityError(
                f"Failed to connect to database: {e}",
                connector_type=self.sql_config.adapter,
                details={
                    "host": self.sql_config.host,
                    "database": self.sql_config.database,
                },
            ) from e

        self._connected = True
        self.logger.info(
            "Connected to database",
            adapter=self.sql_config.adapter,
            host=self.sql_config.host,
            port=self.sql_config.port,
            database=self.sql_config.database,
            username=self.sql_config.username,
            socket=self.sql_config.socket,
        )

    def disconnect(self) -> None:
        """Dispose the engine and forget reflected tables."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._tables.clear()
        self._connected = False
        self.logger.info("Disconnected from database")

    def test_connection(self) -> bool:
        if self._engine is None:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    def reflect_table(self, table: str) -> Table:
        """Reflect (and cache) a table definition."""
        if table not in self._tables:
            try:
                self._tables[table] = Table(table, MetaData(), autoload_with=self.engine)
            except NoSuchTableError as e:
                raise ExtractionError(f"Table {table!r} does not exist", table=table) from e
        return self._tables[table]

    def get_primary_key(self, table: str) -> list[str]:
        constraint = inspect(self.engine).get_pk_constraint(table)
        return list(constraint.get("constrained_columns") or [])

    def get_columns(self, table: str) -> list[str]:
        return [column.name for column in self.reflect_table(table).columns]

    def select_after(
        self,
        table: str,
        order_column: str,
        after: Any | None = None,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        reflected = self.reflect_table(table)
        column = reflected.c[order_column]

        query = select(reflected)
        if after is not None:
            query = query.where(column > after)
        query = query.order_by(column.asc())
        if limit is not None and limit > 0:
            query = query.limit(limit)

        with self.engine.connect() as conn:
            for row in conn.execute(query):
                yield dict(row._mapping)


def create_source_connector(config: SourceConfig) -> SQLSourceConnector:
    """Build an unconnected source connector from settings."""
    return SQLSourceConnector(SQLSourceConfig.from_source_config(config))
