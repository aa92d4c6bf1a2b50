"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, text

from tablestream.connectors.databases.sql import SQLSourceConfig, SQLSourceConnector
from tablestream.core.config import KinesisSinkConfig, SourceConfig, TableConfig
from tablestream.core.router import CollectingRouter

ORDERS = [
    {"id": 3, "item": "lamp", "created_at": "2024-01-03 09:30:00"},
    {"id": 1, "item": "desk", "created_at": "2024-01-01 08:00:00"},
    {"id": 2, "item": "chair", "created_at": "not a date"},
    {"id": 5, "item": "shelf", "created_at": None},
    {"id": 4, "item": "rug", "created_at": "2024-01-04T12:00:00+02:00"},
]


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cycle_start() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sqlite_path(temp_dir: Path) -> Path:
    """SQLite database with a keyed table, a composite-key table and a keyless table."""
    path = temp_dir / "source.db"
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE orders (id INTEGER PRIMARY KEY, item TEXT, created_at TEXT)"
        ))
        conn.execute(
            text("INSERT INTO orders (id, item, created_at) VALUES (:id, :item, :created_at)"),
            ORDERS,
        )
        conn.execute(text(
            "CREATE TABLE line_items ("
            "order_id INTEGER, line_no INTEGER, qty INTEGER, "
            "PRIMARY KEY (order_id, line_no))"
        ))
        conn.execute(text("INSERT INTO line_items VALUES (1, 1, 2), (1, 2, 1)"))
        conn.execute(text("CREATE TABLE audit_log (seq INTEGER, message TEXT)"))
        conn.execute(text("INSERT INTO audit_log VALUES (10, 'boot'), (20, 'login')"))
    engine.dispose()
    return path


@pytest.fixture
def source(sqlite_path: Path) -> SQLSourceConnector:
    """Connected source over the test database."""
    connector = SQLSourceConnector(
        SQLSourceConfig(name="test", adapter="sqlite", database=str(sqlite_path))
    )
    connector.connect()
    yield connector
    connector.disconnect()


@pytest.fixture
def router() -> CollectingRouter:
    return CollectingRouter()


@pytest.fixture
def source_config(sqlite_path: Path, temp_dir: Path) -> SourceConfig:
    return SourceConfig(
        adapter="sqlite",
        database=str(sqlite_path),
        state_file=str(temp_dir / "state" / "last.yml"),
        tag_prefix="db",
        select_interval=60,
        tables=[
            TableConfig(table="orders", time_column="created_at"),
            TableConfig(table="line_items"),
            TableConfig(table="audit_log", update_column="seq", tag="audit"),
        ],
    )


@pytest.fixture
def sink_config() -> KinesisSinkConfig:
    return KinesisSinkConfig(
        stream_name="test-stream",
        partition_key="id",
        region="us-east-1",
        retries_on_put_records=2,
    )


def put_records_ok(StreamName: str, Records: list) -> dict:
    return {
        "FailedRecordCount": 0,
        "Records": [
            {"SequenceNumber": str(i), "ShardId": "shardId-000000000000"}
            for i, _ in enumerate(Records)
        ],
    }


@pytest.fixture
def mock_kinesis_client() -> MagicMock:
    """Kinesis client accepting every record."""
    client = MagicMock()
    client.put_records.side_effect = put_records_ok
    client.describe_stream.return_value = {
        "StreamDescription": {
            "StreamName": "test-stream",
            "StreamStatus": "ACTIVE",
            "Shards": [{"ShardId": "shardId-000000000000"}],
        }
    }
    return client


@pytest.fixture
def mock_session(mock_kinesis_client: MagicMock) -> MagicMock:
    """boto3 session handing out the mock client."""
    session = MagicMock()
    session.client.return_value = mock_kinesis_client
    return session
