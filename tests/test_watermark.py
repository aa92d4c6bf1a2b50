"""Tests for watermark storage."""

import uuid
from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
import yaml

from tablestream.core.exceptions import CheckpointError, CorruptStateError
from tablestream.extraction.watermark import (
    FileWatermarkStore,
    MemoryWatermarkStore,
    create_watermark_store,
)


class Opaque:
    """Column value type with no YAML representation."""


class TestFileWatermarkStoreLoading:
    """Test reading the state file."""

    def test_missing_file(self, temp_dir):
        """A missing state file means no checkpoints."""
        store = FileWatermarkStore(temp_dir / "last.yml")

        assert store.load() == {}
        assert store.get("orders") is None

    @pytest.mark.parametrize("content", ["", "---\n", "false\n", "[]\n"])
    def test_empty_documents(self, temp_dir, content):
        """Empty-looking documents are treated as no checkpoints."""
        path = temp_dir / "last.yml"
        path.write_text(content)

        assert FileWatermarkStore(path).load() == {}

    def test_null_last_records(self, temp_dir):
        """A null 'last_records' section holds no checkpoints."""
        path = temp_dir / "last.yml"
        path.write_text("last_records:\n")

        assert FileWatermarkStore(path).load() == {}

    @pytest.mark.parametrize("content", [
        "- orders\n- events\n",
        "just a string\n",
        "42\n",
        "last_records: [1, 2]\n",
        "last_records: {orders: [unclosed\n",
    ])
    def test_corrupt_documents(self, temp_dir, content):
        """Anything other than a mapping of checkpoints is corrupt."""
        path = temp_dir / "last.yml"
        path.write_text(content)

        with pytest.raises(CorruptStateError) as exc_info:
            FileWatermarkStore(path)

        assert exc_info.value.path == str(path)

    def test_existing_checkpoints(self, temp_dir):
        """Stored checkpoints are loaded per table."""
        path = temp_dir / "last.yml"
        path.write_text("last_records:\n  orders: 1042\n  events: '2024-05-01'\n")

        store = FileWatermarkStore(path)

        assert store.get("orders") == 1042
        assert store.get("events") == "2024-05-01"


class TestFileWatermarkStorePersistence:
    """Test writing the state file."""

    def test_round_trip(self, temp_dir):
        """Persisted checkpoints are read back by a new store."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("orders", 5)
        store.set("events", datetime(2024, 1, 2, 3, 4, 5))
        store.set("users", "u-0042")
        store.persist()

        reloaded = FileWatermarkStore(path)

        assert reloaded.load() == {
            "orders": 5,
            "events": datetime(2024, 1, 2, 3, 4, 5),
            "users": "u-0042",
        }

    def test_document_layout(self, temp_dir):
        """Checkpoints live under the 'last_records' key."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("orders", 7)
        store.persist()

        assert yaml.safe_load(path.read_text()) == {"last_records": {"orders": 7}}

    @pytest.mark.parametrize("checkpoint", [
        Decimal("12.50"),
        time(8, 30, 15, 250),
        timedelta(hours=838, minutes=59, seconds=59),
        uuid.UUID("0b7d1c3e-9f6a-4c1e-8a7b-2d9e5f4a6b1c"),
    ])
    def test_driver_types_round_trip(self, temp_dir, checkpoint):
        """Driver-specific checkpoint types come back unchanged."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("t", checkpoint)
        store.persist()

        loaded = FileWatermarkStore(path).get("t")

        assert loaded == checkpoint
        assert type(loaded) is type(checkpoint)

    def test_decimal_written_tagged(self, temp_dir):
        """Decimals are kept as tagged text, not floats."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("payments", Decimal("10.50"))
        store.persist()

        assert "!decimal '10.50'" in path.read_text()

    def test_unwritable_checkpoint_rejected(self, temp_dir):
        """A value without a YAML form is refused before the map changes."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("orders", 2)

        with pytest.raises(CheckpointError) as exc_info:
            store.set("blobs", Opaque())

        assert exc_info.value.table == "blobs"
        assert store.load() == {"orders": 2}
        store.persist()
        assert FileWatermarkStore(path).load() == {"orders": 2}

    def test_creates_parent_directories(self, temp_dir):
        """Missing parent directories are created."""
        path = temp_dir / "state" / "nested" / "last.yml"
        store = FileWatermarkStore(path)
        store.set("orders", 1)
        store.persist()

        assert path.exists()

    def test_no_temporary_files_left(self, temp_dir):
        """The atomic replace leaves only the state file behind."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("orders", 1)
        store.persist()
        store.set("orders", 2)
        store.persist()

        assert [p.name for p in temp_dir.iterdir()] == ["last.yml"]

    def test_unknown_sections_kept(self, temp_dir):
        """Other top-level keys survive a rewrite."""
        path = temp_dir / "last.yml"
        path.write_text("note: keep me\nlast_records:\n  orders: 1\n")

        store = FileWatermarkStore(path)
        store.set("orders", 2)
        store.persist()

        assert yaml.safe_load(path.read_text()) == {
            "note": "keep me",
            "last_records": {"orders": 2},
        }

    def test_delete_and_reload(self, temp_dir):
        """Deleting forgets a table; reload discards unsaved changes."""
        path = temp_dir / "last.yml"
        store = FileWatermarkStore(path)
        store.set("orders", 1)
        store.persist()

        assert store.delete("orders") is True
        assert store.delete("orders") is False
        assert store.reload() == {"orders": 1}


class TestMemoryWatermarkStore:
    """Test the in-memory store."""

    def test_set_get(self):
        """Checkpoints are kept in memory."""
        store = MemoryWatermarkStore()
        store.set("orders", 3)
        store.persist()

        assert store.get("orders") == 3

    def test_load_returns_copy(self):
        """Mutating the loaded map does not change the store."""
        store = MemoryWatermarkStore()
        store.set("orders", 3)
        store.load()["orders"] = 99

        assert store.get("orders") == 3

    def test_factory(self, temp_dir):
        """The factory picks the store by the presence of a path."""
        assert isinstance(create_watermark_store(None), MemoryWatermarkStore)
        assert isinstance(create_watermark_store(temp_dir / "s.yml"), FileWatermarkStore)
