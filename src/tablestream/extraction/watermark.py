"""Watermark storage for incremental extraction.

A watermark is the update-column value of the last row handed off for a
table. The file store keeps them in a YAML document::

    last_records:
      orders: 1042
      events: 2024-05-01 12:00:00
      payments: !decimal '10.50'

Decimal, time, timedelta and UUID values are written as tagged scalars.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import time, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog
import yaml

from tablestream.core.exceptions import CheckpointError, CorruptStateError

logger = structlog.get_logger()

LAST_RECORDS_KEY = "last_records"


class _StateDumper(yaml.SafeDumper):
    """SafeDumper writing driver types as tagged scalars."""


class _StateLoader(yaml.SafeLoader):
    """SafeLoader reading the tags written by ``_StateDumper``."""


def _register(tag: str, kind: type, to_text, from_text) -> None:
    _StateDumper.add_representer(
        kind, lambda dumper, value: dumper.represent_scalar(tag, to_text(value))
    )
    _StateLoader.add_constructor(
        tag, lambda loader, node: from_text(loader.construct_scalar(node))
    )


_register("!decimal", Decimal, str, Decimal)
_register("!time", time, time.isoformat, time.fromisoformat)
_register("!timedelta", timedelta, lambda v: repr(v.total_seconds()),
          lambda text: timedelta(seconds=float(text)))
_register("!uuid", uuid.UUID, str, uuid.UUID)


class WatermarkStore(ABC):
    """Per-table checkpoints, owned by a single writer."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    @property
    def last_records(self) -> dict[str, Any]:
        return self._data.setdefault(LAST_RECORDS_KEY, {})

    def load(self) -> dict[str, Any]:
        """Return the current watermark map."""
        return dict(self.last_records)

    def get(self, table: str) -> Any | None:
        return self.last_records.get(table)

    def set(self, table: str, checkpoint: Any) -> None:
        """
        Store a table's checkpoint.

        Raises:
            CheckpointError: If the value cannot be persisted; the stored
                map is left unchanged
        """
        self.check_writable(table, checkpoint)
        self.last_records[table] = checkpoint

    def check_writable(self, table: str, checkpoint: Any) -> None:
        """Hook for stores with a restricted value format."""

    def delete(self, table: str) -> bool:
        """Forget a table's checkpoint. Returns False if none was stored."""
        if table in self.last_records:
            del self.last_records[table]
            return True
        return False

    @abstractmethod
    def persist(self) -> None:
        """Write the full watermark map to durable storage."""


class MemoryWatermarkStore(WatermarkStore):
    """Watermarks held in memory only; lost on restart."""

    def persist(self) -> None:
        pass


class FileWatermarkStore(WatermarkStore):
    """Watermarks persisted to a YAML state file."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self.logger = logger.bind(component="watermark_store", path=str(self.path))
        self._data = self._read()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                data = yaml.load(f, Loader=_StateLoader)
        except yaml.YAMLError as e:
            raise CorruptStateError(
                f"state_file on {str(self.path)!r} is invalid: {e}",
                path=str(self.path),
            ) from e

        # An accidentally created empty file holds no data
        if data is None or data is False or data == []:
            return {}
        if not isinstance(data, dict):
            raise CorruptStateError(
                f"state_file on {str(self.path)!r} is invalid",
                path=str(self.path),
                details={"content_type": type(data).__name__},
            )

        records = data.get(LAST_RECORDS_KEY)
        if records is None:
            data.pop(LAST_RECORDS_KEY, None)
        elif not isinstance(records, dict):
            raise CorruptStateError(
                f"state_file on {str(self.path)!r} is invalid: "
                f"'{LAST_RECORDS_KEY}' is not a mapping",
                path=str(self.path),
            )

        self.logger.debug("Loaded watermarks", count=len(records or {}))
        return data

    def check_writable(self, table: str, checkpoint: Any) -> None:
        try:
            yaml.dump(checkpoint, Dumper=_StateDumper)
        except yaml.YAMLError as e:
            raise CheckpointError(
                f"Checkpoint of table {table!r} can't be written to the state file: "
                f"{type(checkpoint).__name__} is not supported",
                table=table,
                details={"value": repr(checkpoint)},
            ) from e

    def reload(self) -> dict[str, Any]:
        """Re-read the state file, discarding unsaved changes."""
        self._data = self._read()
        return self.load()

    def persist(self) -> None:
        """Atomically replace the state file with the current map."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w") as f:
                yaml.dump(self._data, f, Dumper=_StateDumper, default_flow_style=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def create_watermark_store(path: str | Path | None) -> WatermarkStore:
    """File-backed store when a path is given, in-memory otherwise."""
    if path is None:
        return MemoryWatermarkStore()
    return FileWatermarkStore(path)
