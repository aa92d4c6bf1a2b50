"""Data structures shared by the extraction components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator

from tablestream.core.config import TableConfig


@dataclass(frozen=True)
class TableDescriptor:
    """Describes one table to poll."""

    table: str
    tag: str | None = None
    update_column: str | None = None
    time_column: str | None = None
    primary_key: str | None = None

    @classmethod
    def from_config(cls, config: TableConfig) -> "TableDescriptor":
        """Create from a table configuration entry."""
        return cls(
            table=config.table,
            tag=config.tag,
            update_column=config.update_column,
            time_column=config.time_column,
            primary_key=config.primary_key,
        )

    def resolve_tag(self, tag_prefix: str | None = None) -> str:
        """Destination tag: ``<prefix>.<tag or table>``."""
        tag = self.tag or self.table
        if tag_prefix:
            return f"{tag_prefix}.{tag}"
        return tag


@dataclass
class ExtractedRecord:
    """One row converted to a timestamped record."""

    timestamp: datetime
    fields: dict[str, Any]


@dataclass
class RecordBatch:
    """Records of one table extracted in one cycle, sharing a tag."""

    tag: str
    records: list[ExtractedRecord] = field(default_factory=list)

    def add(self, timestamp: datetime, fields: dict[str, Any]) -> None:
        self.records.append(ExtractedRecord(timestamp=timestamp, fields=fields))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ExtractedRecord]:
        return iter(self.records)

    def is_empty(self) -> bool:
        return not self.records


@dataclass
class CycleReport:
    """Outcome of one polling cycle."""

    cycle_id: str
    started_at: datetime
    skipped: bool = False
    tables_processed: list[str] = field(default_factory=list)
    failed_tables: dict[str, str] = field(default_factory=dict)
    records_emitted: int = 0
