"""Incremental extraction of one table."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from tablestream.connectors.base import DatabaseConnector
from tablestream.core.exceptions import ExtractionError, TableInitError
from tablestream.core.utils import to_datetime, utc_now
from tablestream.extraction.models import RecordBatch, TableDescriptor

if TYPE_CHECKING:
    from tablestream.core.router import Router

TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f%z"


class ExtractorState(str, Enum):
    """Lifecycle of a table extractor."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    EXTRACTING = "extracting"
    FAILED = "failed"


def serialize_value(value: Any) -> Any:
    """Convert a column value into a record field value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.strftime(TIME_FORMAT)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def serialize_row(row: dict[str, Any]) -> dict[str, Any]:
    return {str(name): serialize_value(value) for name, value in row.items()}


class TableExtractor:
    """
    Extract new rows of a table past a checkpoint.

    The effective update column orders and bounds every query. Each call to
    ``extract_next`` hands the batch to the router before returning the new
    checkpoint, so persisting that checkpoint records the hand-off.
    """

    def __init__(
        self,
        descriptor: TableDescriptor,
        router: Router,
        tag_prefix: str | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.router = router
        self.tag = descriptor.resolve_tag(tag_prefix)
        self.state = ExtractorState.UNINITIALIZED
        self.update_column: str | None = None
        self._source: DatabaseConnector | None = None
        self.logger = (logger or structlog.get_logger()).bind(
            component="table_extractor",
            table=descriptor.table,
        )

    @property
    def table(self) -> str:
        return self.descriptor.table

    def initialize(self, source: DatabaseConnector) -> None:
        """
        Resolve the update column against the live schema.

        Raises:
            TableInitError: If no single update column can be derived, or a
                configured column does not exist. The extractor is FAILED.
        """
        try:
            columns = source.get_columns(self.table)
            self.update_column = self._resolve_update_column(source)

            for column in (self.update_column, self.descriptor.time_column):
                if column is not None and column not in columns:
                    raise TableInitError(
                        f"Column {column!r} does not exist in table {self.table!r}",
                        table=self.table,
                        details={"columns": columns},
                    )
        except TableInitError:
            self.state = ExtractorState.FAILED
            raise
        except Exception as e:
            self.state = ExtractorState.FAILED
            raise TableInitError(
                f"Can't initialize table {self.table!r}: {e}",
                table=self.table,
                details={"error_class": type(e).__name__},
            ) from e

        self._source = source
        self.state = ExtractorState.READY
        self.logger.info(
            "Table ready",
            tag=self.tag,
            update_column=self.update_column,
            time_column=self.descriptor.time_column,
        )

    def _resolve_update_column(self, source: DatabaseConnector) -> str:
        if self.descriptor.update_column:
            return self.descriptor.update_column
        if self.descriptor.primary_key:
            return self.descriptor.primary_key

        primary_key = source.get_primary_key(self.table)
        if len(primary_key) != 1:
            raise TableInitError(
                "Composite primary key is not supported. "
                "Set update_column parameter to the table section.",
                table=self.table,
                details={"primary_key": primary_key},
            )
        return primary_key[0]

    def _checkpoint_value(self, checkpoint: Any) -> Any:
        # State files written by older releases stored the whole last record
        if isinstance(checkpoint, dict):
            return checkpoint.get(self.update_column)
        return checkpoint

    def _timestamp(self, row: dict[str, Any], now: datetime) -> datetime:
        time_column = self.descriptor.time_column
        if not time_column:
            return now

        value = row.get(time_column)
        if value is None:
            return now
        try:
            return to_datetime(value)
        except (ValueError, TypeError):
            return now

    def extract_next(
        self,
        checkpoint: Any | None,
        limit: int,
        now: datetime | None = None,
    ) -> tuple[RecordBatch, Any | None]:
        """
        Extract and emit the rows after ``checkpoint``.

        Args:
            checkpoint: Last handed-off update-column value, None to start
                from the beginning
            limit: Maximum rows, unbounded when <= 0
            now: Cycle start time, used when a row has no usable event time

        Returns:
            The emitted batch and the new checkpoint (unchanged when no rows)

        Raises:
            ExtractionError: If the extractor is not ready
        """
        if self.state is not ExtractorState.READY or self._source is None:
            raise ExtractionError(
                f"Table {self.table!r} is not ready for extraction",
                table=self.table,
                details={"state": self.state.value},
            )

        now = now or utc_now()
        after = self._checkpoint_value(checkpoint)
        batch = RecordBatch(tag=self.tag)
        new_checkpoint = checkpoint

        self.state = ExtractorState.EXTRACTING
        try:
            rows = self._source.select_after(
                self.table,
                self.update_column,
                after=after,
                limit=limit,
            )
            for row in rows:
                try:
                    fields = serialize_row(row)
                except Exception as e:
                    self.logger.debug("Skipping unserializable row", error=str(e))
                    continue
                batch.add(self._timestamp(row, now), fields)
                new_checkpoint = row[self.update_column]

            self.router.emit(self.tag, now, batch)
        finally:
            self.state = ExtractorState.READY

        self.logger.debug(
            "Extracted rows",
            rows=len(batch),
            previous_checkpoint=str(after),
            new_checkpoint=str(new_checkpoint),
        )
        return batch, new_checkpoint
