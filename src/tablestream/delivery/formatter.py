"""Turn records into Kinesis wire units."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from tablestream.core.exceptions import FormattingError

PARTITION_KEY_MAX_LENGTH = 256


@dataclass(frozen=True)
class DeliveryUnit:
    """Serialized payload plus the partition key it is sent under."""

    data: bytes
    partition_key: str

    @property
    def size(self) -> int:
        """Payload byte length."""
        return len(self.data)

    def to_entry(self) -> dict[str, Any]:
        """Entry of a ``PutRecords`` request."""
        return {"Data": self.data, "PartitionKey": self.partition_key}


class DeliveryFormatter:
    """
    Serialize records with a derived partition key.

    Time and tag injection are applied before the partition key is read, so
    either can serve as the key field. The formatter holds no mutable state
    and may be shared between concurrent flushes.
    """

    def __init__(
        self,
        partition_key: str | None = None,
        partition_key_transform: Callable[[Any], Any] | None = None,
        random_partition_key: bool = False,
        include_time_key: bool = True,
        time_key: str = "time",
        time_format: str | None = None,
        include_tag_key: bool = True,
        tag_key: str = "tag",
    ) -> None:
        self.partition_key = partition_key
        self.partition_key_transform = partition_key_transform
        self.random_partition_key = random_partition_key
        self.include_time_key = include_time_key
        self.time_key = time_key
        self.time_format = time_format
        self.include_tag_key = include_tag_key
        self.tag_key = tag_key

    def _format_time(self, timestamp: datetime) -> str:
        if self.time_format:
            return timestamp.strftime(self.time_format)
        return timestamp.isoformat()

    def decorate(self, tag: str, timestamp: datetime, record: dict[str, Any]) -> dict[str, Any]:
        """Copy of the record with time and tag keys injected."""
        decorated = dict(record)
        if self.include_time_key:
            decorated[self.time_key] = self._format_time(timestamp)
        if self.include_tag_key:
            decorated[self.tag_key] = tag
        return decorated

    def derive_partition_key(self, record: dict[str, Any]) -> str:
        """
        Partition key for a record.

        Raises:
            FormattingError: If the key field is missing, the transform fails,
                or the resulting key is empty or too long
        """
        if self.random_partition_key:
            return str(uuid.uuid4())

        if self.partition_key:
            if self.partition_key not in record:
                raise FormattingError(
                    f"Partition key field {self.partition_key!r} is missing from record",
                    details={"fields": sorted(record)},
                )
            value = record[self.partition_key]
        else:
            value = json.dumps(record, sort_keys=True, default=str)

        if self.partition_key_transform is not None:
            try:
                value = self.partition_key_transform(value)
            except Exception as e:
                raise FormattingError(
                    f"Partition key transform failed: {e}",
                    details={"error_class": type(e).__name__},
                ) from e

        key = value if isinstance(value, str) else str(value)
        if not key or len(key) > PARTITION_KEY_MAX_LENGTH:
            raise FormattingError(
                f"Partition key must be 1 to {PARTITION_KEY_MAX_LENGTH} characters",
                details={"length": len(key)},
            )
        return key

    def format(self, tag: str, timestamp: datetime, record: dict[str, Any]) -> DeliveryUnit:
        """Build the delivery unit for one record."""
        decorated = self.decorate(tag, timestamp, record)
        partition_key = self.derive_partition_key(decorated)

        try:
            data = json.dumps(decorated, default=str).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise FormattingError(f"Record is not serializable: {e}") from e

        return DeliveryUnit(data=data, partition_key=partition_key)
