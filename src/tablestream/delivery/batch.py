"""Group delivery units into PutRecords batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import structlog

from tablestream.core.exceptions import OversizedRecordError
from tablestream.delivery.formatter import DeliveryUnit
from tablestream.utils.helpers import format_size

PUT_RECORDS_MAX_COUNT = 500
PUT_RECORD_MAX_DATA_SIZE = 1024 * 1024
PUT_RECORDS_MAX_DATA_SIZE = 5 * 1024 * 1024


@dataclass
class DeliveryBatch:
    """Units sent in one PutRecords call."""

    units: list[DeliveryUnit] = field(default_factory=list)
    payload_bytes: int = 0

    @property
    def count(self) -> int:
        return len(self.units)

    def __len__(self) -> int:
        return len(self.units)

    def add(self, unit: DeliveryUnit) -> None:
        self.units.append(unit)
        self.payload_bytes += request_size(unit)


def request_size(unit: DeliveryUnit) -> int:
    """Bytes a unit counts against the request limit (payload and key)."""
    return unit.size + len(unit.partition_key.encode("utf-8"))


def rejection_error(unit: DeliveryUnit, limit: int = PUT_RECORD_MAX_DATA_SIZE) -> OversizedRecordError:
    return OversizedRecordError(
        f"Record exceeds the {limit / 1024.0:.3f} KB(s) per-record size limit "
        "and will not be delivered",
        size=unit.size,
        limit=limit,
        details={"partition_key": unit.partition_key},
    )


class BatchAssembler:
    """
    Split units into batches within the PutRecords limits.

    Units whose payload exceeds the per-record limit are never batched;
    they come back in the rejected list as they were given. Order is kept
    within and across batches.
    """

    def __init__(
        self,
        max_count: int = PUT_RECORDS_MAX_COUNT,
        max_record_size: int = PUT_RECORD_MAX_DATA_SIZE,
        max_batch_size: int = PUT_RECORDS_MAX_DATA_SIZE,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.max_count = max_count
        self.max_record_size = max_record_size
        self.max_batch_size = max_batch_size
        self.logger = (logger or structlog.get_logger()).bind(component="batch_assembler")

    def exceeds_max_size(self, unit: DeliveryUnit) -> bool:
        return unit.size > self.max_record_size

    def assemble(
        self, units: Iterable[DeliveryUnit]
    ) -> tuple[list[DeliveryBatch], list[DeliveryUnit]]:
        """
        Returns:
            The batches in send order, and the rejected oversized units
        """
        batches: list[DeliveryBatch] = []
        rejected: list[DeliveryUnit] = []
        current = DeliveryBatch()

        for unit in units:
            if self.exceeds_max_size(unit):
                error = rejection_error(unit, self.max_record_size)
                self.logger.error(
                    error.message,
                    size=format_size(unit.size),
                    partition_key=unit.partition_key,
                    data_preview=unit.data[:256].decode("utf-8", errors="replace"),
                )
                rejected.append(unit)
                continue

            if current.units and (
                current.count >= self.max_count
                or current.payload_bytes + request_size(unit) > self.max_batch_size
            ):
                batches.append(current)
                current = DeliveryBatch()
            current.add(unit)

        if current.units:
            batches.append(current)

        return batches, rejected
