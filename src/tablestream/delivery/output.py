"""Kinesis output: format, batch and deliver records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable

import structlog

from tablestream.connectors.streaming.kinesis import (
    KinesisConnectionConfig,
    StreamConnectionManager,
)
from tablestream.core.config import KinesisSinkConfig
from tablestream.core.exceptions import ConfigurationError, FormattingError
from tablestream.core.retry import RetryConfig
from tablestream.delivery.batch import BatchAssembler
from tablestream.delivery.formatter import DeliveryFormatter, DeliveryUnit
from tablestream.delivery.writer import KinesisWriter
from tablestream.extraction.models import RecordBatch

Event = tuple[str, datetime, dict[str, Any]]


@dataclass
class DeliveryReport:
    """What one write call did."""

    delivered: int = 0
    rejected: int = 0
    unformattable: int = 0
    batches: int = 0
    calls: int = 0


class KinesisOutput:
    """
    Deliver tagged records to a Kinesis stream.

    Records that cannot be formatted and records over the per-record size
    limit are logged and dropped; they are never retried. Records refused
    by Kinesis are retried with backoff, and a ``DeliveryError`` is raised
    if some remain undelivered so the caller can retry the whole write.
    """

    def __init__(
        self,
        config: KinesisSinkConfig,
        manager: StreamConnectionManager | None = None,
        partition_key_transform: Callable[[Any], Any] | None = None,
        retry_sleep: Callable[[float], None] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = (logger or structlog.get_logger()).bind(
            component="kinesis_output",
            stream=config.stream_name,
        )
        self.validate_params()

        self.manager = manager or StreamConnectionManager(
            KinesisConnectionConfig.from_sink_config(config)
        )
        self.formatter = DeliveryFormatter(
            partition_key=config.partition_key,
            partition_key_transform=partition_key_transform,
            random_partition_key=config.random_partition_key,
            include_time_key=config.include_time_key,
            time_key=config.time_key,
            time_format=config.time_format,
            include_tag_key=config.include_tag_key,
            tag_key=config.tag_key,
        )
        self.assembler = BatchAssembler(logger=self.logger)

        retry_kwargs: dict[str, Any] = {
            "max_attempts": config.retries_on_put_records + 1,
            "initial_delay": config.retry_initial_delay,
        }
        if retry_sleep is not None:
            retry_kwargs["sleep"] = retry_sleep
        self.writer = KinesisWriter(
            self.manager,
            config.stream_name,
            retry_config=RetryConfig(**retry_kwargs),
            logger=self.logger,
        )

    def validate_params(self) -> None:
        if not self.config.partition_key and not self.config.random_partition_key:
            raise ConfigurationError("'partition_key' is required")

    def start(self) -> None:
        """Connect, and validate the stream when configured to."""
        self.manager.connect()
        if self.config.ensure_stream_connection:
            self.manager.validate(self.config.stream_name)

    def shutdown(self) -> None:
        self.manager.disconnect()

    def format_events(self, events: Iterable[Event]) -> tuple[list[DeliveryUnit], int]:
        units: list[DeliveryUnit] = []
        failures = 0
        for tag, timestamp, record in events:
            try:
                units.append(self.formatter.format(tag, timestamp, record))
            except FormattingError as e:
                failures += 1
                self.logger.error(
                    "Record can't be formatted and will not be delivered",
                    tag=tag,
                    error=str(e),
                    error_class=type(e).__name__,
                )
        return units, failures

    def write(self, events: Iterable[Event]) -> DeliveryReport:
        """Deliver ``(tag, timestamp, record)`` events in order."""
        units, failures = self.format_events(events)
        batches, rejected = self.assembler.assemble(units)

        report = DeliveryReport(
            rejected=len(rejected),
            unformattable=failures,
            batches=len(batches),
        )
        for batch in batches:
            report.calls += self.writer.put_batch(batch)
            report.delivered += batch.count

        self.logger.debug(
            "Write finished",
            delivered=report.delivered,
            rejected=report.rejected,
            unformattable=report.unformattable,
            batches=report.batches,
        )
        return report

    def emit(self, tag: str, timestamp: datetime, batch: RecordBatch) -> None:
        """Router entry point."""
        if batch.is_empty():
            return
        self.write((tag, record.timestamp, record.fields) for record in batch)
