"""Delivery of records to Kinesis."""

from tablestream.delivery.batch import (
    PUT_RECORD_MAX_DATA_SIZE,
    PUT_RECORDS_MAX_COUNT,
    BatchAssembler,
    DeliveryBatch,
)
from tablestream.delivery.formatter import DeliveryFormatter, DeliveryUnit
from tablestream.delivery.output import DeliveryReport, KinesisOutput
from tablestream.delivery.writer import KinesisWriter

__all__ = [
    "PUT_RECORD_MAX_DATA_SIZE",
    "PUT_RECORDS_MAX_COUNT",
    "BatchAssembler",
    "DeliveryBatch",
    "DeliveryFormatter",
    "DeliveryUnit",
    "DeliveryReport",
    "KinesisOutput",
    "KinesisWriter",
]
