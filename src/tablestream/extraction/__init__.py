"""Incremental extraction of relational tables."""

from tablestream.extraction.incremental import TableExtractor, ExtractorState
from tablestream.extraction.models import (
    CycleReport,
    ExtractedRecord,
    RecordBatch,
    TableDescriptor,
)
from tablestream.extraction.watermark import (
    FileWatermarkStore,
    MemoryWatermarkStore,
    WatermarkStore,
    create_watermark_store,
)

__all__ = [
    "TableExtractor",
    "ExtractorState",
    "CycleReport",
    "ExtractedRecord",
    "RecordBatch",
    "TableDescriptor",
    "FileWatermarkStore",
    "MemoryWatermarkStore",
    "WatermarkStore",
    "create_watermark_store",
]
