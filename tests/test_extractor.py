"""Tests for incremental table extraction."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from tablestream.core.exceptions import ExtractionError, TableInitError
from tablestream.extraction.incremental import (
    ExtractorState,
    TableExtractor,
    serialize_value,
)
from tablestream.extraction.models import TableDescriptor


def make_extractor(router, table="orders", tag_prefix=None, **kwargs):
    return TableExtractor(TableDescriptor(table=table, **kwargs), router, tag_prefix=tag_prefix)


def ids(batch):
    return [record.fields["id"] for record in batch]


class TestInitialization:
    """Test update column resolution."""

    def test_single_primary_key(self, source, router):
        """A single-column primary key becomes the update column."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        assert extractor.update_column == "id"
        assert extractor.state == ExtractorState.READY

    def test_composite_primary_key(self, source, router):
        """Composite keys cannot order extraction without an explicit column."""
        extractor = make_extractor(router, table="line_items")

        with pytest.raises(TableInitError) as exc_info:
            extractor.initialize(source)

        assert "Composite primary key is not supported" in str(exc_info.value)
        assert exc_info.value.table == "line_items"
        assert extractor.state == ExtractorState.FAILED

    def test_composite_primary_key_with_update_column(self, source, router):
        """An explicit update column makes a composite-key table usable."""
        extractor = make_extractor(router, table="line_items", update_column="line_no")
        extractor.initialize(source)

        assert extractor.update_column == "line_no"

    def test_table_without_primary_key(self, source, router):
        """A table with no primary key needs an update column."""
        with pytest.raises(TableInitError):
            make_extractor(router, table="audit_log").initialize(source)

    def test_primary_key_override(self, source, router):
        """A configured primary key replaces the reflected one."""
        extractor = make_extractor(router, table="audit_log", primary_key="seq")
        extractor.initialize(source)

        assert extractor.update_column == "seq"

    def test_unknown_update_column(self, source, router):
        """Configured columns must exist in the table."""
        with pytest.raises(TableInitError):
            make_extractor(router, update_column="updated_at").initialize(source)

    def test_unknown_time_column(self, source, router):
        """The time column must exist in the table."""
        with pytest.raises(TableInitError):
            make_extractor(router, time_column="happened_at").initialize(source)

    def test_missing_table(self, source, router):
        """Schema errors are reported as table initialization errors."""
        extractor = make_extractor(router, table="no_such_table")

        with pytest.raises(TableInitError):
            extractor.initialize(source)
        assert extractor.state == ExtractorState.FAILED


class TestExtraction:
    """Test extraction past a checkpoint."""

    def test_from_beginning(self, source, router):
        """Without a checkpoint all rows come back in update column order."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        batch, checkpoint = extractor.extract_next(None, 0)

        assert ids(batch) == [1, 2, 3, 4, 5]
        assert checkpoint == 5

    def test_after_checkpoint_with_limit(self, source, router):
        """Only rows past the checkpoint, at most ``limit`` of them."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        batch, checkpoint = extractor.extract_next(2, 2)

        assert ids(batch) == [3, 4]
        assert checkpoint == 4

    def test_checkpoint_unchanged_without_rows(self, source, router):
        """No new rows leave the checkpoint where it was."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        batch, checkpoint = extractor.extract_next(5, 10)

        assert batch.is_empty()
        assert checkpoint == 5

    def test_repeatable(self, source, router):
        """The same checkpoint yields the same rows."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        first, first_checkpoint = extractor.extract_next(1, 3)
        second, second_checkpoint = extractor.extract_next(1, 3)

        assert [r.fields for r in first] == [r.fields for r in second]
        assert first_checkpoint == second_checkpoint == 4

    def test_row_fields(self, source, router):
        """Records carry every column of the row."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        batch, _ = extractor.extract_next(None, 1)

        assert batch.records[0].fields == {
            "id": 1,
            "item": "desk",
            "created_at": "2024-01-01 08:00:00",
        }

    def test_legacy_checkpoint(self, source, router):
        """A stored whole-record checkpoint is read through the update column."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        batch, checkpoint = extractor.extract_next({"id": 3, "item": "lamp"}, 0)

        assert ids(batch) == [4, 5]
        assert checkpoint == 5

    def test_not_ready(self, router):
        """Extracting before initialization is an error."""
        with pytest.raises(ExtractionError):
            make_extractor(router).extract_next(None, 10)


class TestTimestamps:
    """Test event time assignment."""

    def test_time_column(self, source, router, cycle_start):
        """Usable time column values become the record time."""
        extractor = make_extractor(router, time_column="created_at")
        extractor.initialize(source)

        batch, _ = extractor.extract_next(None, 0, now=cycle_start)
        times = {r.fields["id"]: r.timestamp for r in batch}

        assert times[1] == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert times[3] == datetime(2024, 1, 3, 9, 30, tzinfo=timezone.utc)
        assert times[4] == datetime(2024, 1, 4, 10, 0, tzinfo=timezone.utc)

    def test_unusable_time_falls_back(self, source, router, cycle_start):
        """Unparseable or null times fall back to the cycle time."""
        extractor = make_extractor(router, time_column="created_at")
        extractor.initialize(source)

        batch, _ = extractor.extract_next(None, 0, now=cycle_start)
        times = {r.fields["id"]: r.timestamp for r in batch}

        assert times[2] == cycle_start
        assert times[5] == cycle_start

    def test_no_time_column(self, source, router, cycle_start):
        """Without a time column every record gets the cycle time."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        batch, _ = extractor.extract_next(None, 0, now=cycle_start)

        assert {r.timestamp for r in batch} == {cycle_start}


class TestEmission:
    """Test the hand-off to the router."""

    def test_emits_with_tag(self, source, router, cycle_start):
        """The batch is emitted under the prefixed tag."""
        extractor = make_extractor(router, tag_prefix="db")
        extractor.initialize(source)

        batch, _ = extractor.extract_next(None, 0, now=cycle_start)

        assert router.emitted == [("db.orders", cycle_start, batch)]

    def test_custom_tag(self, router):
        """A configured tag replaces the table name."""
        extractor = make_extractor(router, tag="sales", tag_prefix="db")

        assert extractor.tag == "db.sales"

    def test_empty_batch_emitted(self, source, router):
        """An empty poll still reaches the router."""
        extractor = make_extractor(router)
        extractor.initialize(source)

        extractor.extract_next(5, 0)

        assert len(router.emitted) == 1
        assert router.emitted[0][2].is_empty()

    def test_router_failure_propagates(self, source):
        """If the hand-off fails no checkpoint is returned."""
        router = MagicMock()
        router.emit.side_effect = RuntimeError("sink down")
        extractor = make_extractor(router)
        extractor.initialize(source)

        with pytest.raises(RuntimeError):
            extractor.extract_next(None, 0)
        assert extractor.state == ExtractorState.READY


class TestSerialization:
    """Test column value conversion."""

    def test_datetime(self):
        """Datetimes use a fixed text format."""
        value = datetime(2024, 1, 2, 3, 4, 5, 6000, tzinfo=timezone.utc)

        assert serialize_value(value) == "2024-01-02 03:04:05.006000+0000"

    def test_bytes(self):
        """Bytes are decoded as UTF-8."""
        assert serialize_value(b"abc") == "abc"

    def test_passthrough(self):
        """JSON-native values are unchanged."""
        assert serialize_value(3) == 3
        assert serialize_value(None) is None
