"""Periodic polling of the configured tables."""

from __future__ import annotations

import threading
from typing import Any, Sequence

import structlog

from tablestream.connectors.base import DatabaseConnector
from tablestream.core.utils import utc_now
from tablestream.extraction.incremental import ExtractorState, TableExtractor
from tablestream.extraction.models import CycleReport
from tablestream.extraction.watermark import WatermarkStore
from tablestream.utils.helpers import generate_id
from tablestream.utils.logging import cycle_id_var


class ExtractionScheduler:
    """
    Run one extraction cycle per interval on a background thread.

    Tables are polled sequentially in configuration order and each table's
    checkpoint is persisted as soon as its batch was handed off. A failing
    table is logged and retried next cycle. If the database is unreachable
    and a single reconnect fails, the whole cycle is skipped. Tables not
    initialized yet are prepared by the first cycle that has a connection.
    """

    def __init__(
        self,
        source: DatabaseConnector,
        extractors: Sequence[TableExtractor],
        store: WatermarkStore,
        interval: float = 60.0,
        limit: int = 500,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.source = source
        self.extractors = list(extractors)
        self.store = store
        self.interval = interval
        self.limit = limit
        self.logger = (logger or structlog.get_logger()).bind(component="extraction_scheduler")
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_report: CycleReport | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the polling thread."""
        if self.is_running:
            return

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="tablestream-extraction",
            daemon=True,
        )
        self._thread.start()
        self.logger.info(
            "Scheduler started",
            interval_seconds=self.interval,
            tables=[e.table for e in self.extractors],
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to stop and wait until it has exited."""
        self._stop.set()
        if self._thread is not None:
            self.logger.info("Waiting for extraction thread to finish")
            self._thread.join(timeout)
            if self._thread.is_alive():
                self.logger.warning("Extraction thread still running", timeout=timeout)
                return
            self._thread = None
        self.logger.info("Scheduler stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            # wait() returns True as soon as stop is requested
            if self._stop.wait(self.interval):
                break
            try:
                self.last_report = self.run_cycle()
            except Exception as e:
                self.logger.exception("Unexpected error in polling cycle", error=str(e))
        self.logger.debug("Extraction thread exiting")

    def _ensure_connection(self) -> bool:
        try:
            if self.source.is_alive():
                return True
            self.source.reconnect()
            self.logger.info("Reconnected to database")
            return True
        except Exception as e:
            self.logger.warning(
                "Can't connect to database, retrying next cycle",
                error=str(e),
                error_class=type(e).__name__,
            )
            return False

    def initialize_tables(self) -> None:
        """
        Initialize the tables not prepared yet, once each.

        Tables that raise are dropped for the rest of the run. Requires a
        connected source.
        """
        active = []
        for extractor in self.extractors:
            if extractor.state is ExtractorState.UNINITIALIZED:
                try:
                    extractor.initialize(self.source)
                except Exception as e:
                    self.logger.warning(
                        "Can't handle table, ignoring it",
                        table=extractor.table,
                        error=str(e),
                        error_class=type(e).__name__,
                    )
                    continue
            active.append(extractor)
        self.extractors = active

        if not self.extractors:
            self.logger.warning("No table left to poll")

    def _save_checkpoint(self, table: str, previous: Any, checkpoint: Any) -> None:
        self.store.set(table, checkpoint)
        try:
            self.store.persist()
        except Exception:
            # keep the map writable for the other tables
            if previous is None:
                self.store.delete(table)
            else:
                self.store.set(table, previous)
            raise

    def run_cycle(self) -> CycleReport:
        """Poll every active table once."""
        report = CycleReport(cycle_id=generate_id("cycle"), started_at=utc_now())
        token = cycle_id_var.set(report.cycle_id)
        try:
            if not self._ensure_connection():
                report.skipped = True
                return report

            if any(e.state is ExtractorState.UNINITIALIZED for e in self.extractors):
                self.initialize_tables()

            for extractor in self.extractors:
                table = extractor.table
                try:
                    checkpoint = self.store.get(table)
                    batch, new_checkpoint = extractor.extract_next(
                        checkpoint,
                        self.limit,
                        now=report.started_at,
                    )
                    if new_checkpoint is not None:
                        self._save_checkpoint(table, checkpoint, new_checkpoint)
                    report.tables_processed.append(table)
                    report.records_emitted += len(batch)
                except Exception as e:
                    report.failed_tables[table] = f"{type(e).__name__}: {e}"
                    self.logger.error(
                        "Unexpected error extracting table",
                        table=table,
                        error=str(e),
                        error_class=type(e).__name__,
                        exc_info=True,
                    )

            self.logger.info(
                "Polling cycle finished",
                tables=len(report.tables_processed),
                failed=len(report.failed_tables),
                records=report.records_emitted,
            )
            return report
        finally:
            cycle_id_var.reset(token)
