"""SQL input: wires the source, extractors, watermarks and scheduler."""

from __future__ import annotations

import structlog

from tablestream.connectors.base import DatabaseConnector
from tablestream.connectors.databases.sql import create_source_connector
from tablestream.core.config import SourceConfig
from tablestream.core.exceptions import ConnectivityError
from tablestream.core.router import Router
from tablestream.extraction.incremental import TableExtractor
from tablestream.extraction.models import TableDescriptor
from tablestream.extraction.watermark import WatermarkStore, create_watermark_store
from tablestream.orchestration.scheduler import ExtractionScheduler


class SQLInput:
    """
    Poll relational tables and emit new rows to a router.

    ``start`` fails fast on a corrupt state file. An unreachable database is
    logged and retried every cycle; tables are initialized once the first
    connection succeeds. Tables whose update column cannot be resolved are
    dropped with a warning and the remaining tables are polled.
    """

    def __init__(
        self,
        config: SourceConfig,
        router: Router,
        source: DatabaseConnector | None = None,
        store: WatermarkStore | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.router = router
        self.source = source or create_source_connector(config)
        self.store = store
        self.logger = (logger or structlog.get_logger()).bind(component="sql_input")
        self.extractors: list[TableExtractor] = [
            TableExtractor(
                TableDescriptor.from_config(table),
                router,
                tag_prefix=config.tag_prefix,
                logger=self.logger,
            )
            for table in config.tables
        ]
        self.scheduler: ExtractionScheduler | None = None

    @property
    def active_tables(self) -> list[str]:
        """Tables polled or waiting for their first connected cycle."""
        extractors = self.scheduler.extractors if self.scheduler else self.extractors
        return [extractor.table for extractor in extractors]

    def initialize(self) -> None:
        """Open the state store, and the database and tables when reachable."""
        if self.store is None:
            if not self.config.state_file:
                self.logger.warning(
                    "'state_file' is not set; checkpoints are kept in memory only",
                    hint="set state_file to resume from the last rows after a restart",
                )
            self.store = create_watermark_store(self.config.state_file)

        self.scheduler = ExtractionScheduler(
            self.source,
            self.extractors,
            self.store,
            interval=self.config.select_interval,
            limit=self.config.select_limit,
            logger=self.logger,
        )

        if not self.source.is_connected:
            try:
                self.source.connect()
            except ConnectivityError as e:
                self.logger.warning(
                    "Can't connect to database, retrying next cycle",
                    error=str(e),
                    error_class=type(e).__name__,
                    tables=self.active_tables,
                )
                return

        self.scheduler.initialize_tables()

    def start(self) -> None:
        """Initialize and start polling in the background."""
        self.initialize()
        self.scheduler.start()

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop polling, wait for the current cycle, close the database."""
        if self.scheduler is not None:
            self.scheduler.stop(timeout)
        self.source.disconnect()
