"""In-process routing of tagged record batches."""

from __future__ import annotations

from datetime import datetime
from fnmatch import fnmatchcase
from typing import Protocol, runtime_checkable

import structlog

from tablestream.extraction.models import RecordBatch


@runtime_checkable
class Router(Protocol):
    """Receives record batches handed off by the extractors."""

    def emit(self, tag: str, timestamp: datetime, batch: RecordBatch) -> None:
        ...


class EventRouter:
    """
    Dispatch batches to sinks by tag pattern.

    Patterns use shell-style wildcards (``db.*``). Every matching route
    receives the batch, in the order routes were added. Sink errors
    propagate to the emitter.
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._routes: list[tuple[str, Router]] = []
        self.logger = (logger or structlog.get_logger()).bind(component="router")

    def add_route(self, pattern: str, sink: Router) -> None:
        self._routes.append((pattern, sink))

    def matching(self, tag: str) -> list[Router]:
        return [sink for pattern, sink in self._routes if fnmatchcase(tag, pattern)]

    def emit(self, tag: str, timestamp: datetime, batch: RecordBatch) -> None:
        sinks = self.matching(tag)
        if not sinks:
            self.logger.debug("No route matches tag, dropping batch", tag=tag, records=len(batch))
            return

        for sink in sinks:
            sink.emit(tag, timestamp, batch)


class CollectingRouter:
    """Keeps every emitted batch in memory."""

    def __init__(self) -> None:
        self.emitted: list[tuple[str, datetime, RecordBatch]] = []

    def emit(self, tag: str, timestamp: datetime, batch: RecordBatch) -> None:
        self.emitted.append((tag, timestamp, batch))

    @property
    def records(self) -> list:
        return [record for _, _, batch in self.emitted for record in batch]
