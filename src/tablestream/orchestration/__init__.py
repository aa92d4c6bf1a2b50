"""Scheduling of extraction cycles."""

from tablestream.orchestration.scheduler import ExtractionScheduler
from tablestream.orchestration.sql_input import SQLInput

__all__ = [
    "ExtractionScheduler",
    "SQLInput",
]
