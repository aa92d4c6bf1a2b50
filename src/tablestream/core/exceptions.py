"""Custom exceptions for tablestream."""

from typing import Any


class TableStreamError(Exception):
    """Base exception for all tablestream errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(TableStreamError):
    """Raised when there's a configuration error."""

    pass


class TableInitError(ConfigurationError):
    """Raised when a table cannot be prepared for extraction.

    The table is dropped from the active set for the rest of the run.
    """

    def __init__(
        self,
        message: str,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.table = table
        super().__init__(message, details)


class CorruptStateError(TableStreamError):
    """Raised when a state file exists but does not hold a watermark mapping."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.path = path
        super().__init__(message, details)


class ConnectivityError(TableStreamError):
    """Raised when the source database or the stream cannot be reached."""

    def __init__(
        self,
        message: str,
        connector_type: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.connector_type = connector_type
        super().__init__(message, details)


class ExtractionError(TableStreamError):
    """Raised when extracting a table fails."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.table = table
        super().__init__(message, details)


class FormattingError(TableStreamError):
    """Raised when a record cannot be turned into a delivery unit."""

    pass


class OversizedRecordError(FormattingError):
    """Raised for a record whose payload exceeds the per-record limit."""

    def __init__(
        self,
        message: str,
        size: int | None = None,
        limit: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.size = size
        self.limit = limit
        super().__init__(message, details)


class DeliveryError(TableStreamError):
    """Raised when records could not be delivered to the stream."""

    def __init__(
        self,
        message: str,
        stream: str | None = None,
        failed_units: list[Any] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.stream = stream
        self.failed_units = failed_units or []
        super().__init__(message, details)


class CheckpointError(TableStreamError):
    """Raised when a checkpoint value cannot be stored."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.table = table
        super().__init__(message, details)


class RetryExhaustedError(TableStreamError):
    """Raised when all retry attempts are exhausted."""

    def __init__(
        self,
        message: str,
        attempts: int | None = None,
        last_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message, details)
