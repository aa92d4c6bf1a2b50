"""Send batches to Kinesis, retrying the records it refuses."""

from __future__ import annotations

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from tablestream.connectors.streaming.kinesis import StreamConnectionManager
from tablestream.core.exceptions import DeliveryError, RetryExhaustedError
from tablestream.core.retry import RetryConfig, retry_with_backoff
from tablestream.delivery.batch import DeliveryBatch
from tablestream.delivery.formatter import DeliveryUnit

RETRYABLE_ERROR_CODES = frozenset({
    "ProvisionedThroughputExceededException",
    "InternalFailure",
    "ServiceUnavailable",
    "ThrottlingException",
    "LimitExceededException",
    "KMSThrottlingException",
})


class PartialDeliveryError(Exception):
    """Some records of a PutRecords call were not accepted."""

    def __init__(self, message: str, pending: list[DeliveryUnit]) -> None:
        self.pending = pending
        super().__init__(message)


class KinesisWriter:
    """
    Deliver one batch with PutRecords.

    Records refused with a per-record error code, and calls throttled as a
    whole, are re-sent with exponential backoff. Only the records still
    pending are re-sent on each attempt.
    """

    def __init__(
        self,
        manager: StreamConnectionManager,
        stream_name: str,
        retry_config: RetryConfig | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.manager = manager
        self.stream_name = stream_name
        self.retry_config = retry_config or RetryConfig(
            max_attempts=4,
            initial_delay=0.5,
            max_delay=10.0,
        )
        self.logger = (logger or structlog.get_logger()).bind(
            component="kinesis_writer",
            stream=stream_name,
        )

    def _put(self, units: list[DeliveryUnit]) -> list[DeliveryUnit]:
        """One PutRecords call. Returns the units that must be re-sent."""
        try:
            response = self.manager.client.put_records(
                StreamName=self.stream_name,
                Records=[unit.to_entry() for unit in units],
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in RETRYABLE_ERROR_CODES:
                return list(units)
            raise DeliveryError(
                f"PutRecords rejected: {e}",
                stream=self.stream_name,
                failed_units=list(units),
                details={"error_code": code},
            ) from e
        except BotoCoreError as e:
            raise DeliveryError(
                f"PutRecords failed: {e}",
                stream=self.stream_name,
                failed_units=list(units),
            ) from e

        if not response.get("FailedRecordCount"):
            return []

        pending = []
        error_codes: dict[str, int] = {}
        for unit, result in zip(units, response["Records"]):
            if "ErrorCode" in result:
                pending.append(unit)
                error_codes[result["ErrorCode"]] = error_codes.get(result["ErrorCode"], 0) + 1
        self.logger.warning(
            "Records refused by Kinesis",
            failed=len(pending),
            total=len(units),
            error_codes=error_codes,
        )
        return pending

    def put_batch(self, batch: DeliveryBatch) -> int:
        """
        Deliver a batch.

        Returns:
            Number of PutRecords calls made

        Raises:
            DeliveryError: If records are still refused after the last attempt,
                or the call fails with a non-retryable error
        """
        pending: list[DeliveryUnit] = list(batch.units)
        calls = 0

        def attempt() -> None:
            nonlocal pending, calls
            calls += 1
            pending = self._put(pending)
            if pending:
                raise PartialDeliveryError(f"{len(pending)} records pending", pending)

        try:
            cfg = self.retry_config
            retry_with_backoff(
                attempt,
                max_attempts=cfg.max_attempts,
                initial_delay=cfg.initial_delay,
                backoff_factor=cfg.backoff_factor,
                max_delay=cfg.max_delay,
                jitter=cfg.jitter,
                exception_types=(PartialDeliveryError,),
                sleep=cfg.sleep,
            )
        except RetryExhaustedError as e:
            raise DeliveryError(
                f"{len(pending)} of {batch.count} records undelivered "
                f"after {e.attempts} attempts",
                stream=self.stream_name,
                failed_units=pending,
            ) from e

        self.logger.debug(
            "Batch delivered",
            records=batch.count,
            payload_bytes=batch.payload_bytes,
            calls=calls,
        )
        return calls
