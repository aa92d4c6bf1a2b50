"""AWS Kinesis stream connection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tablestream.connectors.base import BaseConnector, ConnectorConfig, ConnectorType
from tablestream.core.config import KinesisSinkConfig
from tablestream.core.exceptions import ConnectivityError


@dataclass
class KinesisConnectionConfig(ConnectorConfig):
    """Kinesis connection options."""

    stream_name: str = ""
    region: str | None = None

    # AWS credentials (optional - uses default chain if not provided)
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None

    endpoint_url: str | None = None
    debug: bool = False
    max_attempts: int = 3

    def __post_init__(self) -> None:
        self.connector_type = ConnectorType.STREAMING

    @classmethod
    def from_sink_config(cls, config: KinesisSinkConfig) -> "KinesisConnectionConfig":
        return cls(
            name=f"kinesis:{config.stream_name}",
            stream_name=config.stream_name,
            region=config.region,
            aws_access_key_id=config.aws_key_id.get_secret_value() if config.aws_key_id else None,
            aws_secret_access_key=(
                config.aws_sec_key.get_secret_value() if config.aws_sec_key else None
            ),
            endpoint_url=config.endpoint_url,
            debug=config.debug,
        )


class StreamConnectionManager(BaseConnector):
    """
    Build the Kinesis client and check the target stream.

    Example:
        manager = StreamConnectionManager(
            KinesisConnectionConfig(name="out", stream_name="events", region="us-west-2")
        )
        manager.connect()
        manager.validate()
    """

    connector_type = ConnectorType.STREAMING

    def __init__(self, config: KinesisConnectionConfig, session: Any | None = None) -> None:
        super().__init__(config)
        self.kinesis_config = config
        self._session = session
        self._client: Any | None = None

    @property
    def client(self) -> Any:
        """The Kinesis client, connecting on first use."""
        if self._client is None:
            self.connect()
        return self._client

    def connect(self) -> None:
        """Create the Kinesis client from the connection options."""
        cfg = self.kinesis_config

        client_kwargs: dict[str, Any] = {
            "config": Config(
                retries={"max_attempts": cfg.max_attempts, "mode": "adaptive"},
            ),
        }
        if cfg.region:
            client_kwargs["region_name"] = cfg.region
        if cfg.endpoint_url:
            client_kwargs["endpoint_url"] = cfg.endpoint_url
        if cfg.aws_access_key_id and cfg.aws_secret_access_key:
            client_kwargs["aws_access_key_id"] = cfg.aws_access_key_id
            client_kwargs["aws_secret_access_key"] = cfg.aws_secret_access_key
            if cfg.aws_session_token:
                client_kwargs["aws_session_token"] = cfg.aws_session_token

        if cfg.debug:
            boto3.set_stream_logger("botocore", logging.DEBUG)

        session = self._session or boto3.Session()
        try:
            self._client = session.client("kinesis", **client_kwargs)
        except (BotoCoreError, ClientError) as e:
            raise ConnectivityError(
                f"Failed to create Kinesis client: {e}",
                connector_type="kinesis",
                details={"region": cfg.region},
            ) from e

        self._connected = True
        self.logger.info("Kinesis client ready", region=cfg.region, stream=cfg.stream_name)

    def disconnect(self) -> None:
        self._client = None
        self._connected = False
        self.logger.info("Disconnected from Kinesis")

    def test_connection(self) -> bool:
        try:
            self.validate()
            return True
        except ConnectivityError:
            return False

    def validate(self, stream_name: str | None = None) -> dict[str, Any]:
        """
        Check that the stream exists and can be described.

        Returns:
            Stream summary (name, status, shard count)

        Raises:
            ConnectivityError: If the stream cannot be described
        """
        stream_name = stream_name or self.kinesis_config.stream_name
        try:
            response = self.client.describe_stream(StreamName=stream_name)
        except (BotoCoreError, ClientError) as e:
            raise ConnectivityError(
                f"Can't describe Kinesis stream {stream_name!r}: {e}",
                connector_type="kinesis",
                details={"stream": stream_name},
            ) from e

        desc = response["StreamDescription"]
        info = {
            "stream_name": desc.get("StreamName", stream_name),
            "stream_status": desc.get("StreamStatus"),
            "shard_count": len(desc.get("Shards", [])),
        }
        if info["stream_status"] not in ("ACTIVE", "UPDATING"):
            self.logger.warning("Stream is not writable yet", **info)
        else:
            self.logger.info("Stream validated", **info)
        return info
