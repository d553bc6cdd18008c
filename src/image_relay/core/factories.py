"""Factory classes for creating configured service instances."""

from typing import Any, Optional

import boto3

from .config import RelayConfig
from .observability import MetricsCollector, StructuredLogger
from .protocols import LoggerProtocol, S3ClientProtocol
from .services import (
    ImageProcessorService,
    RelayHandler,
    S3ObjectFetcher,
    S3ObjectStore,
    TransformAndRelayService,
)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str = "image-relay", level: Optional[str] = None) -> StructuredLogger:
        """Create a configured structured logger."""
        return StructuredLogger(name, level=level)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3ClientProtocol:
        """Create S3 client with optional configuration."""
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore


class RelayPipelineFactory:
    """Factory for creating the complete relay handler."""

    @staticmethod
    def create_handler(
        config: Optional[RelayConfig] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> RelayHandler:
        """
        Create a fully wired relay handler.

        Missing dependencies are created from the environment: the config via
        ``RelayConfig.from_env`` (raising ConfigurationError when invalid) and
        the S3 client from the default boto3 session.
        """
        if config is None:
            config = RelayConfig.from_env()

        if s3_client is None:
            s3_client = S3ClientFactory.create_s3_client()

        if logger is None:
            logger = LoggerFactory.create_logger("image-relay")

        service = TransformAndRelayService(
            fetcher=S3ObjectFetcher(s3_client),
            store=S3ObjectStore(s3_client),
            image_processor=ImageProcessorService(),
            logger=logger,
            metrics_collector=metrics_collector,
        )

        return RelayHandler(config=config, service=service, logger=logger)
