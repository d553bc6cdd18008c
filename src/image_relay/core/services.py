"""Service implementations for the transform-and-relay pipeline."""

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Type, Union

from pydantic import ValidationError

from .config import RelayConfig
from .exceptions import (
    DecodeError,
    EncodeError,
    EventParseError,
    FetchError,
    StageError,
    StoreError,
    TransformError,
    stage_error_handler,
    with_error_handling,
)
from .image_utils import (
    PixelImage,
    apply_transformation,
    calculate_dest_key,
    decode_image,
    encode_png,
    extract_image_info,
)
from .models import (
    InvocationResult,
    PipelineStage,
    S3EventRecord,
    TransformKind,
    TransformRequest,
)
from .observability import LogContext, MetricsCollector, track_stage
from .protocols import (
    ImageProcessorProtocol,
    LoggerProtocol,
    ObjectFetcher,
    ObjectStore,
    RelayService,
    S3ClientProtocol,
)

PNG_CONTENT_TYPE = "image/png"


class ImageProcessorService:
    """Pure image processing service with no I/O dependencies."""

    def decode(self, image_bytes: bytes) -> PixelImage:
        return decode_image(image_bytes)

    def transform(
        self, image: PixelImage, kind: Union[TransformKind, str, None]
    ) -> PixelImage:
        with stage_error_handler(TransformError):
            return apply_transformation(image, kind)

    def encode(self, image: PixelImage) -> bytes:
        return encode_png(image)

    def apply_transformation(
        self, image_bytes: bytes, kind: Union[TransformKind, str, None]
    ) -> bytes:
        """Decode, transform and re-encode image bytes as PNG."""
        return self.encode(self.transform(self.decode(image_bytes), kind))


class S3ObjectFetcher:
    """ObjectFetcher backed by an S3 client."""

    def __init__(self, s3_client: S3ClientProtocol):
        self._s3_client = s3_client

    @with_error_handling(FetchError)
    def download(self, bucket: str, key: str) -> bytes:
        response = self._s3_client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()


class S3ObjectStore:
    """ObjectStore backed by an S3 client."""

    def __init__(self, s3_client: S3ClientProtocol, content_type: str = PNG_CONTENT_TYPE):
        self._s3_client = s3_client
        self._content_type = content_type

    @with_error_handling(StoreError)
    def upload(self, bucket: str, key: str, data: bytes) -> None:
        self._s3_client.put_object(
            Bucket=bucket,
            Key=key,
            Body=data,
            ContentType=self._content_type,
        )


class TransformAndRelayService(RelayService):
    """Runs fetch, decode, transform, encode and store for one request."""

    def __init__(
        self,
        fetcher: ObjectFetcher,
        store: ObjectStore,
        image_processor: ImageProcessorProtocol,
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        self._fetcher = fetcher
        self._store = store
        self._image_processor = image_processor
        self._logger = logger
        self._metrics_collector = metrics_collector

    @contextmanager
    def _stage(
        self, stage: PipelineStage, error_cls: Type[StageError], context: LogContext
    ) -> Iterator[LogContext]:
        with track_stage(stage, self._logger, self._metrics_collector, context) as stage_context:
            with stage_error_handler(error_cls):
                yield stage_context

    def process(
        self, request: TransformRequest, correlation_id: Optional[str] = None
    ) -> InvocationResult:
        """
        Relay one object through the pipeline.

        Args:
            request: The object to relay and how to transform it
            correlation_id: Identifier threaded through the log lines

        Returns:
            Successful InvocationResult

        Raises:
            StageError: The stage-specific subclass for whichever stage failed;
                its ``result`` attribute holds the failure InvocationResult.
                The failing stage has already logged it at ERROR.
        """
        start_time = time.time()
        dest_key = calculate_dest_key(request.object_key, request.transform_kind)
        log_context = LogContext(
            correlation_id=correlation_id or str(uuid.uuid4()),
            operation="relay",
            component="transform_and_relay",
        ).with_metadata(
            source=f"s3://{request.source_bucket}/{request.object_key}",
            dest=f"s3://{request.destination_bucket}/{dest_key}",
            transformation=request.transform_kind.value or "identity",
        )

        with self._stage(PipelineStage.FETCHING, FetchError, log_context):
            image_bytes = self._fetcher.download(
                request.source_bucket, request.object_key
            )

        with self._stage(PipelineStage.DECODING, DecodeError, log_context) as ctx:
            image = self._image_processor.decode(image_bytes)
            self._logger.debug("Image decoded", ctx, **extract_image_info(image))

        with self._stage(PipelineStage.TRANSFORMING, TransformError, log_context):
            transformed = self._image_processor.transform(
                image, request.transform_kind
            )

        with self._stage(PipelineStage.ENCODING, EncodeError, log_context):
            encoded = self._image_processor.encode(transformed)

        with self._stage(PipelineStage.STORING, StoreError, log_context):
            self._store.upload(request.destination_bucket, dest_key, encoded)

        processing_time = time.time() - start_time
        self._logger.info(
            "Relay completed",
            log_context,
            bytes_written=len(encoded),
            processing_time_ms=processing_time * 1000,
        )
        return InvocationResult.succeeded(request.destination_bucket)


class RelayHandler:
    """Trigger adapter: turns an S3 notification into one relay invocation."""

    def __init__(
        self,
        config: RelayConfig,
        service: RelayService,
        logger: LoggerProtocol,
    ):
        self._config = config
        self._service = service
        self._logger = logger

    @property
    def config(self) -> RelayConfig:
        return self._config

    def build_request(self, event: Mapping[str, Any]) -> TransformRequest:
        """Build the request from the first record of ``event``."""
        records = event.get("Records") if isinstance(event, Mapping) else None
        if not records or not isinstance(records, list):
            raise EventParseError("Event contains no records")

        if len(records) > 1:
            self._logger.warning(
                f"Event carries {len(records)} records; only the first is processed"
            )

        try:
            record = S3EventRecord.model_validate(records[0])
        except ValidationError as exc:
            raise EventParseError(f"Malformed S3 event record: {exc}") from exc

        return TransformRequest(
            source_bucket=record.bucket_name,
            object_key=record.object_key,
            destination_bucket=self._config.dest_bucket,
            transform_kind=self._config.modification_type,
        )

    def handle(
        self, event: Mapping[str, Any], correlation_id: Optional[str] = None
    ) -> InvocationResult:
        """Process one notification; stage failures propagate as StageError."""
        request = self.build_request(event)
        return self._service.process(request, correlation_id)
