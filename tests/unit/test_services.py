"""Unit tests for service implementations."""

import pytest
from unittest.mock import Mock
from botocore.exceptions import ClientError
from PIL import ImageOps

from image_relay.core.config import RelayConfig
from image_relay.core.exceptions import (
    DecodeError,
    EncodeError,
    EventParseError,
    FetchError,
    StoreError,
    TransformError,
)
from image_relay.core.image_utils import decode_image
from image_relay.core.models import (
    InvocationResult,
    PipelineStage,
    TransformKind,
    TransformRequest,
)
from image_relay.core.observability import MetricsCollector
from image_relay.core.services import (
    ImageProcessorService,
    RelayHandler,
    S3ObjectFetcher,
    S3ObjectStore,
    TransformAndRelayService,
)
from image_relay.testing.fakes import (
    FakeLogger,
    FakeS3Client,
    create_test_image,
    make_s3_event,
    setup_test_s3_environment,
)

FAILED = InvocationResult(message="Failed! An Error Occurred.", ok=False)


def _request(key="photo.png", kind=TransformKind.INVERT, dest="dst"):
    return TransformRequest(
        source_bucket="src",
        object_key=key,
        destination_bucket=dest,
        transform_kind=kind,
    )


def _service(fake_s3, logger=None, metrics_collector=None):
    return TransformAndRelayService(
        fetcher=S3ObjectFetcher(fake_s3),
        store=S3ObjectStore(fake_s3),
        image_processor=ImageProcessorService(),
        logger=logger or FakeLogger(),
        metrics_collector=metrics_collector,
    )


class TestImageProcessorService:
    """Tests for ImageProcessorService."""

    def test_apply_transformation_returns_png(self):
        processor = ImageProcessorService()

        result = processor.apply_transformation(create_test_image(20, 20), "grayscale")

        assert result.startswith(b"\x89PNG")

    def test_apply_transformation_converts_jpeg_to_png(self):
        processor = ImageProcessorService()

        result = processor.apply_transformation(
            create_test_image(20, 20, format="JPEG"), TransformKind.FLIP_HORIZONTAL
        )

        assert decode_image(result).source_format == "PNG"

    def test_apply_transformation_invalid_image(self):
        processor = ImageProcessorService()

        with pytest.raises(DecodeError):
            processor.apply_transformation(b"not an image", "invert")

    def test_transform_failure_raises_transform_error(self):
        processor = ImageProcessorService()
        broken = Mock()
        broken.image.mode = "RGB"
        broken.image.copy.side_effect = RuntimeError("no memory")

        with pytest.raises(TransformError, match="no memory"):
            processor.transform(broken, TransformKind.IDENTITY)


class TestS3ObjectFetcher:
    """Tests for S3ObjectFetcher."""

    def test_download_success(self):
        fake_s3 = FakeS3Client()
        fake_s3.create_bucket("src").add_object("a.png", b"bytes")

        assert S3ObjectFetcher(fake_s3).download("src", "a.png") == b"bytes"

    def test_download_missing_object(self):
        fake_s3 = FakeS3Client()
        fake_s3.create_bucket("src")

        with pytest.raises(FetchError, match="not found") as exc_info:
            S3ObjectFetcher(fake_s3).download("src", "missing.png")

        assert isinstance(exc_info.value.__cause__, ClientError)

    def test_download_access_denied(self):
        fake_s3 = setup_test_s3_environment()
        fake_s3.set_failure_mode(True, "Access Denied", operations=["get_object"])

        with pytest.raises(FetchError, match="Access Denied"):
            S3ObjectFetcher(fake_s3).download("src", "photo.png")


class TestS3ObjectStore:
    """Tests for S3ObjectStore."""

    def test_upload_success(self):
        fake_s3 = FakeS3Client()
        bucket = fake_s3.create_bucket("dst")

        S3ObjectStore(fake_s3).upload("dst", "out.png", b"png-bytes")

        stored = bucket.get_object("out.png")
        assert stored.body == b"png-bytes"
        assert stored.content_type == "image/png"

    def test_upload_failure(self):
        fake_s3 = setup_test_s3_environment()
        fake_s3.set_failure_mode(True, "S3 Service Error", operations=["put_object"])

        with pytest.raises(StoreError, match="S3 Service Error") as exc_info:
            S3ObjectStore(fake_s3).upload("dst", "out.png", b"png-bytes")

        assert isinstance(exc_info.value.__cause__, ClientError)


class TestTransformAndRelayService:
    """Tests for TransformAndRelayService."""

    def test_process_success(self):
        fake_s3 = setup_test_s3_environment()

        result = _service(fake_s3).process(_request())

        assert result == InvocationResult(
            message="Successful! Check dst S3 Bucket.", ok=True
        )
        assert fake_s3.calls == [
            ("get_object", "src", "photo.png"),
            ("put_object", "dst", "invert-photo.png"),
        ]

    def test_process_uploads_inverted_png(self):
        fake_s3 = setup_test_s3_environment()
        source = decode_image(fake_s3.get_bucket("src").get_object("photo.png").body)

        _service(fake_s3).process(_request())

        stored = fake_s3.get_bucket("dst").get_object("invert-photo.png")
        uploaded = decode_image(stored.body)
        assert stored.content_type == "image/png"
        assert uploaded.source_format == "PNG"
        assert uploaded.image.tobytes() == ImageOps.invert(source.image).tobytes()

    def test_process_identity_key(self):
        fake_s3 = setup_test_s3_environment()

        _service(fake_s3).process(_request(kind=TransformKind.IDENTITY))

        assert fake_s3.get_bucket("dst").get_object("-photo.png") is not None

    def test_process_fetch_failure(self):
        fake_s3 = setup_test_s3_environment()
        fake_s3.set_failure_mode(True, "Access Denied", operations=["get_object"])

        with pytest.raises(FetchError) as exc_info:
            _service(fake_s3).process(_request())

        assert exc_info.value.result == FAILED
        assert fake_s3.calls_for("put_object") == []

    def test_process_missing_object(self):
        fake_s3 = setup_test_s3_environment()

        with pytest.raises(FetchError, match="not found"):
            _service(fake_s3).process(_request(key="nonexistent.png"))

        assert fake_s3.calls_for("put_object") == []

    def test_process_decode_failure(self):
        fake_s3 = setup_test_s3_environment()

        with pytest.raises(DecodeError) as exc_info:
            _service(fake_s3).process(_request(key="notes.txt"))

        assert exc_info.value.result == FAILED
        assert fake_s3.calls_for("put_object") == []

    def test_process_encode_failure(self):
        fake_s3 = setup_test_s3_environment()
        processor = Mock(wraps=ImageProcessorService())
        processor.encode.side_effect = EncodeError("cannot write")
        service = TransformAndRelayService(
            fetcher=S3ObjectFetcher(fake_s3),
            store=S3ObjectStore(fake_s3),
            image_processor=processor,
            logger=FakeLogger(),
        )

        with pytest.raises(EncodeError):
            service.process(_request())

        assert fake_s3.calls_for("put_object") == []

    def test_process_store_failure(self):
        fake_s3 = setup_test_s3_environment()
        fake_s3.set_failure_mode(True, "S3 Service Error", operations=["put_object"])

        with pytest.raises(StoreError) as exc_info:
            _service(fake_s3).process(_request())

        assert exc_info.value.result == FAILED
        assert len(fake_s3.calls_for("get_object")) == 1
        assert fake_s3.get_bucket("dst").objects == {}

    def test_foreign_fetcher_errors_are_translated(self):
        """Any ObjectFetcher failure surfaces as FetchError."""
        fetcher = Mock()
        fetcher.download.side_effect = ConnectionResetError("connection reset")
        store = Mock()
        service = TransformAndRelayService(
            fetcher=fetcher,
            store=store,
            image_processor=ImageProcessorService(),
            logger=FakeLogger(),
        )

        with pytest.raises(FetchError) as exc_info:
            service.process(_request())

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
        store.upload.assert_not_called()

    def test_foreign_store_errors_are_translated(self):
        fetcher = Mock()
        fetcher.download.return_value = create_test_image(10, 10)
        store = Mock()
        store.upload.side_effect = TimeoutError("upload timed out")
        service = TransformAndRelayService(
            fetcher=fetcher,
            store=store,
            image_processor=ImageProcessorService(),
            logger=FakeLogger(),
        )

        with pytest.raises(StoreError):
            service.process(_request())

        store.upload.assert_called_once()
        bucket, key, data = store.upload.call_args[0]
        assert (bucket, key) == ("dst", "invert-photo.png")
        assert data.startswith(b"\x89PNG")

    def test_process_records_stage_metrics(self):
        fake_s3 = setup_test_s3_environment()
        collector = MetricsCollector()

        _service(fake_s3, metrics_collector=collector).process(_request())

        assert [m.stage for m in collector.get_metrics()] == [
            PipelineStage.FETCHING,
            PipelineStage.DECODING,
            PipelineStage.TRANSFORMING,
            PipelineStage.ENCODING,
            PipelineStage.STORING,
        ]
        assert all(m.success for m in collector.get_metrics())

    def test_failed_stage_metrics_stop_at_failure(self):
        fake_s3 = setup_test_s3_environment()
        collector = MetricsCollector()

        with pytest.raises(DecodeError):
            _service(fake_s3, metrics_collector=collector).process(
                _request(key="notes.txt")
            )

        metrics = collector.get_metrics()
        assert [m.stage for m in metrics] == [
            PipelineStage.FETCHING,
            PipelineStage.DECODING,
        ]
        assert metrics[-1].success is False

    def test_process_logs_with_correlation_id(self):
        fake_s3 = setup_test_s3_environment()
        logger = FakeLogger()

        _service(fake_s3, logger=logger).process(_request(), correlation_id="req-42")

        info_logs = logger.get_logs("INFO")
        assert info_logs[-1]["message"] == "Relay completed"
        assert info_logs[-1]["correlation_id"] == "req-42"
        assert info_logs[-1]["dest"] == "s3://dst/invert-photo.png"
        assert all(log["correlation_id"] == "req-42" for log in logger.get_logs())

    def test_process_failure_logged_once_at_stage(self):
        fake_s3 = setup_test_s3_environment()
        fake_s3.set_failure_mode(True, operations=["put_object"])
        logger = FakeLogger()

        with pytest.raises(StoreError):
            _service(fake_s3, logger=logger).process(_request())

        errors = logger.get_logs("ERROR")
        assert len(errors) == 1
        assert errors[0]["operation"] == "storing"
        assert errors[0]["message"].startswith("Failed storing")


class TestRelayHandler:
    """Tests for RelayHandler."""

    def _handler(self, service=None, logger=None, kind=TransformKind.GRAYSCALE):
        config = RelayConfig(dest_bucket="dst", modification_type=kind)
        return RelayHandler(config, service or Mock(), logger or FakeLogger())

    def test_build_request(self):
        request = self._handler().build_request(make_s3_event("src", "image.png"))

        assert request == TransformRequest(
            source_bucket="src",
            object_key="image.png",
            destination_bucket="dst",
            transform_kind=TransformKind.GRAYSCALE,
        )

    def test_build_request_decodes_key(self):
        request = self._handler().build_request(make_s3_event("src", "my+photo.png"))

        assert request.object_key == "my photo.png"

    def test_only_first_record_processed(self):
        logger = FakeLogger()
        handler = self._handler(logger=logger)

        request = handler.build_request(make_s3_event("src", "first.png", extra_records=2))

        assert request.object_key == "first.png"
        warnings = logger.get_logs("WARNING")
        assert len(warnings) == 1
        assert "3 records" in warnings[0]["message"]

    def test_malformed_extra_records_ignored(self):
        event = make_s3_event("src", "first.png")
        event["Records"].append({"unexpected": True})

        request = self._handler().build_request(event)

        assert request.object_key == "first.png"

    @pytest.mark.parametrize("event", [{}, {"Records": []}, {"Records": None}, {"Records": "x"}])
    def test_no_records(self, event):
        with pytest.raises(EventParseError, match="no records"):
            self._handler().build_request(event)

    def test_malformed_first_record(self):
        with pytest.raises(EventParseError, match="Malformed"):
            self._handler().build_request({"Records": [{"s3": {"bucket": {}}}]})

    def test_handle_delegates_to_service(self):
        service = Mock()
        service.process.return_value = InvocationResult.succeeded("dst")
        handler = self._handler(service=service)

        result = handler.handle(make_s3_event("src", "image.png"), correlation_id="c-1")

        assert result.ok is True
        request, correlation_id = service.process.call_args[0]
        assert request.object_key == "image.png"
        assert correlation_id == "c-1"

    def test_handle_parse_error_skips_service(self):
        service = Mock()
        handler = self._handler(service=service)

        with pytest.raises(EventParseError):
            handler.handle({"Records": []})

        service.process.assert_not_called()

    def test_config_property(self):
        handler = self._handler(kind=TransformKind.INVERT)

        assert handler.config.modification_type is TransformKind.INVERT
