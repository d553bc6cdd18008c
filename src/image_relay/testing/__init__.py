"""Testing utilities and fakes for the image relay."""

from .fakes import (
    FakeS3Client,
    FakeLogger,
    S3Object,
    S3Bucket,
    create_test_image,
    create_test_pil_image,
    make_s3_event,
    setup_test_s3_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "create_test_image",
    "create_test_pil_image",
    "make_s3_event",
    "setup_test_s3_environment",
]
