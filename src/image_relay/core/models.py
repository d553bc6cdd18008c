"""Shared data models for the image relay."""

from enum import Enum
from typing import Optional, Union
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_MESSAGE_TEMPLATE = "Successful! Check {bucket} S3 Bucket."
FAILURE_MESSAGE = "Failed! An Error Occurred."


class TransformKind(str, Enum):
    """Pixel transformation applied to the relayed image."""

    GRAYSCALE = "grayscale"
    INVERT = "invert"
    FLIP_HORIZONTAL = "horizontal"
    FLIP_VERTICAL = "vertical"
    IDENTITY = ""

    @classmethod
    def parse(cls, value: Union["TransformKind", str, None]) -> "TransformKind":
        """Map a raw value to a kind; anything unrecognized is IDENTITY."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value or "")
        except ValueError:
            return cls.IDENTITY


class PipelineStage(str, Enum):
    """Stages of a single relay invocation."""

    FETCHING = "fetching"
    DECODING = "decoding"
    TRANSFORMING = "transforming"
    ENCODING = "encoding"
    STORING = "storing"
    DONE = "done"
    FAILED = "failed"


class TransformRequest(BaseModel):
    """Everything one invocation needs, fixed for its lifetime."""

    model_config = ConfigDict(frozen=True)

    source_bucket: str
    object_key: str
    destination_bucket: str
    transform_kind: TransformKind = TransformKind.IDENTITY


class InvocationResult(BaseModel):
    """Result returned to the trigger platform."""

    model_config = ConfigDict(frozen=True)

    message: str
    ok: bool

    @classmethod
    def succeeded(cls, dest_bucket: str) -> "InvocationResult":
        return cls(message=SUCCESS_MESSAGE_TEMPLATE.format(bucket=dest_bucket), ok=True)

    @classmethod
    def failed(cls) -> "InvocationResult":
        return cls(message=FAILURE_MESSAGE, ok=False)


class S3BucketRef(BaseModel):
    """Bucket part of an S3 notification record."""

    name: str = Field(min_length=1)


class S3ObjectRef(BaseModel):
    """Object part of an S3 notification record."""

    key: str = Field(min_length=1)
    size: Optional[int] = None

    @field_validator("key")
    @classmethod
    def decode_key(cls, value: str) -> str:
        # S3 notifications deliver keys form-encoded ("my photo.png" -> "my+photo.png")
        return unquote_plus(value)


class S3Entity(BaseModel):
    """The ``s3`` block of a notification record."""

    model_config = ConfigDict(populate_by_name=True)

    bucket: S3BucketRef
    obj: S3ObjectRef = Field(alias="object")


class S3EventRecord(BaseModel):
    """A single S3 object-created notification record."""

    model_config = ConfigDict(populate_by_name=True)

    s3: S3Entity
    event_name: Optional[str] = Field(default=None, alias="eventName")
    aws_region: Optional[str] = Field(default=None, alias="awsRegion")

    @property
    def bucket_name(self) -> str:
        return self.s3.bucket.name

    @property
    def object_key(self) -> str:
        return self.s3.obj.key

