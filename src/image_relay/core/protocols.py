"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol, Union

from .image_utils import PixelImage
from .models import InvocationResult, TransformKind, TransformRequest


class S3ClientProtocol(Protocol):
    """Protocol for the S3 client operations the relay uses."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class ObjectFetcher(Protocol):
    """Read side of object storage."""

    def download(self, bucket: str, key: str) -> bytes:
        """Return the full content of ``bucket/key``."""
        ...


class ObjectStore(Protocol):
    """Write side of object storage."""

    def upload(self, bucket: str, key: str, data: bytes) -> None:
        """Write ``data`` to ``bucket/key``."""
        ...


class ImageProcessorProtocol(Protocol):
    """Protocol for the decode/transform/encode steps."""

    def decode(self, image_bytes: bytes) -> PixelImage:
        ...

    def transform(
        self, image: PixelImage, kind: Union[TransformKind, str, None]
    ) -> PixelImage:
        ...

    def encode(self, image: PixelImage) -> bytes:
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Optional[Any] = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class RelayService(ABC):
    """Abstract service running one transform-and-relay invocation."""

    @abstractmethod
    def process(
        self, request: TransformRequest, correlation_id: Optional[str] = None
    ) -> InvocationResult:
        """Fetch, transform and store the requested object."""
        ...
