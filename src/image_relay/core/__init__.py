"""Core utilities and shared components for the image relay."""

from .config import RelayConfig
from .image_utils import (
    PixelImage,
    apply_transformation,
    calculate_dest_key,
    decode_image,
    encode_png,
    extract_image_info,
)
from .logging_config import get_logger, setup_logger
from .exceptions import (
    ImageRelayError,
    ConfigurationError,
    EventParseError,
    StageError,
    FetchError,
    DecodeError,
    TransformError,
    EncodeError,
    StoreError,
    with_error_handling,
    stage_error_handler,
)
from .models import (
    InvocationResult,
    PipelineStage,
    S3EventRecord,
    TransformKind,
    TransformRequest,
)

__all__ = [
    "RelayConfig",
    "TransformKind",
    "TransformRequest",
    "InvocationResult",
    "PipelineStage",
    "S3EventRecord",
    "PixelImage",
    "apply_transformation",
    "calculate_dest_key",
    "decode_image",
    "encode_png",
    "extract_image_info",
    "setup_logger",
    "get_logger",
    "ImageRelayError",
    "ConfigurationError",
    "EventParseError",
    "StageError",
    "FetchError",
    "DecodeError",
    "TransformError",
    "EncodeError",
    "StoreError",
    "with_error_handling",
    "stage_error_handler",
]
