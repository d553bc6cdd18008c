"""AWS Lambda entry point for the image relay."""

from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from .core import StageError, get_logger
from .core.factories import RelayPipelineFactory
from .core.logging_config import bind_request_id
from .core.services import RelayHandler


@lru_cache(maxsize=1)
def get_handler() -> RelayHandler:
    """Build the relay handler once per process, validating the environment."""
    return RelayPipelineFactory.create_handler()


def lambda_handler(event: Mapping[str, Any], context: Optional[Any] = None) -> Dict[str, Any]:
    """
    Handle one S3 object-created notification.

    Returns the ``{"message": ..., "ok": True}`` result on success. On failure
    the failure result is logged and the error re-raised so the platform
    records the invocation as failed.
    """
    request_id = getattr(context, "aws_request_id", None)
    bind_request_id(request_id)
    logger = get_logger("relay")

    try:
        result = get_handler().handle(event, correlation_id=request_id)
    except StageError as e:
        logger.error(f"Invocation failed at {e.stage.value}: {e.result.model_dump()}")
        raise

    return result.model_dump()
