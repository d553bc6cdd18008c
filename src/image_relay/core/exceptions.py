"""Custom exceptions and error handling utilities for the image relay."""

from __future__ import annotations

from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional, Type, TypeVar

from .logging_config import get_logger
from .models import InvocationResult, PipelineStage


class ImageRelayError(Exception):
    """Base exception for all image relay errors."""


class ConfigurationError(ImageRelayError):
    """Error raised for invalid configuration options."""


class EventParseError(ImageRelayError):
    """Error raised when the trigger payload cannot be used."""


class StageError(ImageRelayError):
    """A pipeline stage failed; the invocation ends in FAILED."""

    stage: PipelineStage = PipelineStage.FAILED

    @property
    def result(self) -> InvocationResult:
        """Result reported to the platform for this failure."""
        return InvocationResult.failed()


class FetchError(StageError):
    """Error raised when the source object cannot be downloaded."""

    stage = PipelineStage.FETCHING


class DecodeError(StageError):
    """Error raised when the downloaded bytes are not a readable image."""

    stage = PipelineStage.DECODING


class TransformError(StageError):
    """Error raised when the pixel transformation fails."""

    stage = PipelineStage.TRANSFORMING


class EncodeError(StageError):
    """Error raised when the transformed image cannot be serialized."""

    stage = PipelineStage.ENCODING


class StoreError(StageError):
    """Error raised when the result cannot be uploaded."""

    stage = PipelineStage.STORING


F = TypeVar("F", bound=Callable[..., Any])


def with_error_handling(error_cls: Type[StageError]) -> Callable[[F], F]:
    """Wrap a function so that foreign exceptions surface as ``error_cls``."""

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except ImageRelayError:
                raise
            except Exception as exc:  # noqa: BLE001
                # The stage boundary reports the failure at ERROR
                get_logger("relay").debug(
                    f"{func.__name__} raised {type(exc).__name__}: {exc}"
                )
                raise error_cls(f"{func.__name__} failed: {exc}") from exc

        return wrapper  # type: ignore[return-value]

    return decorator


@contextmanager
def stage_error_handler(
    error_cls: Type[StageError], message: Optional[str] = None
) -> Iterator[None]:
    """Context manager translating failures inside a stage into ``error_cls``."""
    try:
        yield
    except ImageRelayError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise error_cls(message or str(exc)) from exc
