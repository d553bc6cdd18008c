"""Logging setup for the relay: one stdout handler per logger, tagged with the Lambda request id."""

import os
import sys
import logging
from typing import List, Optional

HANDLER_NAME = "image-relay-stdout"
NO_REQUEST_ID = "-"

# CloudWatch stamps every line itself, so the Lambda layout carries no time
LOG_FORMATS = {
    "lambda": "%(levelname)s\t%(aws_request_id)s\t%(name)s\t%(message)s",
    "simple": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

_request_id = NO_REQUEST_ID


def bind_request_id(request_id: Optional[str]) -> None:
    """Tag every following log line with ``request_id`` (``-`` when None)."""
    global _request_id
    _request_id = request_id or NO_REQUEST_ID


def current_request_id() -> str:
    return _request_id


class RequestIdFilter(logging.Filter):
    """Stamp records with the invocation currently being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "aws_request_id"):
            record.aws_request_id = _request_id
        return True


def resolve_level(level: Optional[str] = None) -> int:
    """Explicit level, else LOG_LEVEL, else INFO; unknown names map to INFO."""
    name = level or os.getenv("LOG_LEVEL", "INFO")
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def owned_handlers(logger: logging.Logger) -> List[logging.Handler]:
    """Handlers installed by ``setup_logger``, ignoring any added by test runners."""
    return [h for h in logger.handlers if h.get_name() == HANDLER_NAME]


def setup_logger(
    name: str = "image-relay",
    level: Optional[str] = None,
    format_type: str = "lambda",
) -> logging.Logger:
    """
    Configure ``name`` to write to stdout, where Lambda forwards it to CloudWatch.

    Args:
        name: Logger name
        level: Level override; LOG_LEVEL or INFO otherwise
        format_type: "lambda" or "simple"; LOG_FORMAT overrides it

    Returns:
        The configured logger. Calling again re-applies the level but never
        adds a second handler, since warm invocations share the process.
    """
    logger = logging.getLogger(name)
    logger.setLevel(resolve_level(level))

    if not owned_handlers(logger):
        layout = os.getenv("LOG_FORMAT", format_type).lower()
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.addFilter(RequestIdFilter())
        handler.setFormatter(logging.Formatter(LOG_FORMATS.get(layout, LOG_FORMATS["lambda"])))
        logger.addHandler(handler)

    # The Lambda runtime installs its own root handler
    logger.propagate = False
    return logger


def get_logger(name: str = "image-relay") -> logging.Logger:
    """Return ``name``, configuring it on first use only."""
    logger = logging.getLogger(name)
    if owned_handlers(logger):
        return logger
    return setup_logger(name)
