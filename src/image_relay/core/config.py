"""Process configuration for the relay, read from the environment once."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .models import TransformKind

DEST_BUCKET_ENV = "PUT_BUCKET_NAME"
MODIFICATION_TYPE_ENV = "MODIFICATION_TYPE"


class RelayConfig(BaseModel):
    """Configuration for the relay handler."""

    model_config = ConfigDict(frozen=True)

    dest_bucket: str = Field(min_length=1)
    modification_type: TransformKind = TransformKind.IDENTITY

    @field_validator("dest_bucket")
    @classmethod
    def strip_bucket(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("destination bucket must not be blank")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """
        Build and validate the configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If PUT_BUCKET_NAME is unset or blank, or
                MODIFICATION_TYPE is not one of the supported kinds.
        """
        env = os.environ if environ is None else environ
        dest_bucket = env.get(DEST_BUCKET_ENV)
        if dest_bucket is None:
            raise ConfigurationError(f"{DEST_BUCKET_ENV} is not set")

        raw_kind = env.get(MODIFICATION_TYPE_ENV, "")
        try:
            return cls(dest_bucket=dest_bucket, modification_type=raw_kind)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid relay configuration: {exc}") from exc
