"""Application configuration via pydantic-settings."""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

from cborlite.wire import MAX_NESTING


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Codec
    CBOR_MAX_NESTING: int = MAX_NESTING
    CBOR_STRICT_READ: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_SERVICE_NAME: str = "cborlite"

    @field_validator("CBOR_MAX_NESTING")
    @classmethod
    def validate_max_nesting(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"CBOR_MAX_NESTING must be at least 1, got {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(getattr(logging, level, None), int):
            raise ValueError(f"Invalid log level: {v!r}")
        return level
