# -*- coding: utf-8 -*-
"""Location: ./grpcinvoker/config.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0
Authors: gRPC Invoker Contributors

gRPC Invoker Configuration.

Settings are read from the environment (prefix ``GRPC_INVOKER_``) and an
optional ``.env`` file. Every component accepts explicit overrides and falls
back to the module-level ``settings`` instance.

Examples:
    >>> from grpcinvoker.config import Settings
    >>> s = Settings(dial_timeout=2.5)
    >>> s.dial_timeout
    2.5
    >>> s.close_grace_period
    3.0
"""

# Standard
from typing import List, Literal

# Third-Party
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Reflection services are never offered as invocation targets
REFLECTION_SERVICE_NAMES = frozenset(
    {
        "grpc.reflection.v1alpha.ServerReflection",
        "grpc.reflection.v1.ServerReflection",
    }
)


class Settings(BaseSettings):
    """gRPC Invoker settings."""

    # Dialing
    dial_timeout: float = Field(default=10.0, gt=0, description="Seconds allowed for establishing a connection")
    fail_fast: bool = Field(default=True, description="Abort dialing on the first connection error")
    keepalive_time: float = Field(default=0.0, ge=0, description="Keepalive ping interval in seconds (0 disables)")
    max_receive_message_length: int = Field(default=256 * 1024 * 1024, gt=0, description="Largest response message accepted, in bytes")

    # Teardown
    close_grace_period: float = Field(default=3.0, gt=0, description="Seconds to wait for reflection/connection teardown")
    scratch_dir: str = Field(default="/tmp/grpcinvoker/", description="Directory holding uploaded descriptor files")

    # Descriptor fallback
    protoset_files: List[str] = Field(default_factory=list, description="FileDescriptorSet files used when reflection cannot resolve a symbol")

    # Metadata
    default_headers: List[str] = Field(default_factory=list, description="'name: value' headers sent with every call")
    reflection_headers: List[str] = Field(default_factory=list, description="'name: value' headers sent with reflection requests")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["text", "json"] = Field(default="text")
    log_to_file: bool = Field(default=False)
    log_file: str = Field(default="grpcinvoker.log")
    log_folder: str = Field(default="")

    model_config = SettingsConfigDict(env_prefix="GRPC_INVOKER_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        """Normalize the configured log level.

        Args:
            value: Raw level name

        Returns:
            str: Upper-cased level name
        """
        return str(value).upper()


settings = Settings()
