"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading. Every variable uses the ``PROVIDERMESH_`` prefix.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings model.

    All properties are automatically bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROVIDERMESH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    log_format: str = Field(default="detailed", description="Log format (simple, detailed, json)")
    log_file_dir: str = Field(default="logs", description="Directory for the optional log file")
    enable_file_logging: bool = Field(default=False, description="Write logs to a file as well as the console")

    # =====================================================================
    # Invocation
    # =====================================================================
    default_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Timeout applied to invocations that do not pass one (None = unbounded)"
    )
    stream_buffer_size: int = Field(
        default=8, ge=1, description="Maximum number of stream elements buffered ahead of the consumer"
    )
    operation_poll_interval_seconds: float = Field(
        default=1.0, gt=0, description="Delay between polls when waiting for a long-running operation"
    )
    cancel_ack_timeout_seconds: float = Field(
        default=2.0, gt=0, description="Upper bound on waiting for a provider to acknowledge a cancellation"
    )
    local_file_max_bytes: int = Field(
        default=20 * 1024 * 1024, ge=1, description="Largest local file inlined into a message part"
    )

    # =====================================================================
    # Provider plugins
    # =====================================================================
    provider_entry_point_group: str = Field(
        default="providermesh.providers", description="Entry-point group scanned for provider factories"
    )
    load_plugins_on_init: bool = Field(
        default=True, description="Load entry-point providers when the default registry is initialized"
    )


settings = Settings()
