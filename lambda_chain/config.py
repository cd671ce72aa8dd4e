"""
Lambda Chain - Runtime Configuration
====================================

What:  Centralized configuration using Pydantic Settings.
How:   Reads the environment the Lambda service provides to every function
       (AWS_LAMBDA_*), plus a handful of package-specific knobs, validates
       them and exposes a singleton `settings` object.
Who:   Imported by the runtime adapter and by `main.setup_logging`.
When:  Loaded once at import time, before the first invocation is polled.

Environment variables:
    AWS_LAMBDA_RUNTIME_API          host:port of the Runtime API (set by Lambda)
    AWS_LAMBDA_FUNCTION_NAME        exposed on LambdaContext
    AWS_LAMBDA_FUNCTION_VERSION     exposed on LambdaContext
    AWS_LAMBDA_FUNCTION_MEMORY_SIZE exposed on LambdaContext (MB)
    AWS_LAMBDA_LOG_GROUP_NAME       exposed on LambdaContext
    AWS_LAMBDA_LOG_STREAM_NAME      exposed on LambdaContext
    LOG_LEVEL                       DEBUG, INFO, WARNING, ERROR, CRITICAL
    RUNTIME_RETRY_*                 backoff for polling the Runtime API
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from lambda_chain.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Process settings loaded from environment variables.

    Everything defaults to something usable outside Lambda so the package
    can be imported in tests and local tooling without a Runtime API.
    """

    # ── Lambda environment ────────────────────────────────────────────────
    runtime_api: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_LAMBDA_RUNTIME_API", "runtime_api"),
        description="host:port of the Lambda Runtime API",
    )
    function_name: str = Field(
        default="",
        validation_alias=AliasChoices("AWS_LAMBDA_FUNCTION_NAME", "function_name"),
    )
    function_version: str = Field(
        default="$LATEST",
        validation_alias=AliasChoices("AWS_LAMBDA_FUNCTION_VERSION", "function_version"),
    )
    memory_limit_in_mb: int = Field(
        default=128,
        ge=128,
        le=10240,
        validation_alias=AliasChoices("AWS_LAMBDA_FUNCTION_MEMORY_SIZE", "memory_limit_in_mb"),
    )
    log_group_name: str = Field(
        default="",
        validation_alias=AliasChoices("AWS_LAMBDA_LOG_GROUP_NAME", "log_group_name"),
    )
    log_stream_name: str = Field(
        default="",
        validation_alias=AliasChoices("AWS_LAMBDA_LOG_STREAM_NAME", "log_stream_name"),
    )

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Runtime API retry ─────────────────────────────────────────────────
    # Only the long-poll for the next invocation is retried; a failed
    # response post is reported, never replayed.
    runtime_retry_max_attempts: int = Field(default=3, ge=1, le=10)
    runtime_retry_min_wait: float = Field(default=0.1, ge=0, le=5)
    runtime_retry_max_wait: float = Field(default=2.0, ge=0.1, le=30)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
    }

    def require_runtime_api(self) -> str:
        """
        Return the Runtime API address or fail with guidance.

        Raises:
            ConfigurationError: AWS_LAMBDA_RUNTIME_API is not set, which means
                the process is not running inside the Lambda execution
                environment (or an emulator).
        """
        if not self.runtime_api:
            raise ConfigurationError(
                "AWS_LAMBDA_RUNTIME_API is not set. "
                "start() must run inside Lambda or the Runtime Interface Emulator.",
                setting="AWS_LAMBDA_RUNTIME_API",
            )
        return self.runtime_api


settings = Settings()
