"""Configuration loading for the telecheck verification harness.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Fake receiver configuration
    receiver_host: str = Field(
        default="127.0.0.1",
        description="Host the fake telemetry receiver listens on",
    )
    receiver_port: int = Field(
        default=12312,
        description="Port the fake telemetry receiver listens on (0 = any free port)",
    )

    # Verification configuration
    verify_timeout_seconds: float = Field(
        default=20.0,
        description="Deadline for a whole verification run in seconds",
    )
    poll_interval_seconds: float = Field(
        default=0.01,
        description="Interval between capture channel checks in seconds",
    )
    client_metric_fixture: str = Field(
        default="",
        description="Path to the expected client-side request count TimeSeries JSON",
    )
    server_metric_fixture: str = Field(
        default="",
        description="Path to the expected server-side request count TimeSeries JSON",
    )
    access_log_fixture: str = Field(
        default="",
        description="Path to the expected WriteLogEntriesRequest JSON",
    )
    traffic_assertions_fixture: str = Field(
        default="",
        description="Path to the expected ReportTrafficAssertionsRequest JSON",
    )

    # Replay configuration
    replay_target_url: str = Field(
        default="http://127.0.0.1:12312",
        description="Receiver URL replay mode sends fixtures to",
    )
    replay_project: str = Field(
        default="projects/test-project",
        description="Project name used in replayed CreateTimeSeries requests",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Run mode
    run_mode: Literal["serve", "verify", "replay"] = Field(
        default="serve",
        description="Run mode",
    )

    # Development
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging",
    )

    @field_validator("receiver_port")
    @classmethod
    def validate_receiver_port(cls, v: int) -> int:
        """Ensure receiver port is in valid range (0 picks a free port)."""
        if v < 0 or v > 65535:
            raise ValueError("receiver_port must be between 0 and 65535")
        return v

    @field_validator("verify_timeout_seconds")
    @classmethod
    def validate_verify_timeout(cls, v: float) -> float:
        """Ensure verification deadline is positive."""
        if v <= 0:
            raise ValueError("verify_timeout_seconds must be positive")
        return v

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        """Ensure poll interval is positive."""
        if v <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
