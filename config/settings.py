"""
Configuration management using pydantic-settings.
Loads environment variables and provides typed settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/leadgen.db",
        description="Database connection URL"
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Analytics
    default_attribution_model: Literal[
        "first_touch", "last_touch", "multi_touch", "time_decay"
    ] = Field(
        default="multi_touch",
        description="Attribution model used when none is requested"
    )
    channel_conversion_basis: Literal["communication", "lead"] = Field(
        default="communication",
        description="Denominator for channel conversion rate"
    )
    prioritization_default_limit: int = Field(
        default=20,
        ge=1,
        description="Default number of prioritized leads returned"
    )
    max_workers: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Per-lead worker threads (1 = sequential)"
    )

    # Workflow automation
    automation_user_id: int | None = Field(
        default=None,
        description="User id recorded on activities created by automation"
    )
    automation_actor_name: str = Field(
        default="workflow-automation",
        description="Actor name recorded on activities created by automation"
    )

    # Outbound tools
    sendgrid_api_key: str | None = None
    sendgrid_from_email: str | None = None
    email_max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for transient email failures"
    )

    # Observability
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    log_file: str | None = Field(
        default="./data/logs/leadgen.log",
        description="Log file path (unset to disable file logging)"
    )
    enable_trace_logging: bool = Field(
        default=True,
        description="Enable detailed trace logging"
    )

    # Job Scheduler
    enable_background_jobs: bool = Field(
        default=True,
        description="Enable background job scheduler"
    )
    workflow_check_interval_minutes: int = Field(
        default=60,
        ge=1,
        description="Interval for sweeping inactivity/status workflows"
    )
    followup_check_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Hour of day for the follow-up check"
    )
    followup_inactivity_days: int = Field(
        default=7,
        ge=1,
        description="Days without completed activity before a follow-up is due"
    )

    def validate_outbound(self) -> None:
        """Validate that outbound email configuration is consistent."""
        if self.sendgrid_api_key and not self.sendgrid_from_email:
            raise ValueError("SENDGRID_FROM_EMAIL required when SENDGRID_API_KEY is set")


# Global settings instance
settings = Settings()
