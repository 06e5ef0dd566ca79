"""Application configuration for the cronscope inspector."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DESIRED_STATUSES = ("RUNNING", "PENDING", "STOPPED")


def env_field(default, env_name: str):
    return Field(default, validation_alias=env_name)


class InspectorSettings(BaseSettings):
    """Runtime settings shared by every provider call in a run."""

    # The CLI runs from arbitrary directories; foreign keys in a local .env are not ours.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    aws_region: Optional[str] = env_field(None, "CRONSCOPE_AWS_REGION")
    aws_profile: Optional[str] = env_field(None, "CRONSCOPE_AWS_PROFILE")
    http_timeout_seconds: float = env_field(0.2, "CRONSCOPE_HTTP_TIMEOUT")
    lookback_days: int = env_field(7, "CRONSCOPE_LOOKBACK_DAYS")
    desired_status: str = env_field("STOPPED", "CRONSCOPE_DESIRED_STATUS")
    max_concurrency: int = env_field(8, "CRONSCOPE_MAX_CONCURRENCY")
    run_timeout_seconds: float = env_field(30.0, "CRONSCOPE_RUN_TIMEOUT")
    log_level: str = env_field("WARNING", "CRONSCOPE_LOG_LEVEL")
    otel_exporter_endpoint: Optional[str] = env_field(None, "CRONSCOPE_OTEL_EXPORTER_ENDPOINT")
    otel_exporter_headers: Optional[str] = env_field(None, "CRONSCOPE_OTEL_EXPORTER_HEADERS")
    otel_sampler_ratio: float = env_field(1.0, "CRONSCOPE_OTEL_SAMPLER_RATIO")

    @field_validator("desired_status", mode="before")
    @classmethod
    def _normalize_desired_status(cls, value):
        if isinstance(value, str):
            value = value.strip().upper()
            if value not in DESIRED_STATUSES:
                raise ValueError(f"desired status must be one of {', '.join(DESIRED_STATUSES)}")
        return value

    @field_validator("max_concurrency", mode="after")
    @classmethod
    def _clamp_concurrency(cls, value: int) -> int:
        return max(1, value)

    @field_validator("http_timeout_seconds", "run_timeout_seconds", mode="after")
    @classmethod
    def _require_positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    @field_validator("lookback_days", mode="after")
    @classmethod
    def _require_positive_lookback(cls, value: int) -> int:
        if value < 1:
            raise ValueError("lookback must be at least one day")
        return value
