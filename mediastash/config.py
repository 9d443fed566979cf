"""Configuration module for the mediastash application.

This module defines all configuration models and parsing logic for the application.
"""

import sys
import typing as t

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .attachment.prober import DEFAULT_PROBE_TIMEOUT
from .db.db import DBConfig
from .db.db_loader import get_db_module


class StrictBaseModel(BaseModel):
    """Base model with immutable (frozen) configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class AttachmentsConfig(StrictBaseModel):
    """Configuration of the attachment extraction subsystem.

    Attributes:
        cache_dir: Directory holding extracted attachments
        ffmpeg_path: ffmpeg executable used to dump attachments
        ffprobe_path: ffprobe executable used to enumerate attachment streams
        probe_timeout: Seconds allowed for each ffmpeg/ffprobe invocation
        wait_timeout: Seconds a request waits for an extraction (None waits forever)
    """

    cache_dir: str = Field(alias="CACHE_DIR")
    ffmpeg_path: str = Field(default="ffmpeg", alias="FFMPEG_PATH")
    ffprobe_path: str = Field(default="ffprobe", alias="FFPROBE_PATH")
    probe_timeout: float = Field(default=DEFAULT_PROBE_TIMEOUT, alias="PROBE_TIMEOUT", gt=0)
    wait_timeout: t.Optional[float] = Field(default=None, alias="WAIT_TIMEOUT", gt=0)


class TelemetryConfig(StrictBaseModel):
    """OpenTelemetry configuration for application tracing.

    Attributes:
        enabled: Enable or disable telemetry tracing
        endpoint: OTLP endpoint URL (e.g., http://localhost:4317)
        console_export: Export traces to console for debugging
        timeout: Timeout in seconds for exporter (default: 10)
        deployment_environment: Deployment environment (e.g., production, staging, dev)
        service_instance_id: Service instance ID (auto-generated if not provided)
    """

    enabled: bool = Field(default=False, alias="enabled")
    endpoint: t.Optional[str] = Field(default=None, alias="endpoint")
    console_export: bool = Field(default=False, alias="console_export")
    timeout: int = Field(default=10, alias="timeout", gt=0)
    deployment_environment: t.Optional[str] = Field(default=None, alias="deployment_environment")
    service_instance_id: t.Optional[str] = Field(default=None, alias="service_instance_id")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: t.Optional[str]) -> t.Optional[str]:
        """Validate endpoint URL format."""
        if v is None:
            return v

        from urllib.parse import urlparse

        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Invalid endpoint: '{v}'. Must be http(s)://host[:port]")

        return v


class Config(StrictBaseModel):
    """Main application configuration.

    Attributes:
        app_name: Application name
        secret_key: Flask secret key
        db: Library database configuration
        attachments: Attachment extraction configuration
        debug: Enable debug mode
        testing: Enable testing mode
        telemetry: OpenTelemetry configuration
    """

    app_name: str = Field(alias="APP_NAME")
    secret_key: str = Field(alias="SECRET_KEY")
    db: DBConfig = Field(alias="DB")
    attachments: AttachmentsConfig = Field(alias="ATTACHMENTS")
    debug: bool = Field(default=False, alias="DEBUG")
    testing: bool = Field(default=False, alias="TESTING")
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig, alias="TELEMETRY")

    @classmethod
    def model_validate(
        cls,
        obj: t.Any,
        *,
        strict: bool | None = None,
        from_attributes: bool | None = None,
        context: dict[str, t.Any] | None = None,
        **kwargs: t.Any,
    ) -> "Config":
        """Validate and construct Config from dictionary.

        Args:
            obj: Configuration dictionary
            strict: Enable strict validation
            from_attributes: Populate from object attributes
            context: Additional validation context

        Returns:
            Validated Config instance
        """
        db_cfg_type = get_db_module(obj["DB"]["TYPE"]).db_config_type()
        obj = {**obj, "DB": db_cfg_type.model_validate(obj["DB"])}
        return super().model_validate(
            obj, strict=strict, from_attributes=from_attributes, context=context, **kwargs
        )

    @classmethod
    def parse_yaml(cls, path: str) -> "Config":
        """Parse configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated Config instance

        Raises:
            SystemExit: If config file is not found
        """
        try:
            with open(path, "r") as f:
                return cls.model_validate(yaml.safe_load(f))
        except FileNotFoundError:
            print(f"Config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
