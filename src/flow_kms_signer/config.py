"""Centralized configuration management for flow-kms-signer.

This module provides Pydantic-based configuration with environment variable
support for the key reference, the Cloud KMS client and logging.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flow_kms_signer.exceptions import ValidationError
from flow_kms_signer.models import KeyReference


class KeySettings(BaseSettings):
    """Remote key version used for signing."""

    model_config = SettingsConfigDict(
        env_prefix="FLOW_KMS_KEY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_id: str | None = Field(default=None, description="Google Cloud project ID")
    location_id: str = Field(default="global", description="KMS location")
    key_ring_id: str | None = Field(default=None, description="KMS key ring")
    key_id: str | None = Field(default=None, description="KMS crypto key")
    version_id: str = Field(default="1", description="KMS crypto key version")
    resource_path: str | None = Field(
        default=None,
        description="Full crypto key version path (overrides the individual parts)",
    )
    curve_byte_width: int = Field(
        default=32, description="Byte width of one curve coordinate (32 for P-256/secp256k1)"
    )

    @field_validator("curve_byte_width")
    @classmethod
    def validate_curve_byte_width(cls, v: int) -> int:
        """Validate curve byte width.

        Args:
            v: Byte width value

        Returns:
            Validated byte width

        Raises:
            ValueError: If the width does not belong to a supported curve
        """
        valid_widths = {32, 48, 66}
        if v not in valid_widths:
            raise ValueError(f"Curve byte width must be one of {sorted(valid_widths)}")
        return v

    def key_reference(self) -> KeyReference:
        """Build the key reference described by these settings.

        Raises:
            ValidationError: If neither a resource path nor all key parts are set
        """
        if self.resource_path:
            return KeyReference.from_resource_path(self.resource_path)

        missing = [
            name
            for name in ("project_id", "key_ring_id", "key_id")
            if not getattr(self, name)
        ]
        if missing:
            raise ValidationError(
                f"Key settings incomplete, missing: {', '.join(missing)}",
                field=missing[0],
            )

        return KeyReference(
            project_id=self.project_id,
            location_id=self.location_id,
            key_ring_id=self.key_ring_id,
            key_id=self.key_id,
            version_id=self.version_id,
        )


class ClientSettings(BaseSettings):
    """Cloud KMS client configuration."""

    model_config = SettingsConfigDict(env_prefix="FLOW_KMS_CLIENT_", case_sensitive=False)

    api_endpoint: str | None = Field(default=None, description="KMS API endpoint override")
    timeout: float | None = Field(
        default=None, gt=0, le=600, description="Per-call timeout in seconds"
    )


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="FLOW_KMS_OBSERVABILITY_", case_sensitive=False)

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")
    log_file_path: Path | None = Field(default=None, description="Log file path")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Args:
            v: Log level value

        Returns:
            Validated log level

        Raises:
            ValueError: If log level is invalid
        """
        valid_levels = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()


class Settings(BaseSettings):
    """Main flow-kms-signer configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FLOW_KMS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, testing, production)",
    )

    key: KeySettings = Field(default_factory=KeySettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value.

        Args:
            v: Environment value

        Returns:
            Validated environment

        Raises:
            ValueError: If environment is invalid
        """
        valid_envs = {"development", "testing", "staging", "production"}
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v.lower()


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure_settings(settings: Settings) -> None:
    """Configure the global settings instance.

    Args:
        settings: Settings instance to use globally
    """
    global _settings
    _settings = settings


def reload_settings() -> Settings:
    """Reload settings from environment variables.

    Returns:
        Reloaded Settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
