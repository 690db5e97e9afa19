from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://mandrillapp.com/api/1.0/tags/list.json"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json")


class Settings(BaseSettings):
    # Mandrill API
    MANDRILL_API_KEY: str = Field(default="", description="Mandrill API key")
    MANDRILL_API_URL: str = Field(default=DEFAULT_API_URL, description="tags/list.json endpoint")
    MANDRILL_TIMEOUT_SECONDS: Optional[float] = None

    # Exporter
    METRICS_NAMESPACE: str = "mandrill"
    SHUTDOWN_TIMEOUT_SECONDS: float = 5.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    # Optional path to a YAML config that can override/extend env
    CONFIG_YAML: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("MANDRILL_API_URL")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("MANDRILL_API_URL must start with http:// or https://")
        return v

    @field_validator("MANDRILL_TIMEOUT_SECONDS", "SHUTDOWN_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeouts must be greater than zero")
        return v

    @field_validator("METRICS_NAMESPACE")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        # Empty exports the bare names (sent_total, opens, ...)
        if v and (not v.replace("_", "").isalnum() or v[0].isdigit()):
            raise ValueError(f"METRICS_NAMESPACE is not a valid metric prefix: {v!r}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")
        return v


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return {str(key).upper(): value for key, value in data.items()}


def load_settings() -> Settings:
    """Load Settings from env (.env) and optionally merge a YAML file for overrides.

    Environment variables always take precedence over YAML values.
    """
    base = Settings()  # loads from env/.env

    yaml_path = base.CONFIG_YAML
    if yaml_path and Path(yaml_path).exists():
        data = _read_yaml(yaml_path)
        # Only values actually provided through env/.env win over the file
        merged = {**data, **base.model_dump(include=base.model_fields_set)}
        return Settings(**merged)

    return base


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reload_settings() -> Settings:
    """Discard the cached settings and load them again."""
    global _settings
    _settings = load_settings()
    return _settings
