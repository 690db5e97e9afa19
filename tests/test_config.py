"""Tests for configuration module."""

import pytest
import yaml
from pydantic import ValidationError

from mandrill_exporter.config import DEFAULT_API_URL, Settings, get_settings, reload_settings
from mandrill_exporter.config import settings as settings_module

ENV_VARS = (
    "MANDRILL_API_KEY",
    "MANDRILL_API_URL",
    "MANDRILL_TIMEOUT_SECONDS",
    "METRICS_NAMESPACE",
    "SHUTDOWN_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "CONFIG_YAML",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run every test without exporter variables and away from any .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    settings_module._settings = None


class TestSettings:
    """Tests for Settings class."""

    def test_default_settings(self):
        """Test default settings values."""
        settings = reload_settings()

        assert settings.MANDRILL_API_KEY == ""
        assert settings.MANDRILL_API_URL == DEFAULT_API_URL
        assert settings.MANDRILL_TIMEOUT_SECONDS is None
        assert settings.METRICS_NAMESPACE == "mandrill"
        assert settings.SHUTDOWN_TIMEOUT_SECONDS == 5.0
        assert settings.LOG_LEVEL == "INFO"
        assert settings.LOG_FORMAT == "console"

    def test_reads_environment(self, monkeypatch):
        """Test settings are read from environment variables."""
        monkeypatch.setenv("MANDRILL_API_KEY", "secret-key")
        monkeypatch.setenv("MANDRILL_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("log_level", "debug")

        settings = reload_settings()

        assert settings.MANDRILL_API_KEY == "secret-key"
        assert settings.MANDRILL_TIMEOUT_SECONDS == 2.5
        assert settings.LOG_LEVEL == "DEBUG"

    def test_reads_dotenv_file(self, tmp_path):
        """Test settings are read from a .env file in the working directory."""
        (tmp_path / ".env").write_text("MANDRILL_API_KEY=from-dotenv\n", encoding="utf-8")

        assert reload_settings().MANDRILL_API_KEY == "from-dotenv"

    def test_api_url_validation(self, monkeypatch):
        """Test API URL must be http(s)."""
        monkeypatch.setenv("MANDRILL_API_URL", "ftp://mandrillapp.com/tags")
        with pytest.raises(ValidationError, match="MANDRILL_API_URL must start with"):
            reload_settings()

    def test_timeout_validation(self, monkeypatch):
        """Test timeouts must be positive."""
        monkeypatch.setenv("SHUTDOWN_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError, match="greater than zero"):
            reload_settings()

    def test_log_level_validation(self, monkeypatch):
        """Test log level validation."""
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError, match="LOG_LEVEL must be one of"):
            reload_settings()

    def test_log_format_validation(self, monkeypatch):
        """Test log format validation."""
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValidationError, match="LOG_FORMAT must be one of"):
            reload_settings()

    def test_namespace_validation(self):
        """Test namespace must be a valid metric prefix."""
        with pytest.raises(ValidationError, match="METRICS_NAMESPACE"):
            Settings(METRICS_NAMESPACE="mandrill-stats")

    def test_empty_namespace_is_allowed(self, monkeypatch):
        """Test an empty namespace selects the unprefixed metric names."""
        monkeypatch.setenv("METRICS_NAMESPACE", "")

        assert reload_settings().METRICS_NAMESPACE == ""

    def test_get_settings_is_cached(self):
        """Test get_settings returns the same instance until reloaded."""
        first = reload_settings()
        assert get_settings() is first
        assert reload_settings() is not first


class TestYamlOverrides:
    """Tests for the optional YAML configuration file."""

    def test_yaml_values_are_applied(self, monkeypatch, tmp_path):
        """Test values from the YAML file override defaults."""
        config_path = tmp_path / "exporter.yaml"
        config_path.write_text(
            yaml.dump({"metrics_namespace": "mailstats", "SHUTDOWN_TIMEOUT_SECONDS": 2}),
            encoding="utf-8",
        )
        monkeypatch.setenv("CONFIG_YAML", str(config_path))

        settings = reload_settings()

        assert settings.METRICS_NAMESPACE == "mailstats"
        assert settings.SHUTDOWN_TIMEOUT_SECONDS == 2.0

    def test_environment_wins_over_yaml(self, monkeypatch, tmp_path):
        """Test environment variables take precedence over the YAML file."""
        config_path = tmp_path / "exporter.yaml"
        config_path.write_text(
            yaml.dump({"MANDRILL_API_KEY": "yaml-key", "LOG_LEVEL": "WARNING"}),
            encoding="utf-8",
        )
        monkeypatch.setenv("CONFIG_YAML", str(config_path))
        monkeypatch.setenv("MANDRILL_API_KEY", "env-key")

        settings = reload_settings()

        assert settings.MANDRILL_API_KEY == "env-key"
        assert settings.LOG_LEVEL == "WARNING"

    def test_missing_yaml_file_is_ignored(self, monkeypatch):
        """Test a missing YAML path falls back to env-only settings."""
        monkeypatch.setenv("CONFIG_YAML", "/nonexistent/path/exporter.yaml")

        settings = reload_settings()

        assert settings.METRICS_NAMESPACE == "mandrill"

    def test_yaml_must_be_a_mapping(self, monkeypatch, tmp_path):
        """Test a YAML file without a top-level mapping is rejected."""
        config_path = tmp_path / "exporter.yaml"
        config_path.write_text("- just\n- a list\n", encoding="utf-8")
        monkeypatch.setenv("CONFIG_YAML", str(config_path))

        with pytest.raises(ValueError, match="must contain a mapping"):
            reload_settings()
