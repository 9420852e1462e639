"""Unit tests for configuration."""

import pytest
from pydantic import ValidationError

from src.config import Settings


class TestSettings:
    """Test settings defaults and validation."""

    def test_defaults(self, monkeypatch):
        """Test the documented defaults."""
        for name in ("API_PREFIX", "CONTAINER_READY_TIMEOUT", "SESSION_IDLE_TTL_MINUTES"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)

        assert settings.api_port == 3001
        assert settings.api_prefix == "/api"
        assert settings.default_image == "parrotsec/security:latest"
        assert settings.container_shell == "/bin/bash"
        assert settings.terminal_attach_policy == "replace"
        assert settings.idle_reaping_enabled() is False

    def test_env_override(self, monkeypatch):
        """Test values are read from the environment."""
        monkeypatch.setenv("DEFAULT_IMAGE", "kalilinux/kali-rolling")
        monkeypatch.setenv("TERMINAL_ATTACH_POLICY", "reject")
        monkeypatch.setenv("SESSION_IDLE_TTL_MINUTES", "30")

        settings = Settings(_env_file=None)

        assert settings.default_image == "kalilinux/kali-rolling"
        assert settings.terminal_attach_policy == "reject"
        assert settings.idle_reaping_enabled() is True

    @pytest.mark.parametrize(
        "raw,expected",
        [("api", "/api"), ("/api/", "/api"), ("/bridge/v1", "/bridge/v1"), ("", "")],
    )
    def test_api_prefix_normalized(self, raw, expected):
        """Test the route prefix gets one leading slash and no trailing slash."""
        assert Settings(_env_file=None, api_prefix=raw).api_prefix == expected

    def test_log_level_normalized(self):
        """Test log level names are upper-cased."""
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test an unknown log level is rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    def test_invalid_attach_policy(self):
        """Test only replace and reject are accepted."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, terminal_attach_policy="share")

    def test_grouped_views(self):
        """Test grouped views mirror the flat fields."""
        settings = Settings(_env_file=None, default_image="alpine:3.19", api_port=8080)

        assert settings.docker.default_image == "alpine:3.19"
        assert settings.api.api_port == 8080
        assert settings.logging.log_level == settings.log_level
