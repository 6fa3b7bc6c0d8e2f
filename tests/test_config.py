"""Tests for client configuration."""

import pytest

from freightsync import ClientConfig, ConfigError
from freightsync.config import ENV_BASE_URL


class TestClientConfig:
    """Tests for ClientConfig construction."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = ClientConfig("https://api.test.dev/api")
        assert config.timeout == 30.0
        assert config.gate_timeout == 3.0
        assert config.resolve_profile_on_fetch is False

    def test_empty_base_url(self) -> None:
        """Test that a base URL is required."""
        with pytest.raises(ConfigError):
            ClientConfig("")

    def test_non_positive_gate_timeout(self) -> None:
        """Test that the gate window must be positive."""
        with pytest.raises(ConfigError):
            ClientConfig("https://api.test.dev/api", gate_timeout=0)

    def test_frozen(self) -> None:
        """Test that configuration is immutable."""
        config = ClientConfig("https://api.test.dev/api")
        with pytest.raises(AttributeError):
            config.base_url = "other"  # type: ignore[misc]


class TestFromEnv:
    """Tests for ClientConfig.from_env."""

    def test_reads_base_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test reading the base URL from the environment."""
        monkeypatch.setenv(ENV_BASE_URL, " https://env.test.dev/api ")
        assert ClientConfig.from_env().base_url == "https://env.test.dev/api"

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that keyword arguments beat the environment."""
        monkeypatch.setenv(ENV_BASE_URL, "https://env.test.dev/api")
        config = ClientConfig.from_env(base_url="https://arg.test.dev", gate_timeout=1.0)
        assert config.base_url == "https://arg.test.dev"
        assert config.gate_timeout == 1.0

    def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a missing base URL raises ConfigError."""
        monkeypatch.delenv(ENV_BASE_URL, raising=False)
        with pytest.raises(ConfigError, match=ENV_BASE_URL):
            ClientConfig.from_env()
