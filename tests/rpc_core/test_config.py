"""Unit tests for Settings."""

from rpc_core.config import Settings


class TestSettings:
    """Tests for configuration loading."""

    def test_defaults(self, monkeypatch):
        """Should default to five retries and a 3000 ms backoff unit."""
        monkeypatch.delenv("RPC_MAX_RETRIES", raising=False)
        monkeypatch.delenv("RPC_BASE_DELAY_MS", raising=False)

        config = Settings(_env_file=None)

        assert config.RPC_MAX_RETRIES == 5
        assert config.RPC_BASE_DELAY_MS == 3000
        assert config.LOG_LEVEL == "INFO"

    def test_environment_overrides(self, monkeypatch):
        """Environment variables should override defaults."""
        monkeypatch.setenv("RPC_MAX_RETRIES", "8")
        monkeypatch.setenv("RPC_LOGIN_URL", "https://auth.example.com/login")

        config = Settings(_env_file=None)

        assert config.RPC_MAX_RETRIES == 8
        assert config.RPC_LOGIN_URL == "https://auth.example.com/login"
