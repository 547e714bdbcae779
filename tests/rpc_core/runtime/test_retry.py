"""Unit tests for RetryPolicy."""

from unittest.mock import patch

import pytest

from rpc_core.runtime.retry import RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy configuration."""

    def test_default_values(self):
        """Should default to five retries and a three second unit."""
        policy = RetryPolicy()

        assert policy.max_retries == 5
        assert policy.base_delay == 3.0

    def test_is_frozen(self):
        """Should be immutable."""
        policy = RetryPolicy()
        with pytest.raises(Exception):
            policy.max_retries = 10

    def test_rejects_negative_values(self):
        """Negative budgets make no sense."""
        with pytest.raises(Exception):
            RetryPolicy(max_retries=-1)

    def test_from_settings_converts_milliseconds(self):
        """Should read retries and the delay in ms from settings."""
        with patch("rpc_core.runtime.retry.settings") as mock_settings:
            mock_settings.RPC_MAX_RETRIES = 2
            mock_settings.RPC_BASE_DELAY_MS = 1500

            policy = RetryPolicy.from_settings()

        assert policy.max_retries == 2
        assert policy.base_delay == 1.5


class TestCalculateDelay:
    """Tests for delay calculation."""

    def test_linear_backoff(self):
        """Retry k should wait base * (1 + k)."""
        policy = RetryPolicy(base_delay=3.0)

        assert policy.calculate_delay(1) == 6.0
        assert policy.calculate_delay(2) == 9.0
        assert policy.calculate_delay(5) == 18.0

    def test_zero_base_delay(self):
        """A zero unit means no waiting."""
        assert RetryPolicy(base_delay=0.0).calculate_delay(3) == 0.0

