"""
Retry policy configuration.

This module provides the retry budget and backoff schedule used by
recoverable calls. Backoff grows linearly with the retry count.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from rpc_core.config import settings


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    The delay before retry N (1-indexed) is ``base_delay * (1 + N)``, so
    with the default base of 3 seconds the first retry waits 6s, the
    second 9s, and so on.

    Attributes:
        max_retries: Maximum number of retries after the first attempt.
        base_delay: Backoff unit in seconds.
    """

    max_retries: int = Field(default=5, ge=0)
    base_delay: float = Field(default=3.0, ge=0.0)

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        """Build a policy from RPC_MAX_RETRIES and RPC_BASE_DELAY_MS."""
        return cls(
            max_retries=settings.RPC_MAX_RETRIES,
            base_delay=settings.RPC_BASE_DELAY_MS / 1000.0,
        )

    def calculate_delay(self, retry_count: int) -> float:
        """Calculate the wait before a given retry.

        Args:
            retry_count: The retry number (1-indexed).

        Returns:
            Delay in seconds before the retry runs.
        """
        return self.base_delay * (1 + retry_count)

