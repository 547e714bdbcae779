"""
Standard exceptions for rpc-core.

This module defines the hierarchy of exceptions raised outside the
recoverable call loop: stub setup, login, and configuration problems.
"""


class RpcCoreError(Exception):
    """Base exception for all rpc-core errors."""
    pass


class ConfigurationError(RpcCoreError):
    """Raised when a session type has no registered failure classifier."""
    pass


class LoginError(RpcCoreError):
    """Raised when the login strategy cannot establish a session."""

    def __init__(self, username: str, message: str):
        self.username = username
        super().__init__(f"Login failed for user '{username}': {message}")


class SetupError(RpcCoreError):
    """Raised when a connection handle cannot be built from a session."""

    def __init__(self, username: str, message: str):
        self.username = username
        super().__init__(f"{message}, user: {username}")
