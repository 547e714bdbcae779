"""
Standardized error model with retry semantics.

This module defines the service errors that flow through recoverable calls:
failures reported by the remote side (RemoteFault), errors that carry their
own retry hint (RetryableError, TerminalError), and the single wrapping
error a recoverable call raises when it gives up (RecoverableCallError).
"""

from __future__ import annotations

import uuid
from typing import Any


class ServiceError(Exception):
    """Standardized service error with retry classification.

    ServiceError carries structured information about failures:
    - code: Machine-readable error code (e.g., "RETRIES_EXHAUSTED")
    - message_safe: Human-readable message safe for logs/users
    - message_debug: Detailed debug info (not logged in production)
    - retryable: Whether the operation can be retried
    - cause: The underlying exception, if any
    - debug_id: Unique ID for support correlation

    Attributes:
        code: Error code for programmatic handling.
        message_safe: Safe message for logging and user display.
        message_debug: Optional detailed message for debugging.
        retryable: Whether this error can be retried.
        cause: Optional underlying exception.
        debug_id: Unique identifier for support tickets.
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        """Initialize a ServiceError.

        Args:
            code: Machine-readable error code.
            message_safe: Human-readable message safe for logs.
            message_debug: Optional detailed debug message.
            retryable: Whether the operation can be retried.
            cause: Optional underlying exception.
            debug_id: Optional correlation ID (auto-generated if None).
        """
        super().__init__(message_safe)
        self.code = code
        self.message_safe = message_safe
        self.message_debug = message_debug
        self.retryable = retryable
        self.cause = cause
        self.debug_id = debug_id or str(uuid.uuid4())[:8]

    def __str__(self) -> str:
        """Return string representation."""
        return f"[{self.code}] {self.message_safe}"

    def __repr__(self) -> str:
        """Return detailed representation."""
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message_safe={self.message_safe!r}, "
            f"retryable={self.retryable}, "
            f"debug_id={self.debug_id!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses.

        Returns:
            Dictionary with error details (excludes debug info).
        """
        return {
            "code": self.code,
            "message": self.message_safe,
            "debug_id": self.debug_id,
        }


class RetryableError(ServiceError):
    """Error that indicates the operation can be retried.

    Use this for transient failures like:
    - Network timeouts
    - Rate limiting (429)
    - Temporary service unavailability (503)
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=True,
            cause=cause,
            debug_id=debug_id,
        )


class TerminalError(ServiceError):
    """Error that indicates the operation should not be retried.

    Use this for permanent failures like:
    - Invalid input (400)
    - Resource not found (404)
    - Business rule violations
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=False,
            cause=cause,
            debug_id=debug_id,
        )


class RemoteFault(ServiceError):
    """Failure reported by the remote service.

    The retry decision is left to the failure classifier of the session's
    backend, so ``retryable`` is always False here.

    Attributes:
        fault_code: Backend fault code, possibly namespaced (e.g. "sf:INVALID_SESSION_ID").
        status_code: HTTP status of the response, if the transport has one.
    """

    def __init__(
        self,
        fault_code: str | None,
        message_safe: str,
        status_code: int | None = None,
        message_debug: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(
            code=ErrorCode.REMOTE_FAULT,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=False,
            cause=cause,
        )
        self.fault_code = fault_code
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.fault_code}] {self.message_safe}"

    @property
    def bare_fault_code(self) -> str:
        """Fault code without its namespace prefix."""
        return str(self.fault_code or "").rsplit(":", 1)[-1].upper()


class RecoverableCallError(ServiceError):
    """The single error a recoverable call raises when it gives up.

    Attributes:
        operation: Name of the remote operation that failed.
        attempts: How many times the operation body ran.
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        operation: str,
        attempts: int,
        cause: Exception | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=str(cause) if cause is not None else None,
            retryable=False,
            cause=cause,
        )
        self.operation = operation
        self.attempts = attempts

    @property
    def exhausted(self) -> bool:
        """True when the retry budget ran out."""
        return self.code == ErrorCode.RETRIES_EXHAUSTED

    @property
    def cancelled(self) -> bool:
        """True when the call was cancelled during a backoff wait."""
        return self.code == ErrorCode.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["operation"] = self.operation
        data["attempts"] = self.attempts
        return data


# Common error codes
class ErrorCode:
    """Standard error codes for common failure scenarios."""

    # Remote side
    REMOTE_FAULT = "REMOTE_FAULT"

    # Recoverable call outcomes
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"
    NON_RETRYABLE = "NON_RETRYABLE"
    CANCELLED = "CANCELLED"


class FaultCode:
    """Backend fault codes the classifiers recognise."""

    INVALID_SESSION_ID = "INVALID_SESSION_ID"
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"
    REQUEST_LIMIT_EXCEEDED = "REQUEST_LIMIT_EXCEEDED"
    QUERY_TIMEOUT = "QUERY_TIMEOUT"
    UNABLE_TO_LOCK_ROW = "UNABLE_TO_LOCK_ROW"

    TRANSIENT: frozenset[str] = frozenset(
        {SERVER_UNAVAILABLE, REQUEST_LIMIT_EXCEEDED, QUERY_TIMEOUT, UNABLE_TO_LOCK_ROW}
    )
