"""
Failure classifiers for recoverable calls.

Each backend family signals an expired session and a transient fault in its
own way. A classifier answers two questions about a caught exception:
whether the session expired, and whether the call is worth retrying at all.
Unrecognised failures are never retried.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from rpc_core.domain.exceptions import ConfigurationError
from rpc_core.domain.session import SessionType

from .errors import FaultCode, RemoteFault, RetryableError, ServiceError

# Transport-level failures that are safe to retry on any backend
TRANSIENT_TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)


@runtime_checkable
class FailureClassifier(Protocol):
    """Protocol for backend-specific failure classification.

    Implementations must never raise.
    """

    def is_expired(self, exc: Exception) -> bool:
        """Return True if the failure means the session must be renewed."""
        ...

    def is_retryable(self, exc: Exception) -> bool:
        """Return True if the failure is transient for this backend."""
        ...


class SoapFaultClassifier:
    """Classifier for SOAP backends, keyed on the fault code.

    Fault codes may arrive namespaced (``sf:INVALID_SESSION_ID``); the
    namespace is ignored.
    """

    def is_expired(self, exc: Exception) -> bool:
        return (
            isinstance(exc, RemoteFault)
            and exc.bare_fault_code == FaultCode.INVALID_SESSION_ID
        )

    def is_retryable(self, exc: Exception) -> bool:
        if self.is_expired(exc):
            return True
        if isinstance(exc, RemoteFault):
            return exc.bare_fault_code in FaultCode.TRANSIENT
        return isinstance(exc, TRANSIENT_TRANSPORT_ERRORS)


class RestFaultClassifier:
    """Classifier for REST backends.

    Expiry is an HTTP 401 or an INVALID_SESSION_ID error code in the body.
    Rate limiting and gateway statuses are transient, as are errors that
    already declare themselves retryable.
    """

    RETRY_ON_STATUS: tuple[int, ...] = (429, 502, 503, 504)

    def is_expired(self, exc: Exception) -> bool:
        if not isinstance(exc, RemoteFault):
            return False
        return (
            exc.status_code == 401
            or exc.bare_fault_code == FaultCode.INVALID_SESSION_ID
        )

    def is_retryable(self, exc: Exception) -> bool:
        if self.is_expired(exc):
            return True
        if isinstance(exc, RemoteFault):
            return (
                exc.status_code in self.RETRY_ON_STATUS
                or exc.bare_fault_code in FaultCode.TRANSIENT
            )
        if isinstance(exc, RetryableError):
            return True
        if isinstance(exc, ServiceError):
            return False
        return isinstance(exc, TRANSIENT_TRANSPORT_ERRORS)


class ClassifierRegistry:
    """Maps session types to their failure classifier.

    Example:
        registry = ClassifierRegistry()
        registry.register(SessionType.REST, RestFaultClassifier())
        classifier = registry.resolve(SessionType.REST)
    """

    def __init__(self, classifiers: dict[SessionType, FailureClassifier] | None = None):
        """Initialize the registry.

        Args:
            classifiers: Optional initial mapping of session type to classifier.
        """
        self._classifiers: dict[SessionType, FailureClassifier] = dict(classifiers or {})

    def register(self, session_type: SessionType, classifier: FailureClassifier) -> None:
        """Register or replace the classifier for a session type."""
        if not isinstance(classifier, FailureClassifier):
            raise TypeError(f"{classifier!r} does not implement FailureClassifier")
        self._classifiers[session_type] = classifier

    def resolve(self, session_type: SessionType) -> FailureClassifier:
        """Look up the classifier for a session type.

        Args:
            session_type: Tag of the session that produced the failure.

        Returns:
            The registered classifier.

        Raises:
            ConfigurationError: If no classifier is registered for the tag.
        """
        try:
            return self._classifiers[session_type]
        except KeyError:
            tag = getattr(session_type, "value", session_type)
            raise ConfigurationError(
                f"No failure classifier registered for session type '{tag}'"
            ) from None

    def __contains__(self, session_type: object) -> bool:
        return session_type in self._classifiers


_DEFAULT_REGISTRY = ClassifierRegistry(
    {
        SessionType.SOAP: SoapFaultClassifier(),
        SessionType.REST: RestFaultClassifier(),
    }
)


def default_registry() -> ClassifierRegistry:
    """Return the shared registry holding the built-in classifiers."""
    return _DEFAULT_REGISTRY
