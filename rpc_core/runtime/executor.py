"""
Recoverable call executor.

A RecoverableCall wraps one remote operation with session renewal and
retry. Failures are classified by the classifier registered for the stub's
session type: an expired session triggers a forced login before the next
attempt, other transient failures wait with linear backoff, and anything
else ends the call. The caller sees either the result or a single
RecoverableCallError naming the operation.

Example:
    call = RecoverableCall("Query", lambda stub: stub.connection.get("/query"))
    response = call.invoke(stub)
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Generic, Protocol, TypeVar

from loguru import logger

from rpc_core.domain.session import Session

from .classifiers import ClassifierRegistry, FailureClassifier, default_registry
from .errors import ErrorCode, RecoverableCallError
from .retry import RetryPolicy

T = TypeVar("T")
S = TypeVar("S", bound="PreparableStub")


class PreparableStub(Protocol):
    """What a recoverable call needs from a stub."""

    def prepare(self, force_new: bool = False) -> None:
        ...

    def get_session(self) -> Session:
        ...


class CallState(str, Enum):
    """States of a recoverable call."""

    RUNNING = "running"
    RETRY_WAIT = "retry_wait"
    RENEWING = "renewing"
    SUCCESS = "success"
    FAILED = "failed"


class RecoverableCall(Generic[T, S]):
    """A single remote operation with transparent session renewal and retry.

    Attributes:
        name: Human-readable operation name used in logs and errors.
        operation: Callable doing the real call through the stub.
        policy: Retry budget and backoff schedule.
        registry: Where the failure classifier is looked up.
        cancel_event: Setting it aborts a backoff wait and cancels the call.
        retries: Retries made by the current (or last) invoke.
        state: Current state of the call.
    """

    def __init__(
        self,
        name: str,
        operation: Callable[[S], T],
        *,
        policy: RetryPolicy | None = None,
        registry: ClassifierRegistry | None = None,
        cancel_event: threading.Event | None = None,
        wait: Callable[[float], bool] | None = None,
    ):
        """Initialize the call.

        Args:
            name: Operation name for diagnostics.
            operation: Callable taking the stub and returning the result.
            policy: Retry policy. Built from settings if None.
            registry: Classifier registry. Uses the default registry if None.
            cancel_event: Optional event that cancels the call while it waits.
            wait: Blocking wait returning True if interrupted. Defaults to
                  ``cancel_event.wait``.
        """
        self.name = name
        self.operation = operation
        self.policy = policy or RetryPolicy.from_settings()
        self.registry = registry or default_registry()
        self.cancel_event = cancel_event or threading.Event()
        self._wait = wait or self.cancel_event.wait
        self.retries = 0
        self.state = CallState.RUNNING

    def get_max_retries(self) -> int:
        """Maximum retries after the first attempt. Subclasses may override."""
        return self.policy.max_retries

    def invoke(self, stub: S) -> T:
        """Run the operation against the stub until it succeeds or gives up.

        Args:
            stub: Stub whose session the operation uses.

        Returns:
            Whatever the operation returns.

        Raises:
            RecoverableCallError: When retries are exhausted, the failure is
                not retryable, or the call is cancelled during a wait.
            ConfigurationError: If the session type has no classifier.
        """
        self.retries = 0
        classifier: FailureClassifier | None = None

        while True:
            self.state = CallState.RUNNING
            try:
                result = self.operation(stub)
            except Exception as exc:
                # Resolved once per invoke, on the first failure
                if classifier is None:
                    classifier = self.registry.resolve(
                        stub.get_session().get_session_type()
                    )
                self._recover(stub, exc, classifier)
                continue

            self.state = CallState.SUCCESS
            return result

    def _recover(self, stub: S, exc: Exception, classifier: FailureClassifier) -> None:
        """Decide what happens after a failed attempt, or raise to end the call."""
        max_retries = self.get_max_retries()
        if self.retries >= max_retries:
            self._fail(
                ErrorCode.RETRIES_EXHAUSTED,
                f"All {max_retries} retry attempts failed to execute {self.name}",
                exc,
                self.retries + 1,
            )

        if not classifier.is_retryable(exc):
            self._fail(
                ErrorCode.NON_RETRYABLE,
                f"Unknown or non-retryable failure in {self.name}",
                exc,
                self.retries + 1,
            )

        self.retries += 1
        logger.warning(
            f"Retrying {self.name}, attempt {self.retries}/{max_retries}: {exc}"
        )

        if classifier.is_expired(exc):
            self._renew(stub)
        else:
            self._wait_before_next_retry(exc)

    def _renew(self, stub: S) -> None:
        """Force a fresh login. Failures here end the call unwrapped."""
        self.state = CallState.RENEWING
        logger.info(f"Session expired during {self.name}, forcing a new login")
        stub.prepare(force_new=True)

    def _wait_before_next_retry(self, exc: Exception) -> None:
        """Block for the backoff delay; a cancellation ends the call."""
        self.state = CallState.RETRY_WAIT
        delay = self.policy.calculate_delay(self.retries)
        if self.cancel_event.is_set() or self._wait(delay):
            self._fail(
                ErrorCode.CANCELLED,
                f"{self.name} cancelled while waiting to retry",
                exc,
                self.retries,
            )

    def _fail(self, code: str, message: str, exc: Exception, attempts: int) -> None:
        self.state = CallState.FAILED
        logger.error(f"{message} after {attempts} attempt(s): {exc}")
        raise RecoverableCallError(
            code=code,
            message_safe=message,
            operation=self.name,
            attempts=attempts,
            cause=exc,
        ) from exc


def invoke_recoverable(
    name: str,
    operation: Callable[[S], T],
    stub: S,
    **kwargs,
) -> T:
    """Build a one-shot RecoverableCall and invoke it.

    Args:
        name: Operation name for diagnostics.
        operation: Callable taking the stub and returning the result.
        stub: Stub to run the operation against.
        **kwargs: Passed to RecoverableCall (policy, registry, cancel_event, wait).

    Returns:
        The operation's result.
    """
    return RecoverableCall(name, operation, **kwargs).invoke(stub)
