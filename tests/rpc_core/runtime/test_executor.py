"""Unit tests for RecoverableCall."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from hypothesis import given, settings, strategies as st

from rpc_core.domain.exceptions import ConfigurationError, LoginError
from rpc_core.domain.session import Session, SessionType
from rpc_core.runtime.classifiers import ClassifierRegistry, RestFaultClassifier
from rpc_core.runtime.errors import ErrorCode, RecoverableCallError, RemoteFault
from rpc_core.runtime.executor import CallState, RecoverableCall, invoke_recoverable
from rpc_core.runtime.retry import RetryPolicy

POLICY = RetryPolicy(max_retries=5, base_delay=3.0)


class FakeStub:
    """Stub double recording prepare() calls."""

    def __init__(self, session_type=SessionType.REST):
        self.session = Session(session_type=session_type)
        self.prepare_calls = []

    def prepare(self, force_new=False):
        self.prepare_calls.append(force_new)

    def get_session(self):
        return self.session


def transient():
    return RemoteFault("SERVER_UNAVAILABLE", "Server busy", status_code=503)


def expired():
    return RemoteFault("INVALID_SESSION_ID", "Session expired or invalid", status_code=401)


def make_call(name="Query", outcomes=("ok",), policy=POLICY, **kwargs):
    """Build a call whose body yields the given outcomes in order."""
    waits = []

    def wait(delay):
        waits.append(delay)
        return False

    operation = MagicMock(side_effect=list(outcomes))
    kwargs.setdefault("wait", wait)
    call = RecoverableCall(name, operation, policy=policy, **kwargs)
    return call, operation, waits


class TestSuccess:
    """Tests for calls that succeed."""

    def test_returns_result_on_first_attempt(self):
        """Should return the body's result without retrying."""
        call, operation, waits = make_call(outcomes=["result"])
        stub = FakeStub()

        assert call.invoke(stub) == "result"
        operation.assert_called_once_with(stub)
        assert call.retries == 0
        assert call.state == CallState.SUCCESS
        assert waits == []

    def test_does_not_resolve_classifier_on_success(self):
        """Classifier lookup should only happen after a failure."""
        registry = ClassifierRegistry()
        call, _, _ = make_call(outcomes=["ok"], registry=registry)

        # Empty registry would raise if consulted
        assert call.invoke(FakeStub()) == "ok"

    @settings(max_examples=25, deadline=None)
    @given(failures=st.integers(min_value=0, max_value=5))
    def test_recovers_from_transient_failures(self, failures):
        """N <= max transient failures followed by success should return the result."""
        outcomes = [transient() for _ in range(failures)] + ["done"]
        call, operation, waits = make_call(outcomes=outcomes)

        assert call.invoke(FakeStub()) == "done"
        assert call.retries == failures
        assert operation.call_count == failures + 1
        assert waits == [3.0 * (1 + k) for k in range(1, failures + 1)]


class TestBackoff:
    """Tests for the wait between retries."""

    def test_linear_backoff_schedule(self):
        """Retry k should wait base_delay * (1 + k)."""
        outcomes = [transient(), transient(), transient(), "ok"]
        call, _, waits = make_call(outcomes=outcomes)

        call.invoke(FakeStub())

        assert waits == [6.0, 9.0, 12.0]

    def test_custom_base_delay(self):
        """Should scale the schedule with the policy's base delay."""
        policy = RetryPolicy(max_retries=3, base_delay=0.5)
        call, _, waits = make_call(outcomes=[transient(), transient(), "ok"], policy=policy)

        call.invoke(FakeStub())

        assert waits == [1.0, 1.5]

    def test_transport_errors_are_retried(self):
        """Connection failures should be retried after a wait."""
        call, _, waits = make_call(outcomes=[ConnectionError("reset"), "ok"])

        assert call.invoke(FakeStub()) == "ok"
        assert waits == [6.0]


class TestExhaustion:
    """Tests for running out of retries."""

    def test_raises_after_max_retries(self):
        """max_retries + 1 retryable failures should exhaust the call."""
        failures = [transient() for _ in range(6)]
        call, operation, _ = make_call(outcomes=failures)

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        error = exc_info.value
        assert error.code == ErrorCode.RETRIES_EXHAUSTED
        assert error.exhausted is True
        assert error.operation == "Query"
        assert error.attempts == 6
        assert error.cause is failures[-1]
        assert error.__cause__ is failures[-1]
        assert "Query" in str(error)
        assert operation.call_count == 6
        assert call.retries == 5
        assert call.state == CallState.FAILED

    def test_exhaustion_checked_before_classification(self):
        """With no retries left, even a non-retryable failure reports exhaustion."""
        policy = RetryPolicy(max_retries=0)
        call, operation, _ = make_call(outcomes=[ValueError("bad")], policy=policy)

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        assert exc_info.value.exhausted is True
        assert operation.call_count == 1

    def test_subclass_can_override_max_retries(self):
        """get_max_retries() is an override point."""

        class TwoRetries(RecoverableCall):
            def get_max_retries(self):
                return 2

        operation = MagicMock(side_effect=[transient(), transient(), transient()])
        call = TwoRetries("Query", operation, policy=POLICY, wait=lambda delay: False)

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        assert exc_info.value.attempts == 3
        assert operation.call_count == 3


class TestNonRetryable:
    """Tests for failures the classifier rejects."""

    def test_fails_immediately(self):
        """Unclassified failure should end the call after one attempt."""
        failure = ValueError("malformed id")
        call, operation, waits = make_call(name="Delete", outcomes=[failure])

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        error = exc_info.value
        assert error.code == ErrorCode.NON_RETRYABLE
        assert error.exhausted is False
        assert error.operation == "Delete"
        assert error.attempts == 1
        assert error.__cause__ is failure
        assert "Delete" in str(error)
        assert operation.call_count == 1
        assert waits == []
        assert call.retries == 0

    def test_does_not_consume_retry_slot(self):
        """A non-retryable failure after retries should not bump the counter."""
        call, operation, _ = make_call(outcomes=[transient(), ValueError("bad")])

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        assert exc_info.value.code == ErrorCode.NON_RETRYABLE
        assert exc_info.value.attempts == 2
        assert call.retries == 1


class TestSessionExpiry:
    """Tests for session renewal."""

    def test_renews_session_without_waiting(self):
        """Two expiries then success: two forced logins, no waits."""
        call, operation, waits = make_call(name="Query", outcomes=[expired(), expired(), "rows"])
        stub = FakeStub()

        assert call.invoke(stub) == "rows"
        assert stub.prepare_calls == [True, True]
        assert waits == []
        assert call.retries == 2
        assert operation.call_count == 3

    def test_renewal_happens_before_next_attempt(self):
        """prepare(force_new=True) should run between the failure and the retry."""
        events = []
        stub = FakeStub()
        stub.prepare = lambda force_new=False: events.append(("prepare", force_new))

        def body(s):
            events.append(("call",))
            if len(events) == 1:
                raise expired()
            return "ok"

        RecoverableCall("Query", body, policy=POLICY, wait=lambda d: False).invoke(stub)

        assert events == [("call",), ("prepare", True), ("call",)]

    def test_renewal_failure_propagates(self):
        """A failed login during renewal should escape unwrapped."""
        stub = FakeStub()
        stub.prepare = MagicMock(side_effect=LoginError("alice", "bad password"))
        call, operation, _ = make_call(outcomes=[expired(), "ok"])

        with pytest.raises(LoginError):
            call.invoke(stub)

        assert operation.call_count == 1

    def test_mixed_expiry_and_transient(self):
        """Expiry renews, transient waits, both count against the budget."""
        call, _, waits = make_call(outcomes=[expired(), transient(), "ok"])
        stub = FakeStub()

        assert call.invoke(stub) == "ok"
        assert stub.prepare_calls == [True]
        assert waits == [9.0]
        assert call.retries == 2


class TestClassifierResolution:
    """Tests for the lazy classifier lookup."""

    def test_resolved_once_per_invoke(self):
        """Several failures in one invoke should resolve the classifier once."""
        registry = ClassifierRegistry({SessionType.REST: RestFaultClassifier()})
        call, _, _ = make_call(
            outcomes=[transient(), transient(), transient(), "ok"], registry=registry
        )

        with patch.object(registry, "resolve", wraps=registry.resolve) as resolve:
            call.invoke(FakeStub())

        resolve.assert_called_once_with(SessionType.REST)

    def test_resolved_again_on_next_invoke(self):
        """The cached classifier is local to one invoke."""
        registry = ClassifierRegistry({SessionType.REST: RestFaultClassifier()})
        call, _, _ = make_call(outcomes=[transient(), "ok", transient(), "ok"], registry=registry)

        with patch.object(registry, "resolve", wraps=registry.resolve) as resolve:
            call.invoke(FakeStub())
            call.invoke(FakeStub())

        assert resolve.call_count == 2

    def test_unknown_session_type_raises(self):
        """A session type without a classifier is a configuration error."""
        call, _, _ = make_call(outcomes=[transient()], registry=ClassifierRegistry())

        with pytest.raises(ConfigurationError):
            call.invoke(FakeStub())


class TestCancellation:
    """Tests for cancelling a call during backoff."""

    def test_preset_event_cancels_before_waiting(self):
        """A set cancel_event should end the call at the first wait."""
        cancel = threading.Event()
        cancel.set()
        failure = transient()
        operation = MagicMock(side_effect=[failure, "ok"])
        call = RecoverableCall("Query", operation, policy=POLICY, cancel_event=cancel)

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        error = exc_info.value
        assert error.code == ErrorCode.CANCELLED
        assert error.cancelled is True
        assert error.attempts == 1
        assert error.__cause__ is failure
        assert operation.call_count == 1

    def test_interrupted_wait_cancels(self):
        """A wait that reports interruption should cancel the call."""
        call, operation, _ = make_call(outcomes=[transient(), "ok"], wait=lambda delay: True)

        with pytest.raises(RecoverableCallError) as exc_info:
            call.invoke(FakeStub())

        assert exc_info.value.cancelled is True
        assert operation.call_count == 1

    def test_expiry_does_not_check_cancellation(self):
        """Renewal does not wait, so it is not a cancellation point."""
        cancel = threading.Event()
        cancel.set()
        operation = MagicMock(side_effect=[expired(), "ok"])
        call = RecoverableCall("Query", operation, policy=POLICY, cancel_event=cancel)

        assert call.invoke(FakeStub()) == "ok"


class TestReuse:
    """Tests for invoking the same call twice."""

    def test_second_invoke_resets_counter(self):
        """A later invoke should start from zero retries."""
        call, _, waits = make_call(outcomes=[transient(), transient(), "first", "second"])

        assert call.invoke(FakeStub()) == "first"
        assert call.retries == 2

        assert call.invoke(FakeStub()) == "second"
        assert call.retries == 0
        assert waits == [6.0, 9.0]


class TestDefaults:
    """Tests for default configuration."""

    def test_policy_defaults_from_settings(self):
        """Default policy is five retries with a three second unit."""
        call = RecoverableCall("Query", lambda stub: None)

        assert call.get_max_retries() == 5
        assert call.policy.base_delay == 3.0


class TestInvokeRecoverable:
    """Tests for the functional helper."""

    def test_runs_operation(self):
        """Should build and invoke a one-shot call."""
        stub = FakeStub()
        result = invoke_recoverable(
            "Query",
            lambda s: s.get_session().get_session_type(),
            stub,
            policy=POLICY,
        )

        assert result == SessionType.REST

    def test_passes_options_through(self):
        """Keyword options should reach the RecoverableCall."""
        waits = []
        operation = MagicMock(side_effect=[transient(), "ok"])

        result = invoke_recoverable(
            "Query",
            operation,
            FakeStub(),
            policy=RetryPolicy(max_retries=1, base_delay=1.0),
            wait=lambda delay: waits.append(delay) or False,
        )

        assert result == "ok"
        assert waits == [2.0]
