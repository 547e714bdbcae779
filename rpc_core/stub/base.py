"""
Base stub binding a credential to a session and a connection handle.

Subclasses build the backend connection from the session in _bind() and
expose remote operations through call(), which wraps each one in a
RecoverableCall. A stub is meant to be driven by one caller at a time:
renewing the session replaces the shared connection without locking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from loguru import logger

from rpc_core.domain.exceptions import SetupError
from rpc_core.domain.session import Credential, Session, SessionType
from rpc_core.runtime.classifiers import ClassifierRegistry
from rpc_core.runtime.executor import RecoverableCall
from rpc_core.runtime.retry import RetryPolicy

from .login import LoginStrategy

T = TypeVar("T")


class Stub(ABC):
    """Owns one Session and the connection handle built from it.

    Attributes:
        session_type: Backend tag, set by each subclass.
        credential: Identity used for every login.
        session: The session this stub exclusively owns.
    """

    session_type: SessionType

    def __init__(
        self,
        credential: Credential,
        login_strategy: LoginStrategy,
        *,
        policy: RetryPolicy | None = None,
        registry: ClassifierRegistry | None = None,
    ):
        """Initialize the stub.

        Args:
            credential: Identity to log in with.
            login_strategy: Strategy that performs the login.
            policy: Retry policy for this stub's calls. Built from settings if None.
            registry: Classifier registry for this stub's calls.
        """
        self.credential = credential
        self.session = Session(session_type=self.session_type)
        self.policy = policy
        self.registry = registry
        self._login_strategy = login_strategy
        self._connection: Any | None = None

    @property
    def connection(self) -> Any | None:
        """The current backend connection handle, if prepared."""
        return self._connection

    def get_session(self) -> Session:
        """Return the session owned by this stub."""
        return self.session

    def prepare(self, force_new: bool = False) -> None:
        """Log in and (re)build the connection handle.

        Does nothing if already prepared, unless ``force_new`` is set.

        Args:
            force_new: Log in again even if a connection exists.

        Raises:
            LoginError: If the login strategy fails.
            SetupError: If the connection cannot be built from the session.
        """
        if self._connection is not None and not force_new:
            return

        logger.info(
            f"Preparing {self.session_type.value} session for {self.credential.username}"
            f" (force_new={force_new})"
        )
        result = self._login_strategy.login(self.credential)
        self.session.populate(result)

        # The old handle carries the replaced token
        if self._connection is not None:
            self._release(self._connection)
            self._connection = None

        if not self.session.is_established():
            raise SetupError(
                self.credential.username,
                "Login returned an incomplete session",
            )

        try:
            self._connection = self._bind(self.session)
        except Exception as e:
            raise SetupError(
                self.credential.username,
                f"Failed to instantiate {type(self).__name__} connection",
            ) from e

    @abstractmethod
    def _bind(self, session: Session) -> Any:
        """Build a connection handle that authenticates with the session token."""
        ...

    def _release(self, connection: Any) -> None:
        """Release a connection handle that has been replaced."""

    def call(
        self,
        name: str,
        operation: Callable[[Any], T],
        **kwargs: Any,
    ) -> T:
        """Run an operation against this stub as a recoverable call.

        Args:
            name: Operation name for logs and errors.
            operation: Callable receiving this stub.
            **kwargs: Extra RecoverableCall options (cancel_event, wait).

        Returns:
            The operation's result.
        """
        self.prepare()
        kwargs.setdefault("policy", self.policy)
        kwargs.setdefault("registry", self.registry)
        return RecoverableCall(name, operation, **kwargs).invoke(self)

    def close(self) -> None:
        """Release the connection and forget the session token."""
        if self._connection is not None:
            self._release(self._connection)
            self._connection = None
        self.session.invalidate()

    def __enter__(self):
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
