"""
Session domain models.

This module defines the data a stub needs to talk to a session-authenticated
backend:
- Credential: Immutable identity used to log in
- SessionType: Backend tag used to pick a failure classifier
- LoginResult: What a successful login returns
- Session: Mutable connection state owned by one stub
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SessionType(str, Enum):
    """Backend families that signal expiry and transience differently."""

    SOAP = "soap"
    REST = "rest"


@dataclass(frozen=True)
class Credential:
    """Identity used to authenticate against the remote service."""

    username: str
    password: str = field(repr=False)

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, password='***')"


class LoginResult(BaseModel):
    """Outcome of a login call.

    Attributes:
        endpoint: Service URL that subsequent calls must target.
        session_id: Token identifying the authenticated session.
        user_id: Optional remote identifier of the logged-in user.
        session_seconds_valid: Optional session lifetime reported by the server.
        raw: Full login payload as returned by the backend.
    """

    endpoint: str
    session_id: str
    user_id: str | None = None
    session_seconds_valid: int | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


@dataclass
class Session:
    """Authenticated connection state for one identity.

    A session starts empty and is populated by a login. The remote side can
    invalidate it at any time; callers only learn about it when a call fails.
    """

    session_type: SessionType
    endpoint: str | None = None
    session_id: str | None = None
    login_result: LoginResult | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    renewed_at: datetime | None = None
    login_count: int = 0

    def get_session_type(self) -> SessionType:
        """Return the backend tag of this session."""
        return self.session_type

    def is_established(self) -> bool:
        """Check whether a login has populated this session."""
        return bool(self.endpoint and self.session_id)

    def populate(self, result: LoginResult) -> None:
        """Store the endpoint and token from a login result.

        Args:
            result: The login outcome to record.
        """
        self.endpoint = result.endpoint
        self.session_id = result.session_id
        self.login_result = result
        self.renewed_at = datetime.now(timezone.utc)
        self.login_count += 1

    def invalidate(self) -> None:
        """Forget the current token, forcing the next prepare to log in."""
        self.session_id = None
        self.login_result = None
