"""
Login strategies.

A login strategy turns a Credential into a LoginResult carrying the service
endpoint and session token. Stubs call it from prepare(); failures propagate
as LoginError and are never retried by the recoverable call loop.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx
from loguru import logger
from pydantic import ValidationError

from rpc_core.config import settings
from rpc_core.domain.exceptions import LoginError
from rpc_core.domain.session import Credential, LoginResult


@runtime_checkable
class LoginStrategy(Protocol):
    """Protocol for establishing a session from a credential."""

    def login(self, credential: Credential) -> LoginResult:
        """
        Authenticate and return the session data.

        Args:
            credential: Identity to log in with.

        Returns:
            LoginResult with endpoint and session token.

        Raises:
            LoginError: If authentication fails.
        """
        ...


class HttpLoginDriver:
    """Login strategy posting credentials to a JSON login endpoint.

    The endpoint is expected to answer with ``endpoint`` (or ``server_url``)
    and ``session_id`` (or ``access_token``).

    Example:
        driver = HttpLoginDriver("https://auth.example.com/login")
        result = driver.login(Credential("alice", "s3cret"))
    """

    def __init__(
        self,
        login_url: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the driver.

        Args:
            login_url: Login endpoint. Defaults to settings.RPC_LOGIN_URL.
            timeout: Request timeout in seconds. Defaults to settings.RPC_HTTP_TIMEOUT.
        """
        self.login_url = login_url or settings.RPC_LOGIN_URL
        self.timeout = timeout or settings.RPC_HTTP_TIMEOUT
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        """Close the HTTP client and release connections."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def login(self, credential: Credential) -> LoginResult:
        client = self._get_client()
        try:
            response = client.post(
                self.login_url,
                json={"username": credential.username, "password": credential.password},
            )
        except httpx.HTTPError as e:
            raise LoginError(credential.username, f"login request failed: {e}") from e

        if response.status_code >= 400:
            raise LoginError(
                credential.username,
                f"server returned {response.status_code}",
            )

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise LoginError(credential.username, "login response is not JSON") from e

        if not isinstance(data, dict):
            raise LoginError(credential.username, "login response is not a JSON object")

        endpoint = data.get("endpoint") or data.get("server_url")
        session_id = data.get("session_id") or data.get("access_token")
        if not endpoint or not session_id:
            raise LoginError(
                credential.username,
                "login response is missing the endpoint or session id",
            )

        try:
            result = LoginResult(
                endpoint=endpoint,
                session_id=session_id,
                user_id=data.get("user_id"),
                session_seconds_valid=data.get("session_seconds_valid"),
                raw=data,
            )
        except ValidationError as e:
            raise LoginError(credential.username, "login response has invalid fields") from e

        logger.info(f"Logged in as {credential.username}, endpoint {endpoint}")
        return result
