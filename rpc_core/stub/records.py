"""
Records service stub.

RecordsStub talks to a session-authenticated REST records API. The session
token travels as a bearer header on every request; credentials are only
sent to the login endpoint. Each public operation is a recoverable call, so
expired sessions are renewed and transient faults retried transparently.

Example:
    stub = RecordsStub(Credential("alice", "s3cret"))
    with stub:
        page = stub.query("SELECT Id FROM Account")
        while not page.get("done", True):
            page = stub.query_more(page["nextRecordsUrl"])
"""

from __future__ import annotations

from typing import Any

import httpx

from rpc_core.config import settings
from rpc_core.domain.session import Credential, LoginResult, Session, SessionType
from rpc_core.runtime.classifiers import ClassifierRegistry
from rpc_core.runtime.errors import RemoteFault
from rpc_core.runtime.retry import RetryPolicy

from .base import Stub
from .login import HttpLoginDriver, LoginStrategy


def fault_from_response(response: httpx.Response) -> RemoteFault:
    """Build a RemoteFault from an error response.

    The body may be a JSON object or a list of objects carrying
    ``errorCode``/``error`` and ``message``/``error_description``.

    Args:
        response: The failed HTTP response.

    Returns:
        RemoteFault with the status code and the best fault code found.
    """
    fault_code = f"HTTP_{response.status_code}"
    message = f"Service returned {response.status_code}"

    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict):
        fault_code = body.get("errorCode") or body.get("error") or fault_code
        message = body.get("message") or body.get("error_description") or message

    return RemoteFault(
        fault_code=str(fault_code),
        message_safe=str(message),
        status_code=response.status_code,
        message_debug=response.text[:500] if response.text else None,
    )


class RecordsStub(Stub):
    """Stub for the REST records API."""

    session_type = SessionType.REST

    def __init__(
        self,
        credential: Credential,
        login_strategy: LoginStrategy | None = None,
        *,
        timeout: float | None = None,
        policy: RetryPolicy | None = None,
        registry: ClassifierRegistry | None = None,
    ):
        """Initialize the stub.

        Args:
            credential: Identity to log in with.
            login_strategy: Login strategy. Defaults to HttpLoginDriver().
            timeout: Request timeout in seconds. Defaults to settings.RPC_HTTP_TIMEOUT.
            policy: Retry policy for this stub's calls.
            registry: Classifier registry for this stub's calls.
        """
        super().__init__(
            credential,
            login_strategy or HttpLoginDriver(),
            policy=policy,
            registry=registry,
        )
        self.timeout = timeout or settings.RPC_HTTP_TIMEOUT

    def _bind(self, session: Session) -> httpx.Client:
        return httpx.Client(
            base_url=session.endpoint,
            headers={"Authorization": f"Bearer {session.session_id}"},
            timeout=self.timeout,
        )

    def _release(self, connection: httpx.Client) -> None:
        connection.close()

    def get_login_result(self) -> LoginResult | None:
        """Return the result of the most recent login."""
        return self.session.login_result

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request on the current connection.

        Raises:
            RemoteFault: For any 4xx/5xx response.
        """
        response = self.connection.request(method, path, **kwargs)
        if response.status_code >= 400:
            raise fault_from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def query(self, statement: str) -> dict[str, Any]:
        """Run a query and return the first page of results."""
        return self.call(
            "Query",
            lambda stub: stub._request("GET", "/query", params={"q": statement}),
        )

    def query_all(self, statement: str) -> dict[str, Any]:
        """Run a query that includes deleted and archived records."""
        return self.call(
            "QueryAll",
            lambda stub: stub._request("GET", "/queryAll", params={"q": statement}),
        )

    def query_more(self, locator: str) -> dict[str, Any]:
        """Fetch the next page of a query using its locator."""
        locator = locator.rstrip("/").rsplit("/", 1)[-1]
        return self.call(
            "QueryMore",
            lambda stub: stub._request("GET", f"/query/{locator}"),
        )

    def create(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Create records and return one save result per record."""
        return self.call(
            "Create",
            lambda stub: stub._request("POST", "/records", json={"records": records}),
        )

    def update(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Update records and return one save result per record."""
        return self.call(
            "Update",
            lambda stub: stub._request("PATCH", "/records", json={"records": records}),
        )

    def delete(self, ids: list[str]) -> list[dict[str, Any]]:
        """Delete records by id and return one delete result per id."""
        return self.call(
            "Delete",
            lambda stub: stub._request("DELETE", "/records", params={"ids": ",".join(ids)}),
        )
