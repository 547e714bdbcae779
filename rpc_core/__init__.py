"""
rpc-core: session-aware recoverable remote calls.
"""

from rpc_core.domain.session import Credential, Session, SessionType
from rpc_core.runtime import RecoverableCall, RecoverableCallError, RetryPolicy, invoke_recoverable
from rpc_core.stub import RecordsStub, Stub

__all__ = [
    "Credential",
    "RecordsStub",
    "RecoverableCall",
    "RecoverableCallError",
    "RetryPolicy",
    "Session",
    "SessionType",
    "Stub",
    "invoke_recoverable",
]
