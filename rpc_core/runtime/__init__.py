"""
Service runtime layer for rpc-core.

This package provides the recoverable call machinery:
- ServiceError: Standardized errors with retry semantics
- RetryPolicy: Retry budget and linear backoff
- FailureClassifier: Backend-specific expiry/transience decisions
- RecoverableCall: Retry state machine with session renewal
"""

from .classifiers import (
    ClassifierRegistry,
    FailureClassifier,
    RestFaultClassifier,
    SoapFaultClassifier,
    default_registry,
)
from .errors import (
    ErrorCode,
    FaultCode,
    RecoverableCallError,
    RemoteFault,
    RetryableError,
    ServiceError,
    TerminalError,
)
from .executor import CallState, RecoverableCall, invoke_recoverable
from .retry import RetryPolicy

__all__ = [
    "CallState",
    "ClassifierRegistry",
    "ErrorCode",
    "FailureClassifier",
    "FaultCode",
    "RecoverableCall",
    "RecoverableCallError",
    "RemoteFault",
    "RestFaultClassifier",
    "RetryPolicy",
    "RetryableError",
    "ServiceError",
    "SoapFaultClassifier",
    "TerminalError",
    "default_registry",
    "invoke_recoverable",
]
