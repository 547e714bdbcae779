"""Stubs binding credentials and sessions to backend connections."""

from .base import Stub
from .login import HttpLoginDriver, LoginStrategy
from .records import RecordsStub, fault_from_response

__all__ = [
    "HttpLoginDriver",
    "LoginStrategy",
    "RecordsStub",
    "Stub",
    "fault_from_response",
]
