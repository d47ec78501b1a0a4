"""
Per-operation session domain
"""
from .auth import AuthResolver, Credential
from .models import (
    Session,
    SessionState,
    CommandOutcome,
    TransferOutcome,
    DirectoryEntry,
    ConnectionTestResult,
)
from .executor import SessionExecutor, ParamikoConnectionFactory, classify_transport_error
from .operations import OperationCatalog

__all__ = [
    "AuthResolver",
    "Credential",
    "Session",
    "SessionState",
    "CommandOutcome",
    "TransferOutcome",
    "DirectoryEntry",
    "ConnectionTestResult",
    "SessionExecutor",
    "ParamikoConnectionFactory",
    "classify_transport_error",
    "OperationCatalog",
]
