"""
sshops - run commands and file operations on named SSH hosts

Every operation opens its own authenticated session, supporting:
- Connection registry merged from config file, environment and discovery
- Key, password and default-key authentication
- Command execution with timeouts
- Remote file read, directory listing, upload and download
- Connectivity probes
"""

__version__ = "0.1.0"

# Export core components
from .core import RemoteClient, setup_logging
from .core.exceptions import (
    RemoteError,
    ConfigError,
    DiscoveryError,
    SessionError,
    UnknownConnection,
    NoAuthenticationAvailable,
    KeyNotFound,
    AuthenticationRejected,
    HostUnreachable,
    ConnectionRefused,
    OperationTimedOut,
    RemoteIOError,
    LocalIOError,
    ProtocolError,
)

# Export domain models
from .domain.connections import (
    ConnectionRecord,
    ConnectionSource,
    ConnectionRegistry,
    ConnectionService,
)

from .domain.session import (
    AuthResolver,
    SessionExecutor,
    OperationCatalog,
    CommandOutcome,
    TransferOutcome,
    DirectoryEntry,
    ConnectionTestResult,
)

__all__ = [
    # Version
    "__version__",
    # Client
    "RemoteClient",
    "setup_logging",
    # Errors
    "RemoteError",
    "ConfigError",
    "DiscoveryError",
    "SessionError",
    "UnknownConnection",
    "NoAuthenticationAvailable",
    "KeyNotFound",
    "AuthenticationRejected",
    "HostUnreachable",
    "ConnectionRefused",
    "OperationTimedOut",
    "RemoteIOError",
    "LocalIOError",
    "ProtocolError",
    # Connections
    "ConnectionRecord",
    "ConnectionSource",
    "ConnectionRegistry",
    "ConnectionService",
    # Sessions
    "AuthResolver",
    "SessionExecutor",
    "OperationCatalog",
    "CommandOutcome",
    "TransferOutcome",
    "DirectoryEntry",
    "ConnectionTestResult",
]
