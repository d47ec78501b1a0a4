"""
Unified exception definitions
"""


class RemoteError(Exception):
    """Base exception class"""
    hint = ""


class ConfigError(RemoteError):
    """Configuration error"""
    pass


class DiscoveryError(RemoteError):
    """Connection discovery error"""
    pass


# ============================================================
# Session Errors
# ============================================================

class SessionError(RemoteError):
    """Failure of a single remote operation"""
    pass


class UnknownConnection(SessionError):
    """Connection name is not in the registry"""
    hint = "Use 'sshops list' to see available connections."

    def __init__(self, name: str):
        super().__init__(f"Unknown connection: {name}")
        self.name = name


class NoAuthenticationAvailable(SessionError):
    """No key, password or default key could be found"""
    hint = "Provide a private key path or password for the connection."


class KeyNotFound(SessionError):
    """Configured private key is missing or unreadable"""
    hint = "Check the private key path of the connection."


class AuthenticationRejected(SessionError):
    """Remote host refused the presented credential"""
    hint = "Authentication failed. Check your SSH key or password configuration."


class HostUnreachable(SessionError):
    """Host could not be resolved or reached"""
    hint = "Check the hostname or IP address and that the server is reachable."


class ConnectionRefused(HostUnreachable):
    """Host actively refused the TCP connection"""
    hint = "Connection refused. Check that the server is running and the port is correct."


class OperationTimedOut(SessionError):
    """Watchdog fired before the operation finished"""
    hint = "Check that the server is reachable and not blocked by a firewall."


class RemoteIOError(SessionError):
    """Remote file or directory error (missing, permission denied)"""
    hint = "Check the remote path and the user's permissions on the server."


class LocalIOError(SessionError):
    """Local file error during a transfer"""
    hint = "Check the local path and its permissions."


class ProtocolError(SessionError):
    """Unexpected transport-level failure"""
    pass
