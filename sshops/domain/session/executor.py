"""
Session executor - one transport session per operation
"""
import asyncio
import socket
import threading
import time
from typing import Callable, Optional, TypeVar

import paramiko
from paramiko.ssh_exception import NoValidConnectionsError

from ...core.client import RemoteClient
from ...core.constants import DEFAULT_CONNECT_TIMEOUT
from ...core.exceptions import (
    SessionError,
    UnknownConnection,
    AuthenticationRejected,
    HostUnreachable,
    ConnectionRefused,
    OperationTimedOut,
    ProtocolError,
)
from ...core.interfaces import ConnectionFactory
from ...core.logging import get_logger
from ...core.telemetry import Telemetry, get_telemetry
from ..connections.models import ConnectionRecord
from ..connections.registry import ConnectionRegistry
from .auth import AuthResolver
from .models import Session, SessionState

logger = get_logger(__name__)

T = TypeVar("T")

Action = Callable[[Session], T]


class ParamikoConnectionFactory(ConnectionFactory):
    """Creates a fresh paramiko-backed client per session"""

    def __init__(self, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT):
        self.connect_timeout = connect_timeout

    def create(self, record: ConnectionRecord) -> RemoteClient:
        return RemoteClient(
            host=record.host,
            user=record.username,
            port=record.effective_port,
            connect_timeout=self.connect_timeout,
        )


def classify_transport_error(error: BaseException, record: ConnectionRecord) -> SessionError:
    """Map a connect/transport exception to the session error taxonomy by type"""
    target = f"{record.username}@{record.endpoint}"

    if isinstance(error, SessionError):
        return error
    if isinstance(error, paramiko.AuthenticationException):
        return AuthenticationRejected(f"Authentication rejected by {target}: {error}")
    if isinstance(error, NoValidConnectionsError):
        if error.errors and all(
            isinstance(e, ConnectionRefusedError) for e in error.errors.values()
        ):
            return ConnectionRefused(f"Connection refused by {record.endpoint}")
        return HostUnreachable(f"Unable to connect to {record.endpoint}: {error}")
    if isinstance(error, ConnectionRefusedError):
        return ConnectionRefused(f"Connection refused by {record.endpoint}")
    if isinstance(error, socket.gaierror):
        return HostUnreachable(f"Host not found: {record.host}")
    if isinstance(error, TimeoutError):
        return OperationTimedOut(f"Timed out talking to {record.endpoint}")
    if isinstance(error, (paramiko.SSHException, EOFError)):
        return ProtocolError(f"SSH protocol error with {record.endpoint}: {error}")
    if isinstance(error, OSError):
        return HostUnreachable(f"Network error with {record.endpoint}: {error}")
    return ProtocolError(f"Unexpected failure with {record.endpoint}: {error!r}")


class SessionExecutor:
    """
    Drives one session per operation through
    connect -> authenticate -> act -> close, under a watchdog timeout.

    Blocking transport work runs on a daemon worker thread so the event loop
    keeps serving other operations. A timed-out worker is abandoned once its
    session is failed; it never holds up interpreter or loop shutdown.
    Sessions are never shared or reused.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        auth_resolver: Optional[AuthResolver] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        telemetry: Optional[Telemetry] = None,
    ):
        self.registry = registry
        self.auth_resolver = auth_resolver or AuthResolver()
        self.connection_factory = connection_factory or ParamikoConnectionFactory()
        self.telemetry = telemetry or get_telemetry()

    def lookup(self, name: str) -> ConnectionRecord:
        """
        Resolve a connection name.

        Raises:
            UnknownConnection: If name is not registered
        """
        record = self.registry.get(name)
        if record is None:
            raise UnknownConnection(name)
        return record

    async def execute(
        self,
        name: str,
        action: Action,
        timeout: Optional[float] = None,
        label: str = "operation",
    ) -> T:
        """
        Run action against a fresh session for connection name.

        Args:
            name: Connection name
            action: Blocking callable receiving the authenticated session
            timeout: Watchdog in seconds; None or 0 disables it
            label: Operation name for logs and telemetry

        Returns:
            Whatever action returns

        Raises:
            SessionError: Exactly one typed failure
        """
        record = self.lookup(name)
        session = Session(record, self.connection_factory.create(record))
        outcome = "ok"

        try:
            work = self._spawn(session, action)
            if timeout:
                return await asyncio.wait_for(work, timeout)
            return await work
        except asyncio.TimeoutError:
            outcome = "timeout"
            session.fail()
            logger.warning(f"[{name}] {label} timed out after {timeout}s")
            raise OperationTimedOut(
                f"{label} on '{name}' timed out after {timeout:g}s"
            ) from None
        except SessionError as e:
            outcome = "error"
            session.fail()
            logger.warning(f"[{name}] {label} failed: {e}")
            self.telemetry.record_event(
                "session.failed",
                {"connection": name, "operation": label, "error": type(e).__name__},
            )
            raise
        except asyncio.CancelledError:
            outcome = "cancelled"
            session.fail()
            raise
        finally:
            session.close()
            self.telemetry.record_metric(
                "session.duration_ms",
                (time.monotonic() - session.started_at) * 1000,
                tags={"connection": name, "operation": label, "outcome": outcome},
            )

    def _spawn(self, session: Session, action: Action) -> "asyncio.Future[T]":
        """Start _drive on a daemon thread and return a future for its result"""
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def settle(result, error) -> None:
            # Already cancelled by the watchdog
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def run() -> None:
            result, error = None, None
            try:
                result = self._drive(session, action)
            except BaseException as e:
                error = e
            try:
                loop.call_soon_threadsafe(settle, result, error)
            except RuntimeError:
                # Loop closed before an abandoned worker finished
                logger.debug(f"[{session.record.name}] worker finished after loop shutdown: {error!r}")

        worker = threading.Thread(
            target=run,
            name=f"sshops-session-{session.record.name}",
            daemon=True,
        )
        worker.start()
        return future

    def _drive(self, session: Session, action: Action) -> T:
        """Worker-thread half of the state machine"""
        record = session.record

        session.transition(SessionState.CONNECTING)
        try:
            credential = self.auth_resolver.resolve(record)
            session.client.connect(credential)
        except SessionError:
            raise
        except Exception as e:
            raise classify_transport_error(e, record) from e
        session.transition(SessionState.AUTHENTICATED)

        session.transition(SessionState.BUSY)
        try:
            result = action(session)
        except SessionError:
            raise
        except Exception as e:
            raise classify_transport_error(e, record) from e

        session.transition(SessionState.CLOSING)
        return result
