"""
Session domain models
"""
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Literal

from ...core.client import RemoteClient
from ...core.exceptions import ProtocolError
from ...core.logging import get_logger
from ..connections.models import ConnectionRecord

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Lifecycle state of a single-use session"""
    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    BUSY = "busy"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.FAILED)


# FAILED is reachable from every non-terminal state
_TRANSITIONS = {
    SessionState.IDLE: {SessionState.CONNECTING},
    SessionState.CONNECTING: {SessionState.AUTHENTICATED},
    SessionState.AUTHENTICATED: {SessionState.BUSY},
    SessionState.BUSY: {SessionState.CLOSING},
    SessionState.CLOSING: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
    SessionState.FAILED: set(),
}


class Session:
    """
    One ephemeral transport session backing exactly one operation.

    State changes may come from the worker thread driving the action or from
    the event loop (watchdog), so they are serialized by a lock. The client is
    released exactly once, on whichever terminal transition comes first.
    """

    def __init__(self, record: ConnectionRecord, client: RemoteClient):
        self.record = record
        self.client = client
        self.state = SessionState.IDLE
        self.history: List[SessionState] = [SessionState.IDLE]
        self.started_at = time.monotonic()
        self.authenticated_at: Optional[float] = None
        self.cancelled = threading.Event()
        self._lock = threading.Lock()
        self._released = False

    def transition(self, new_state: SessionState) -> None:
        """
        Move to new_state.

        Raises:
            ProtocolError: If the transition is not allowed
        """
        with self._lock:
            allowed = _TRANSITIONS[self.state]
            if new_state is SessionState.FAILED and not self.state.terminal:
                allowed = allowed | {SessionState.FAILED}
            if new_state not in allowed:
                raise ProtocolError(
                    f"Illegal session transition {self.state.value} -> {new_state.value} "
                    f"for '{self.record.name}'"
                )
            self.state = new_state
            self.history.append(new_state)
            if new_state is SessionState.AUTHENTICATED:
                self.authenticated_at = time.monotonic()
        logger.debug(f"[{self.record.name}] session -> {new_state.value}")

    def fail(self) -> None:
        """Mark failed and cancel the in-flight action; no-op once terminal"""
        self.cancelled.set()
        with self._lock:
            if self.state.terminal:
                return
            self.state = SessionState.FAILED
            self.history.append(SessionState.FAILED)
        logger.debug(f"[{self.record.name}] session -> failed")

    def close(self) -> None:
        """Tear down the transport; always releases the client"""
        try:
            if self.state is SessionState.CLOSING:
                self.transition(SessionState.CLOSED)
            elif not self.state.terminal:
                self.fail()
        finally:
            self.release()

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self.client.close()

    @property
    def released(self) -> bool:
        return self._released

    @property
    def latency_ms(self) -> Optional[float]:
        """Time from session start to successful authentication"""
        if self.authenticated_at is None:
            return None
        return round((self.authenticated_at - self.started_at) * 1000, 2)


@dataclass
class CommandOutcome:
    """Result of a remote command"""
    stdout: bytes
    stderr: bytes
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stdout": self.stdout_text,
            "stderr": self.stderr_text,
            "exit_code": self.exit_code,
            "success": self.succeeded,
        }


@dataclass
class TransferOutcome:
    """Result of a file transfer"""
    succeeded: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.succeeded, "message": self.message}


@dataclass
class DirectoryEntry:
    """One entry of a remote directory listing"""
    name: str
    kind: Literal["file", "directory", "other"]
    size: int
    modified_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind,
            "size": self.size,
            "modified_at": self.modified_at.isoformat(),
        }


@dataclass
class ConnectionTestResult:
    """Outcome of a connectivity probe"""
    succeeded: bool
    message: str
    latency_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.succeeded, "message": self.message}
        if self.latency_ms is not None:
            data["latency_ms"] = self.latency_ms
        return data
