"""
Shared fixtures: in-memory stand-ins for the SSH transport.

The executor only talks to clients through the ConnectionFactory interface,
so these fakes exercise the real session state machine, auth resolution and
error mapping without any network.
"""
from __future__ import annotations

import errno
import io
import stat
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import paramiko
import pytest

from sshops.core.interfaces import ConnectionFactory
from sshops.core.telemetry import Telemetry
from sshops.domain.connections import ConnectionRecord, ConnectionRegistry
from sshops.domain.session import AuthResolver, OperationCatalog, SessionExecutor


class FakeRemoteFile(io.BytesIO):
    """SFTP file handle; written data is committed to the store on close"""

    def __init__(self, store: Dict[str, bytes], path: str, data: bytes = b"", writable: bool = False):
        super().__init__(data)
        self._store = store
        self._path = path
        self._writable = writable

    def prefetch(self) -> None:
        pass

    def set_pipelined(self, pipelined: bool = True) -> None:
        pass

    def close(self) -> None:
        if self._writable and not self.closed:
            self._store[self._path] = self.getvalue()
        super().close()


class FakeSFTP:
    """In-memory SFTP server view"""

    def __init__(self, host: "FakeHost"):
        self.files = host.files
        self.denied = host.denied
        self.dirs = host.dirs
        self.error = host.sftp_error
        self.closed = False

    def open(self, path: str, mode: str = "r"):
        if self.error is not None:
            raise self.error
        if path in self.denied:
            raise PermissionError(errno.EACCES, "Permission denied")
        if "w" in mode:
            return FakeRemoteFile(self.files, path, writable=True)
        if path not in self.files:
            raise FileNotFoundError(errno.ENOENT, "No such file")
        return FakeRemoteFile(self.files, path, self.files[path])

    def listdir_attr(self, path: str = "."):
        if self.error is not None:
            raise self.error
        if path not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, "No such file")
        return list(self.dirs[path])

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeHost:
    """Behavior of the simulated remote host"""
    connect_error: Optional[BaseException] = None
    hang_on_connect: bool = False
    # Blocks the worker without watching for close
    connect_delay: float = 0.0
    hang_on_exec: bool = False
    command_result: Tuple[bytes, bytes, Optional[int]] = (b"", b"", 0)
    files: Dict[str, bytes] = field(default_factory=dict)
    denied: set = field(default_factory=set)
    dirs: Dict[str, List[paramiko.SFTPAttributes]] = field(default_factory=dict)
    sftp_error: Optional[BaseException] = None
    transport_active: bool = True


class FakeClient:
    """Stands in for RemoteClient"""

    def __init__(self, record: ConnectionRecord, host: FakeHost):
        self.record = record
        self.host = host
        self.credential = None
        self.commands: List[str] = []
        self.close_calls = 0
        self._closed = threading.Event()
        self._sftp: Optional[FakeSFTP] = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def transport_active(self) -> bool:
        return self.host.transport_active

    def connect(self, credential) -> None:
        self.credential = credential
        if self.host.connect_delay:
            time.sleep(self.host.connect_delay)
        if self.host.hang_on_connect:
            self._closed.wait(10)
            raise EOFError("transport closed")
        if self.host.connect_error is not None:
            raise self.host.connect_error

    def exec_streaming(self, cmd, cancelled=None):
        self.commands.append(cmd)
        if self.host.hang_on_exec:
            self._closed.wait(10)
            raise EOFError("transport closed")
        return self.host.command_result

    def open_sftp(self) -> FakeSFTP:
        if self._sftp is None:
            self._sftp = FakeSFTP(self.host)
        return self._sftp

    def close(self) -> None:
        self.close_calls += 1
        self._closed.set()


class FakeConnectionFactory(ConnectionFactory):
    """Hands out one fresh FakeClient per session"""

    def __init__(self, host: Optional[FakeHost] = None):
        self.host = host or FakeHost()
        self.clients: List[FakeClient] = []

    def create(self, record: ConnectionRecord) -> FakeClient:
        client = FakeClient(record, self.host)
        self.clients.append(client)
        return client


def make_attr(filename: str, mode: int, size: int, mtime: int) -> paramiko.SFTPAttributes:
    attr = paramiko.SFTPAttributes()
    attr.filename = filename
    attr.st_mode = mode
    attr.st_size = size
    attr.st_mtime = mtime
    return attr


DIR_MODE = stat.S_IFDIR | 0o755
FILE_MODE = stat.S_IFREG | 0o644
LINK_MODE = stat.S_IFLNK | 0o777


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home_dir = tmp_path / "home"
    (home_dir / ".ssh").mkdir(parents=True)
    return home_dir


@pytest.fixture
def registry(home: Path) -> ConnectionRegistry:
    reg = ConnectionRegistry(home=home)
    reg.merge([[
        ConnectionRecord(name="web1", host="192.0.2.10", username="root", password="secret"),
    ]])
    return reg


@pytest.fixture
def remote_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def factory(remote_host: FakeHost) -> FakeConnectionFactory:
    return FakeConnectionFactory(remote_host)


@pytest.fixture
def telemetry() -> Telemetry:
    return Telemetry()


@pytest.fixture
def executor(registry, factory, home, telemetry) -> SessionExecutor:
    return SessionExecutor(
        registry,
        auth_resolver=AuthResolver(home=home),
        connection_factory=factory,
        telemetry=telemetry,
    )


@pytest.fixture
def catalog(executor) -> OperationCatalog:
    return OperationCatalog(executor, command_timeout=5, transfer_timeout=5, probe_timeout=1)
