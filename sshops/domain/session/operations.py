"""
Operation catalog - the fixed set of remote actions
"""
import stat
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

import paramiko

from ...core.constants import (
    CHANNEL_READ_SIZE,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_TRANSFER_TIMEOUT,
    PROBE_TIMEOUT,
)
from ...core.exceptions import (
    SessionError,
    UnknownConnection,
    OperationTimedOut,
    RemoteIOError,
    LocalIOError,
    ProtocolError,
)
from ...core.logging import get_logger
from ...core.utils import resolve_local_path
from .executor import SessionExecutor
from .models import (
    Session,
    CommandOutcome,
    TransferOutcome,
    DirectoryEntry,
    ConnectionTestResult,
)

logger = get_logger(__name__)


# ============================================================
# Error scoping
# ============================================================

@contextmanager
def remote_io(path: str, client) -> Iterator[None]:
    """
    Turn SFTP status errors on path into RemoteIOError.

    An errno-less error on a dead transport is a lost connection, not a
    file problem, and becomes ProtocolError instead.
    """
    try:
        yield
    except (ConnectionError, TimeoutError):
        # Transport trouble, classified by the executor
        raise
    except OSError as e:
        if e.errno is None and not client.transport_active:
            raise ProtocolError(f"Connection lost during SFTP on {path}: {e}") from e
        raise RemoteIOError(f"{path}: {e.strerror or e}") from e


@contextmanager
def local_io(path: Path) -> Iterator[None]:
    """Turn local filesystem errors on path into LocalIOError"""
    try:
        yield
    except OSError as e:
        raise LocalIOError(f"{path}: {e.strerror or e}") from e


# ============================================================
# Actions (run on the session worker thread)
# ============================================================

def _entry_kind(mode: Optional[int]) -> str:
    if mode is None:
        return "other"
    if stat.S_ISDIR(mode):
        return "directory"
    if stat.S_ISREG(mode):
        return "file"
    return "other"


def to_directory_entry(attr: paramiko.SFTPAttributes) -> DirectoryEntry:
    """Map SFTP attributes to a DirectoryEntry"""
    return DirectoryEntry(
        name=attr.filename,
        kind=_entry_kind(attr.st_mode),
        size=attr.st_size or 0,
        modified_at=datetime.fromtimestamp(attr.st_mtime or 0),
    )


def run_command_action(command: str):
    def action(session: Session) -> CommandOutcome:
        stdout, stderr, exit_code = session.client.exec_streaming(command, session.cancelled)
        return CommandOutcome(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code if exit_code is not None else 0,
        )
    return action


def read_file_action(remote_path: str):
    def action(session: Session) -> str:
        sftp = session.client.open_sftp()
        chunks: List[bytes] = []
        with remote_io(remote_path, session.client):
            with sftp.open(remote_path, "rb") as remote_file:
                while True:
                    if session.cancelled.is_set():
                        raise OperationTimedOut(f"Read of {remote_path} cancelled")
                    chunk = remote_file.read(CHANNEL_READ_SIZE)
                    if not chunk:
                        break
                    chunks.append(chunk)
        return b"".join(chunks).decode("utf-8", errors="replace")
    return action


def list_directory_action(remote_path: str):
    def action(session: Session) -> List[DirectoryEntry]:
        sftp = session.client.open_sftp()
        with remote_io(remote_path, session.client):
            attrs = sftp.listdir_attr(remote_path)
        return [to_directory_entry(attr) for attr in attrs]
    return action


def _copy(session: Session, reader, writer, local_side: str, local_path: Path) -> int:
    """Chunked copy; errors on the local side become LocalIOError"""
    total = 0
    while True:
        if session.cancelled.is_set():
            raise OperationTimedOut("Transfer cancelled")
        if local_side == "reader":
            with local_io(local_path):
                chunk = reader.read(CHANNEL_READ_SIZE)
        else:
            chunk = reader.read(CHANNEL_READ_SIZE)
        if not chunk:
            return total
        if local_side == "writer":
            with local_io(local_path):
                writer.write(chunk)
        else:
            writer.write(chunk)
        total += len(chunk)


def upload_action(local_path: Path, remote_path: str):
    def action(session: Session) -> TransferOutcome:
        sftp = session.client.open_sftp()
        with local_io(local_path):
            local_file = open(local_path, "rb")
        # Pipelined write errors surface on close, so close inside the scope
        with local_file, remote_io(remote_path, session.client):
            with sftp.open(remote_path, "wb") as remote_file:
                remote_file.set_pipelined(True)
                size = _copy(session, local_file, remote_file, "reader", local_path)
        return TransferOutcome(True, f"Uploaded {local_path} to {remote_path} ({size} bytes)")
    return action


def download_action(remote_path: str, local_path: Path):
    def action(session: Session) -> TransferOutcome:
        sftp = session.client.open_sftp()
        # Remote side opens first so a missing remote file leaves nothing locally
        with remote_io(remote_path, session.client):
            with sftp.open(remote_path, "rb") as remote_file:
                remote_file.prefetch()
                with local_io(local_path):
                    local_file = open(local_path, "wb")
                with local_file:
                    size = _copy(session, remote_file, local_file, "writer", local_path)
        return TransferOutcome(True, f"Downloaded {remote_path} to {local_path} ({size} bytes)")
    return action


def probe_action(session: Session) -> Optional[float]:
    return session.latency_ms


# ============================================================
# Catalog
# ============================================================

class OperationCatalog:
    """
    Remote operations available on registered connections.

    Every call opens, uses and tears down its own session.
    """

    def __init__(
        self,
        executor: SessionExecutor,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        transfer_timeout: Optional[float] = DEFAULT_TRANSFER_TIMEOUT,
        probe_timeout: float = PROBE_TIMEOUT,
    ):
        """
        Args:
            executor: Session executor
            command_timeout: Default run_command timeout in seconds
            transfer_timeout: Timeout for file operations; None/0 is unbounded
            probe_timeout: Fixed timeout for test_connection
        """
        self.executor = executor
        self.command_timeout = command_timeout
        self.transfer_timeout = transfer_timeout
        self.probe_timeout = probe_timeout

    async def run_command(
        self,
        name: str,
        command: str,
        timeout: Optional[float] = None,
    ) -> CommandOutcome:
        """Execute command and collect stdout, stderr and exit code"""
        return await self.executor.execute(
            name,
            run_command_action(command),
            timeout=timeout if timeout is not None else self.command_timeout,
            label="run_command",
        )

    async def read_file(self, name: str, remote_path: str) -> str:
        """Read a remote file as text"""
        return await self.executor.execute(
            name,
            read_file_action(remote_path),
            timeout=self.transfer_timeout,
            label="read_file",
        )

    async def list_directory(self, name: str, remote_path: str) -> List[DirectoryEntry]:
        """List a remote directory"""
        return await self.executor.execute(
            name,
            list_directory_action(remote_path),
            timeout=self.transfer_timeout,
            label="list_directory",
        )

    async def upload_file(self, name: str, local_path: str, remote_path: str) -> TransferOutcome:
        """
        Upload a whole local file.

        Raises:
            LocalIOError: If the local file does not exist (checked before connecting)
        """
        self.executor.lookup(name)
        source = resolve_local_path(local_path)
        if not source.is_file():
            raise LocalIOError(f"Local file not found: {source}")
        return await self.executor.execute(
            name,
            upload_action(source, remote_path),
            timeout=self.transfer_timeout,
            label="upload_file",
        )

    async def download_file(self, name: str, remote_path: str, local_path: str) -> TransferOutcome:
        """Download a whole remote file"""
        return await self.executor.execute(
            name,
            download_action(remote_path, resolve_local_path(local_path)),
            timeout=self.transfer_timeout,
            label="download_file",
        )

    async def test_connection(self, name: str) -> ConnectionTestResult:
        """
        Probe connectivity. Never raises; failures come back as a result.
        """
        try:
            record = self.executor.lookup(name)
            latency_ms = await self.executor.execute(
                name,
                probe_action,
                timeout=self.probe_timeout,
                label="test_connection",
            )
        except UnknownConnection as e:
            return ConnectionTestResult(False, str(e))
        except OperationTimedOut:
            return ConnectionTestResult(False, "Connection timed out")
        except SessionError as e:
            return ConnectionTestResult(False, f"Connection failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected failure while testing '{name}'")
            return ConnectionTestResult(False, f"Connection failed: {e}")

        return ConnectionTestResult(
            True,
            f"Connected successfully to {record.endpoint}",
            latency_ms,
        )
