from __future__ import annotations
import socket
import threading
import time
from dataclasses import dataclass
from typing import Optional, Tuple, TYPE_CHECKING
import paramiko

from .constants import (
    DEFAULT_SSH_PORT,
    DEFAULT_CONNECT_TIMEOUT,
    CHANNEL_READ_SIZE,
    CHANNEL_POLL_INTERVAL,
    TRANSPORT_SETTLE_TIME,
)
from .exceptions import KeyNotFound, OperationTimedOut

if TYPE_CHECKING:
    from ..domain.session.auth import Credential


@dataclass
class ClientConfig:
    host: str
    user: str
    port: int = DEFAULT_SSH_PORT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT


class RemoteClient:
    """
    Thin wrapper over paramiko.SSHClient for a single session:
    - explicitly keeps host / user / port
    - password or private key login (Ed25519 / ECDSA / RSA)
    - streaming exec and SFTP helpers
    - close() is idempotent and may be called from another thread,
      including while connect() is still in progress
    """

    KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)

    def __init__(
        self,
        host: str,
        user: str,
        port: int = DEFAULT_SSH_PORT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self.config = ClientConfig(
            host=host,
            user=user,
            port=port,
            connect_timeout=connect_timeout,
        )

        self.client = paramiko.SSHClient()
        self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        self._sftp: Optional[paramiko.SFTPClient] = None
        self._sock: Optional[socket.socket] = None
        self._lock = threading.Lock()
        self._closed = threading.Event()

    # --------------------
    # Connection management
    # --------------------
    def connect(self, credential: "Credential") -> None:
        """
        Handshake and authenticate with credential.

        Raises:
            OperationTimedOut: If close() was called before connect finished
        """
        cfg = self.config
        if credential.kind == "password":
            auth = {"password": credential.password}
        elif credential.kind == "key":
            auth = {"pkey": self._load_private_key(credential.key_path)}
        else:
            raise ValueError(f"Unsupported credential kind: {credential.kind}")

        sock = self._open_socket()
        self.client.connect(
            hostname=cfg.host,
            port=cfg.port,
            username=cfg.user,
            sock=sock,
            timeout=cfg.connect_timeout,
            banner_timeout=cfg.connect_timeout,
            auth_timeout=cfg.connect_timeout,
            allow_agent=False,
            look_for_keys=False,
            **auth,
        )

        # close() may have raced the handshake; never leave a live transport behind
        if self._closed.is_set():
            self.client.close()
            raise OperationTimedOut(f"Session to {cfg.host}:{cfg.port} closed while connecting")

    def _open_socket(self) -> socket.socket:
        """TCP connect, owned here so close() can abort the handshake"""
        cfg = self.config
        sock = socket.create_connection((cfg.host, cfg.port), timeout=cfg.connect_timeout)
        with self._lock:
            if self._closed.is_set():
                sock.close()
                raise OperationTimedOut(
                    f"Session to {cfg.host}:{cfg.port} closed while connecting"
                )
            self._sock = sock
        return sock

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def transport_active(self) -> bool:
        transport = self.client.get_transport()
        return transport is not None and transport.is_active()

    # --------------------
    # Load private key
    # --------------------
    def _load_private_key(self, path: str) -> paramiko.PKey:
        """Try each supported key type in turn"""
        for key_class in self.KEY_CLASSES:
            try:
                return key_class.from_private_key_file(path)
            except paramiko.SSHException:
                continue
            except OSError as e:
                raise KeyNotFound(f"Private key not readable: {path}") from e
        raise KeyNotFound(f"Unsupported or encrypted private key: {path}")

    # --------------------
    # Helpers
    # --------------------
    def exec_streaming(
        self,
        cmd: str,
        cancelled: Optional[threading.Event] = None,
    ) -> Tuple[bytes, bytes, Optional[int]]:
        """
        Run cmd, collecting stdout and stderr independently as they stream.

        Returns:
            (stdout, stderr, exit_code) where exit_code is None if the
            remote end closed the channel without reporting one

        Raises:
            OperationTimedOut: If cancelled is set while the command runs
            EOFError: If the transport dropped before an exit status arrived
        """
        stdin, stdout, stderr = self.client.exec_command(cmd)
        stdin.close()
        channel = stdout.channel

        out_buf: list[bytes] = []
        err_buf: list[bytes] = []

        def drain() -> bool:
            got = False
            while channel.recv_ready():
                data = channel.recv(CHANNEL_READ_SIZE)
                if not data:
                    break
                out_buf.append(data)
                got = True
            while channel.recv_stderr_ready():
                data = channel.recv_stderr(CHANNEL_READ_SIZE)
                if not data:
                    break
                err_buf.append(data)
                got = True
            return got

        # Exit status also becomes ready when the channel closes
        while not channel.exit_status_ready():
            if cancelled is not None and cancelled.is_set():
                raise OperationTimedOut(f"Command cancelled: {cmd}")
            if not drain():
                time.sleep(CHANNEL_POLL_INTERVAL)

        drain()
        exit_code = channel.recv_exit_status()
        if exit_code == -1:
            transport = self.client.get_transport()
            # Channels are closed slightly before a dying transport goes inactive
            if transport is not None and transport.is_active():
                transport.join(TRANSPORT_SETTLE_TIME)
            if not self.transport_active:
                raise EOFError(f"Connection lost while running: {cmd}")
            return b"".join(out_buf), b"".join(err_buf), None
        return b"".join(out_buf), b"".join(err_buf), exit_code

    def open_sftp(self) -> paramiko.SFTPClient:
        """Return SFTP client for this session"""
        if self._sftp is None or self._sftp.get_channel() is None:
            self._sftp = self.client.open_sftp()
        return self._sftp

    def close(self) -> None:
        """Release the SFTP channel, transport and socket"""
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            sock = self._sock
        if self._sftp is not None:
            try:
                self._sftp.close()
            except (OSError, EOFError, paramiko.SSHException):
                pass
        self.client.close()
        if sock is not None:
            # Unblocks a handshake still reading from the socket
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            sock.close()

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> RemoteClient:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
