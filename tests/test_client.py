"""
RemoteClient against a real paramiko server on localhost.
"""
import asyncio
import socket
import threading
import time

import paramiko
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from sshops.core.client import RemoteClient
from sshops.core.exceptions import KeyNotFound, OperationTimedOut, ProtocolError
from sshops.core.telemetry import Telemetry
from sshops.domain.connections import ConnectionRecord, ConnectionRegistry
from sshops.domain.session import (
    AuthResolver,
    Credential,
    OperationCatalog,
    ParamikoConnectionFactory,
    SessionExecutor,
)

from ssh_server import LocalSSHServer

PASSWORD = Credential.from_password("secret")


@pytest.fixture(scope="module")
def host_key():
    return paramiko.RSAKey.generate(2048)


@pytest.fixture
def server(host_key):
    with LocalSSHServer(host_key) as srv:
        yield srv


@pytest.fixture
def silent_server(host_key):
    with LocalSSHServer(host_key, handshake=False) as srv:
        yield srv


def _client(srv, connect_timeout=5):
    return RemoteClient(host="127.0.0.1", user="deploy", port=srv.port, connect_timeout=connect_timeout)


def _live_client_transports():
    return [
        t for t in threading.enumerate()
        if isinstance(t, paramiko.Transport) and not t.server_mode and t.is_active()
    ]


def _catalog(srv, home, timeout=5):
    registry = ConnectionRegistry(home=home)
    registry.merge([[ConnectionRecord(
        name="local", host="127.0.0.1", port=srv.port, username="deploy", password="secret",
    )]])
    executor = SessionExecutor(
        registry,
        auth_resolver=AuthResolver(home=home),
        connection_factory=ParamikoConnectionFactory(connect_timeout=timeout),
        telemetry=Telemetry(),
    )
    return OperationCatalog(executor, command_timeout=timeout)


# --------------------
# Commands
# --------------------

def test_stdout_and_stderr_are_kept_apart(server):
    with _client(server) as client:
        client.connect(PASSWORD)
        stdout, stderr, exit_code = client.exec_streaming("mixed")

    assert stdout == b"out1\nout2\n"
    assert stderr == b"err1\n"
    assert exit_code == 3


def test_channel_closed_without_status_reports_none(server):
    with _client(server) as client:
        client.connect(PASSWORD)
        stdout, stderr, exit_code = client.exec_streaming("no-status")

        assert client.transport_active

    assert stdout == b"bye\n"
    assert exit_code is None


def test_transport_drop_mid_command_is_an_error(server):
    with _client(server) as client:
        client.connect(PASSWORD)
        with pytest.raises(EOFError, match="Connection lost while running: drop"):
            client.exec_streaming("drop")

        assert not client.transport_active


def test_transport_drop_surfaces_as_protocol_error(server, home):
    catalog = _catalog(server, home)

    with pytest.raises(ProtocolError):
        asyncio.run(catalog.run_command("local", "drop"))


def test_run_command_end_to_end(server, home):
    catalog = _catalog(server, home)

    outcome = asyncio.run(catalog.run_command("local", "mixed"))

    assert outcome.stdout == b"out1\nout2\n"
    assert outcome.stderr == b"err1\n"
    assert outcome.exit_code == 3


def test_cancel_stops_running_command(server):
    cancelled = threading.Event()
    timer = threading.Timer(0.2, cancelled.set)

    with _client(server) as client:
        client.connect(PASSWORD)
        timer.start()
        try:
            with pytest.raises(OperationTimedOut, match="Command cancelled"):
                client.exec_streaming("sleep", cancelled)
        finally:
            timer.cancel()


# --------------------
# Close during connect
# --------------------

def test_close_aborts_handshake_in_progress(silent_server):
    client = _client(silent_server)
    errors = []

    def connect():
        try:
            client.connect(PASSWORD)
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=connect, daemon=True)
    worker.start()
    time.sleep(0.3)

    started = time.monotonic()
    client.close()
    worker.join(2)

    assert not worker.is_alive()
    assert time.monotonic() - started < 2
    assert len(errors) == 1
    assert not client.transport_active


def test_close_during_tcp_connect_never_starts_transport(server, monkeypatch):
    real_create_connection = socket.create_connection

    def slow_create_connection(*args, **kwargs):
        time.sleep(0.5)
        return real_create_connection(*args, **kwargs)

    monkeypatch.setattr(socket, "create_connection", slow_create_connection)
    client = _client(server)
    errors = []

    def connect():
        try:
            client.connect(PASSWORD)
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=connect, daemon=True)
    worker.start()
    time.sleep(0.1)
    client.close()
    worker.join(2)

    assert len(errors) == 1
    assert isinstance(errors[0], OperationTimedOut)
    assert client.client.get_transport() is None


def test_session_timeout_leaves_no_live_transport(silent_server, home):
    catalog = _catalog(silent_server, home)

    with pytest.raises(OperationTimedOut):
        asyncio.run(catalog.run_command("local", "uptime", timeout=0.3))

    deadline = time.monotonic() + 2
    while _live_client_transports() and time.monotonic() < deadline:
        time.sleep(0.05)
    assert _live_client_transports() == []


# --------------------
# Private keys
# --------------------

def _write_ed25519(path):
    key = ed25519.Ed25519PrivateKey.generate()
    path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.OpenSSH,
        serialization.NoEncryption(),
    ))


@pytest.mark.parametrize(
    "kind, expected",
    [("rsa", paramiko.RSAKey), ("ecdsa", paramiko.ECDSAKey), ("ed25519", paramiko.Ed25519Key)],
)
def test_private_key_types_load(tmp_path, kind, expected):
    path = tmp_path / f"id_{kind}"
    if kind == "rsa":
        paramiko.RSAKey.generate(2048).write_private_key_file(str(path))
    elif kind == "ecdsa":
        paramiko.ECDSAKey.generate().write_private_key_file(str(path))
    else:
        _write_ed25519(path)

    key = RemoteClient("h", "u")._load_private_key(str(path))

    assert isinstance(key, expected)


def test_missing_private_key(tmp_path):
    with pytest.raises(KeyNotFound, match="not readable"):
        RemoteClient("h", "u")._load_private_key(str(tmp_path / "absent"))


def test_garbage_private_key(tmp_path):
    path = tmp_path / "id_rsa"
    path.write_text("not a key\n")

    with pytest.raises(KeyNotFound, match="Unsupported or encrypted"):
        RemoteClient("h", "u")._load_private_key(str(path))


def test_key_login(host_key, tmp_path):
    user_key = paramiko.ECDSAKey.generate()
    path = tmp_path / "id_ecdsa"
    user_key.write_private_key_file(str(path))

    with LocalSSHServer(host_key, authorized_key=user_key) as srv:
        with _client(srv) as client:
            client.connect(Credential.from_key(str(path)))
            assert client.transport_active
            _, _, exit_code = client.exec_streaming("mixed")

    assert exit_code == 3
