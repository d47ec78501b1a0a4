import asyncio

import httpx
import pytest

from sshops.adapters.discovery import BinaryLaneDiscovery
from sshops.core.exceptions import ConfigError, DiscoveryError
from sshops.core.interfaces import DiscoveryProvider
from sshops.domain.connections import (
    AppConfig,
    ConnectionRecord,
    ConnectionRegistry,
    ConnectionService,
    ConnectionSource,
)
from sshops.infrastructure.state.config_store import JsonConfigStore


class StaticDiscovery(DiscoveryProvider):

    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error

    async def discover(self):
        if self.error:
            raise self.error
        return list(self.records)


def _rec(name, host, source):
    return ConnectionRecord(name=name, host=host, username="root", source=source)


@pytest.fixture
def store(tmp_path):
    return JsonConfigStore(tmp_path / "connections.json")


def _service(home, store, env=(), discovery=None):
    return ConnectionService(
        ConnectionRegistry(home=home),
        store,
        env_source=lambda: list(env),
        discovery_factory=lambda config: discovery,
    )


def test_reload_merges_sources_by_priority(home, store):
    service = _service(
        home,
        store,
        env=[
            _rec("shared", "env-host", ConnectionSource.ENVIRONMENT),
            _rec("envonly", "10.0.0.2", ConnectionSource.ENVIRONMENT),
        ],
        discovery=StaticDiscovery([
            _rec("shared", "bl-host", ConnectionSource.DISCOVERED),
            _rec("envonly", "bl-host", ConnectionSource.DISCOVERED),
            _rec("cloud", "203.0.113.1", ConnectionSource.DISCOVERED),
        ]),
    )
    service.add_connection(ConnectionRecord(name="shared", host="manual-host", username="me"))

    connections = asyncio.run(service.reload())

    resolved = {r.name: r for r in connections}
    assert [r.name for r in connections] == ["shared", "envonly", "cloud"]
    assert resolved["shared"].host == "manual-host"
    assert resolved["shared"].source is ConnectionSource.MANUAL
    assert resolved["envonly"].host == "10.0.0.2"
    assert resolved["cloud"].source is ConnectionSource.DISCOVERED


def test_discovery_failure_keeps_other_sources(home, store, caplog):
    service = _service(
        home,
        store,
        env=[_rec("envonly", "10.0.0.2", ConnectionSource.ENVIRONMENT)],
        discovery=StaticDiscovery(error=DiscoveryError("BinaryLane API error (500): boom")),
    )

    connections = asyncio.run(service.reload())

    assert [r.name for r in connections] == ["envonly"]
    assert "Auto-discovery failed" in caplog.text


def test_add_connection_persists_and_is_usable(home, store):
    service = _service(home, store)

    stored = service.add_connection(ConnectionRecord(
        name="web1", host="192.0.2.10", username="root", port=2222,
        source=ConnectionSource.ENVIRONMENT,
    ))

    assert stored.source is ConnectionSource.MANUAL
    assert service.registry.get("web1").port == 2222
    assert store.load().connections == [
        {"name": "web1", "host": "192.0.2.10", "port": 2222, "username": "root"}
    ]


def test_add_invalid_connection_rejected(home, store):
    service = _service(home, store)

    with pytest.raises(ConfigError):
        service.add_connection(ConnectionRecord(name="x", host="", username="root"))

    assert store.load().connections == []


def test_remove_connection(home, store):
    service = _service(home, store, env=[_rec("envonly", "10.0.0.2", ConnectionSource.ENVIRONMENT)])
    service.add_connection(ConnectionRecord(name="web1", host="192.0.2.10", username="root"))
    asyncio.run(service.reload())

    assert service.remove_connection("envonly") is False
    assert "envonly" in service.registry

    assert service.remove_connection("web1") is True
    assert "web1" not in service.registry
    assert store.load().connections == []


def test_get_config_is_redacted(home, store):
    service = _service(home, store)
    service.add_connection(ConnectionRecord(name="db", host="h", username="u", password="pw"))

    info = service.get_config()

    assert info["config_path"] == store.location()
    assert info["config"]["connections"][0]["password"] == "***"
    assert store.load().connections[0]["password"] == "pw"


def test_reload_survives_malformed_discovery_entries(home, store):
    def handler(request):
        return httpx.Response(200, json={"servers": [
            "oops",
            {"name": "cloud", "status": "active",
             "networks": {"v4": [{"type": "public", "ip_address": "203.0.113.1"}]}},
        ]})

    discovery = BinaryLaneDiscovery(api_token="tok", transport=httpx.MockTransport(handler))
    service = _service(
        home,
        store,
        env=[_rec("envonly", "10.0.0.2", ConnectionSource.ENVIRONMENT)],
        discovery=discovery,
    )

    connections = asyncio.run(service.reload())

    assert [r.name for r in connections] == ["envonly", "cloud"]


def test_top_level_key_path_survives_add_and_remove(home, store):
    store.save(AppConfig(default_private_key_path="~/.ssh/fleet"))
    service = _service(home, store)

    service.add_connection(ConnectionRecord(name="web1", host="192.0.2.10", username="root"))
    assert store.load().default_private_key_path == "~/.ssh/fleet"

    service.remove_connection("web1")
    assert store.load().default_private_key_path == "~/.ssh/fleet"
