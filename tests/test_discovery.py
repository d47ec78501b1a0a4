import asyncio

import httpx
import pytest

from sshops.adapters.discovery import BinaryLaneDiscovery
from sshops.core.exceptions import DiscoveryError
from sshops.domain.connections import ConnectionSource


API = "https://api.binarylane.com.au/v2/servers"


def _server(name, ip, status="active", kind="public"):
    return {
        "name": name,
        "status": status,
        "networks": {"v4": [{"type": "private", "ip_address": "10.0.0.9"},
                            {"type": kind, "ip_address": ip}]},
    }


def _discovery(handler, **kwargs):
    return BinaryLaneDiscovery(
        api_token="tok",
        default_private_key_path="~/.ssh/id_ed25519",
        url=API,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_discover_follows_pages_and_filters():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json={"servers": [_server("db1", "203.0.113.2")]})
        return httpx.Response(200, json={
            "servers": [
                _server("web1", "203.0.113.1"),
                _server("old", "203.0.113.3", status="off"),
                _server("internal", "203.0.113.4", kind="private"),
            ],
            "links": {"pages": {"next": f"{API}?page=2"}},
        })

    records = asyncio.run(_discovery(handler).discover())

    assert [(r.name, r.host) for r in records] == [("web1", "203.0.113.1"), ("db1", "203.0.113.2")]
    assert all(r.source is ConnectionSource.DISCOVERED for r in records)
    assert records[0].username == "root"
    assert records[0].port == 22
    assert records[0].private_key_path == "~/.ssh/id_ed25519"
    assert len(seen) == 2
    assert seen[0].headers["Authorization"] == "Bearer tok"


def test_custom_default_username():
    def handler(request):
        return httpx.Response(200, json={"servers": [_server("web1", "203.0.113.1")]})

    records = asyncio.run(_discovery(handler, default_username="ubuntu").discover())

    assert records[0].username == "ubuntu"


def test_api_error_status():
    def handler(request):
        return httpx.Response(401, text="invalid token")

    with pytest.raises(DiscoveryError, match=r"BinaryLane API error \(401\): invalid token"):
        asyncio.run(_discovery(handler).discover())


def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DiscoveryError, match="request failed"):
        asyncio.run(_discovery(handler).discover())


@pytest.mark.parametrize("body", [b"<html>", b'{"unexpected": []}', b'{"servers": {"a": 1}}', b"[1, 2]"])
def test_unexpected_body(body):
    def handler(request):
        return httpx.Response(200, content=body)

    with pytest.raises(DiscoveryError, match="Unexpected"):
        asyncio.run(_discovery(handler).discover())


def test_malformed_entries_are_skipped(caplog):
    def handler(request):
        return httpx.Response(200, json={
            "servers": [
                "oops",
                None,
                {"name": "nonet", "status": "active", "networks": ["v4"]},
                {"name": "badv4", "status": "active", "networks": {"v4": "203.0.113.9"}},
                {"name": "badnic", "status": "active", "networks": {"v4": [42, {"type": "public"}]}},
                {"name": 7, "status": "active", "networks": {"v4": [{"type": "public", "ip_address": "203.0.113.8"}]}},
                _server("web1", "203.0.113.1"),
            ],
            "links": "none",
        })

    records = asyncio.run(_discovery(handler).discover())

    assert [(r.name, r.host) for r in records] == [("web1", "203.0.113.1")]
    assert "Skipping malformed BinaryLane server entry" in caplog.text
