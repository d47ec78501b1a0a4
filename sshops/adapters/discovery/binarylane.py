"""
BinaryLane auto-discovery of SSH connections
"""
from typing import Any, Dict, List, Optional

import httpx

from ...core.constants import BINARYLANE_API_URL, DEFAULT_SSH_PORT, DEFAULT_DISCOVERY_USERNAME
from ...core.exceptions import DiscoveryError
from ...core.interfaces import DiscoveryProvider
from ...core.logging import get_logger
from ...domain.connections.models import ConnectionRecord, ConnectionSource

logger = get_logger(__name__)


class BinaryLaneDiscovery(DiscoveryProvider):
    """
    Discover active BinaryLane servers.
    
    Pages through the servers endpoint and yields one connection per active
    server that has a public IPv4 address.
    """
    
    def __init__(
        self,
        api_token: str,
        default_username: str = DEFAULT_DISCOVERY_USERNAME,
        default_private_key_path: Optional[str] = None,
        url: str = BINARYLANE_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_token: BinaryLane API token
            default_username: Username for every discovered server
            default_private_key_path: Key for every discovered server
            url: First page URL
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.api_token = api_token
        self.default_username = default_username
        self.default_private_key_path = default_private_key_path
        self.url = url
        self.timeout = timeout
        self._transport = transport
    
    def _to_record(self, server: Any) -> Optional[ConnectionRecord]:
        if not isinstance(server, dict):
            logger.warning(f"Skipping malformed BinaryLane server entry: {server!r}")
            return None
        if server.get("status") != "active":
            return None
        networks = server.get("networks")
        v4 = networks.get("v4") if isinstance(networks, dict) else None
        if not isinstance(v4, list):
            v4 = []
        public = next(
            (n for n in v4 if isinstance(n, dict) and n.get("type") == "public"),
            None,
        )
        name = server.get("name")
        if public is None or not isinstance(name, str) or not name:
            return None
        ip_address = public.get("ip_address")
        if not isinstance(ip_address, str) or not ip_address:
            return None
        return ConnectionRecord(
            name=name,
            host=ip_address,
            port=DEFAULT_SSH_PORT,
            username=self.default_username,
            private_key_path=self.default_private_key_path,
            source=ConnectionSource.DISCOVERED,
        )
    
    @staticmethod
    def _next_page(data: Dict[str, Any]) -> Optional[str]:
        links = data.get("links")
        pages = links.get("pages") if isinstance(links, dict) else None
        url = pages.get("next") if isinstance(pages, dict) else None
        return url if isinstance(url, str) and url else None

    async def discover(self) -> List[ConnectionRecord]:
        """
        Fetch all pages of servers.
        
        Raises:
            DiscoveryError: On HTTP failure or an unexpected response body
        """
        records: List[ConnectionRecord] = []
        url: Optional[str] = self.url
        headers = {"Authorization": f"Bearer {self.api_token}"}
        
        async with httpx.AsyncClient(
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            while url:
                try:
                    response = await client.get(url)
                except httpx.HTTPError as e:
                    raise DiscoveryError(f"BinaryLane API request failed: {e}") from e
                
                if response.is_error:
                    raise DiscoveryError(
                        f"BinaryLane API error ({response.status_code}): {response.text}"
                    )
                
                try:
                    data = response.json()
                    servers = data["servers"]
                except (ValueError, KeyError, TypeError) as e:
                    raise DiscoveryError(f"Unexpected BinaryLane API response: {e}") from e
                if not isinstance(servers, list):
                    raise DiscoveryError("Unexpected BinaryLane API response: servers is not a list")
                
                for server in servers:
                    record = self._to_record(server)
                    if record is not None:
                        records.append(record)
                
                url = self._next_page(data)
        
        logger.info(f"Auto-discovered {len(records)} BinaryLane server(s)")
        return records
