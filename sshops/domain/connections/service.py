"""
Connection domain service - source assembly and reload
"""
from typing import Callable, Dict, Any, List, Optional

from ...core.exceptions import ConfigError, DiscoveryError
from ...core.interfaces import ConfigStore, DiscoveryProvider
from ...core.logging import get_logger
from .models import AppConfig, ConnectionRecord, ConnectionSource, records_from_entries
from .registry import ConnectionRegistry

logger = get_logger(__name__)

EnvSource = Callable[[], List[ConnectionRecord]]
DiscoveryFactory = Callable[[AppConfig], Optional[DiscoveryProvider]]


class ConnectionService:
    """
    Connection service - pure business logic.

    Assembles the prioritized sources (manual config file, environment,
    discovery) and feeds them to the registry. No direct dependency on CLI,
    Typer, or the file system.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        store: ConfigStore,
        env_source: Optional[EnvSource] = None,
        discovery_factory: Optional[DiscoveryFactory] = None,
    ):
        """
        Initialize connection service.

        Args:
            registry: Registry to populate
            store: Config file storage
            env_source: Returns environment-defined connections
            discovery_factory: Builds the discovery provider for a config,
                or returns None when discovery is disabled
        """
        self.registry = registry
        self.store = store
        self.env_source = env_source or (lambda: [])
        self.discovery_factory = discovery_factory or (lambda config: None)

    def manual_connections(self, config: AppConfig) -> List[ConnectionRecord]:
        return records_from_entries(config.connections, ConnectionSource.MANUAL)

    async def discovered_connections(self, config: AppConfig) -> List[ConnectionRecord]:
        """Run discovery; failures are logged and yield nothing"""
        provider = self.discovery_factory(config)
        if provider is None:
            return []
        try:
            return await provider.discover()
        except DiscoveryError as e:
            logger.error(f"Auto-discovery failed: {e}")
            return []

    async def reload(self) -> List[ConnectionRecord]:
        """
        Rebuild the registry from all sources.

        Priority: manual > environment > discovered.

        Returns:
            Resolved connections
        """
        config = self.store.load()
        sources = [
            self.manual_connections(config),
            self.env_source(),
            await self.discovered_connections(config),
        ]
        self.registry.merge(sources)
        return self.registry.list()

    def add_connection(self, record: ConnectionRecord) -> ConnectionRecord:
        """
        Persist a manual connection and make it available immediately.

        A stored connection with the same name is replaced.

        Raises:
            ConfigError: If record is missing name, host or username
        """
        if not record.is_valid():
            raise ConfigError("Connection requires name, host and username")
        record = record.with_source(ConnectionSource.MANUAL)
        self.store.save(self.store.load().with_connection(record))
        logger.info(f"Connection '{record.name}' saved to {self.store.location()}")
        return self.registry.add_manual(record)

    def remove_connection(self, name: str) -> bool:
        """
        Remove a manual connection from the config file and the registry.

        Returns:
            False if name is not a manually added connection
        """
        updated = self.store.load().without_connection(name)
        if updated is None:
            return False
        self.store.save(updated)
        self.registry.remove_manual(name)
        logger.info(f"Connection '{name}' removed from {self.store.location()}")
        return True

    def get_config(self) -> Dict[str, Any]:
        """Redacted config and its location"""
        return {
            "config_path": self.store.location(),
            "config": self.store.load().redacted().to_dict(),
        }
