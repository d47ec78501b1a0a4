"""
Runtime wiring for CLI commands
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any

from ...core.interfaces import ConnectionFactory, DiscoveryProvider
from ...domain.connections import AppConfig, ConnectionRegistry, ConnectionService
from ...domain.session import OperationCatalog, ParamikoConnectionFactory, SessionExecutor
from ...infrastructure.state.config_store import JsonConfigStore
from ..config.loader import ConfigLoader, Settings
from ..discovery.binarylane import BinaryLaneDiscovery


@dataclass
class Runtime:
    """Services shared by one CLI invocation"""
    settings: Settings
    registry: ConnectionRegistry
    service: ConnectionService
    catalog: OperationCatalog


def create_connection_factory(settings: Settings) -> ConnectionFactory:
    """Factory for per-session SSH clients"""
    return ParamikoConnectionFactory(connect_timeout=settings.connect_timeout)


def build_runtime(
    config_path: Optional[Path] = None,
    settings_path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
) -> Runtime:
    """
    Assemble registry, connection service and operation catalog.
    
    Args:
        config_path: Connection config file (JSON)
        settings_path: Settings file (TOML)
        cli_overrides: Settings given on the command line
    
    Returns:
        Runtime with an empty registry; call service.reload() to populate it
    """
    loader = ConfigLoader()
    settings = loader.load_settings(settings_path, cli_overrides)
    store = JsonConfigStore(config_path)
    
    def discovery_factory(config: AppConfig) -> Optional[DiscoveryProvider]:
        token = loader.binarylane_token(config)
        if not config.binarylane.enabled or not token:
            return None
        return BinaryLaneDiscovery(
            api_token=token,
            default_username=config.binarylane.default_username,
            default_private_key_path=(
                config.binarylane.default_private_key_path or config.default_private_key_path
            ),
        )
    
    registry = ConnectionRegistry()
    service = ConnectionService(
        registry,
        store,
        env_source=loader.load_env_connections,
        discovery_factory=discovery_factory,
    )
    executor = SessionExecutor(
        registry,
        connection_factory=create_connection_factory(settings),
    )
    catalog = OperationCatalog(
        executor,
        command_timeout=settings.command_timeout,
        transfer_timeout=settings.transfer_timeout or None,
        probe_timeout=settings.probe_timeout,
    )
    return Runtime(settings=settings, registry=registry, service=service, catalog=catalog)
