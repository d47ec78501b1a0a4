"""
Core infrastructure layer
"""
from .client import RemoteClient, ClientConfig
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import ConfigStore, ConnectionFactory, DiscoveryProvider, PromptProvider
from .telemetry import Telemetry, get_telemetry
from .utils import expand_home, is_readable_file, resolve_local_path

__all__ = [
    "RemoteClient",
    "ClientConfig",
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "ConfigStore",
    "ConnectionFactory",
    "DiscoveryProvider",
    "PromptProvider",
    "Telemetry",
    "get_telemetry",
    "expand_home",
    "is_readable_file",
    "resolve_local_path",
]
