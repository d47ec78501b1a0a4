"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .client import RemoteClient
    from ..domain.connections.models import AppConfig, ConnectionRecord


class ConfigStore(ABC):
    """Persistent storage of the connection config file"""
    
    @abstractmethod
    def load(self) -> "AppConfig":
        """Load config, creating the default one if none exists"""
        pass
    
    @abstractmethod
    def save(self, config: "AppConfig") -> None:
        """Persist config"""
        pass
    
    @abstractmethod
    def location(self) -> str:
        """Human readable location of the stored config"""
        pass


class ConnectionFactory(ABC):
    """SSH client factory interface"""
    
    @abstractmethod
    def create(self, record: "ConnectionRecord") -> "RemoteClient":
        """Create an unconnected client for one session"""
        pass


class DiscoveryProvider(ABC):
    """Remote discovery of connection records"""
    
    @abstractmethod
    async def discover(self) -> list["ConnectionRecord"]:
        """Return discovered connection records"""
        pass


class PromptProvider(ABC):
    """User prompt interface"""
    
    @abstractmethod
    def prompt(self, message: str, default: Optional[str] = None, password: bool = False) -> str:
        """Prompt user for input"""
        pass
    
    @abstractmethod
    def confirm(self, message: str, default: bool = False) -> bool:
        """Prompt user for confirmation"""
        pass
