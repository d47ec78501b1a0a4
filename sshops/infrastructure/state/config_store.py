"""
File-based config storage implementation
"""
import json
import os
from pathlib import Path
from typing import Optional

from ...core.constants import DEFAULT_CONFIG_DIR, CONFIG_FILE_NAME, CONFIG_PATH_ENV
from ...core.exceptions import ConfigError
from ...core.interfaces import ConfigStore
from ...core.logging import get_logger
from ...domain.connections.models import AppConfig

logger = get_logger(__name__)


def default_config_path() -> Path:
    """Config file path, honoring the override environment variable"""
    override = os.getenv(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path(DEFAULT_CONFIG_DIR).expanduser() / CONFIG_FILE_NAME


class JsonConfigStore(ConfigStore):
    """
    JSON config file storage.
    
    Layout of the file:
    - binarylane: discovery settings (enabled, api_token, default_username,
      default_private_key_path)
    - connections: list of manually added connection entries
    """
    
    def __init__(self, path: Optional[Path] = None):
        """
        Initialize JSON config store.
        
        Args:
            path: Config file path (default: ~/.config/sshops/connections.json)
        """
        self.path = Path(path).expanduser() if path else default_config_path()
    
    def location(self) -> str:
        return str(self.path)
    
    def load(self) -> AppConfig:
        """
        Load config from disk, creating the default file if missing.
        
        An unreadable or malformed file is reported and replaced by defaults
        in memory; the file itself is left untouched.
        """
        if not self.path.exists():
            config = AppConfig()
            self.save(config)
            return config
        
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
            return AppConfig.from_dict(data)
        except (OSError, json.JSONDecodeError, ConfigError) as e:
            logger.error(f"Failed to load config from {self.path}: {e}")
            return AppConfig()
    
    def save(self, config: AppConfig) -> None:
        """Save config to disk"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding='utf-8')
        # May hold passwords and tokens
        self.path.chmod(0o600)
