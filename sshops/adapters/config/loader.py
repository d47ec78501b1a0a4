"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import json
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Any, Optional, List

from ...core.constants import (
    DEFAULT_CONFIG_DIR,
    SETTINGS_FILE_NAME,
    SETTINGS_ENV_PREFIX,
    SSH_CONNECTIONS_ENV,
    BINARYLANE_TOKEN_ENV,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_TRANSFER_TIMEOUT,
    PROBE_TIMEOUT,
)
from ...core.exceptions import ConfigError
from ...core.logging import get_logger
from ...domain.connections.models import (
    AppConfig,
    ConnectionRecord,
    ConnectionSource,
    records_from_entries,
)

logger = get_logger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Runtime settings for sessions"""
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    # 0 disables the transfer watchdog
    transfer_timeout: float = DEFAULT_TRANSFER_TIMEOUT
    probe_timeout: float = PROBE_TIMEOUT
    log_level: str = "WARNING"
    
    def validate(self) -> None:
        """Validate settings"""
        for name in ("connect_timeout", "command_timeout", "transfer_timeout", "probe_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"Invalid {name}: {value!r} (expected a number of seconds)")
        if self.connect_timeout <= 0:
            raise ConfigError(f"Invalid connect_timeout: {self.connect_timeout}")
        if self.command_timeout <= 0:
            raise ConfigError(f"Invalid command_timeout: {self.command_timeout}")
        if self.transfer_timeout < 0:
            raise ConfigError(f"Invalid transfer_timeout: {self.transfer_timeout}")
        if self.probe_timeout <= 0:
            raise ConfigError(f"Invalid probe_timeout: {self.probe_timeout}")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"Invalid log_level: {self.log_level!r} (expected one of {', '.join(LOG_LEVELS)})"
            )
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Create from dictionary, ignoring unknown and empty keys"""
        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in data.items() if k in known and v is not None})
        settings.validate()
        return settings


class ConfigLoader:
    """Configuration loader with priority support"""
    
    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._env_prefix = SETTINGS_ENV_PREFIX
        self._environ = environ if environ is not None else os.environ
    
    def default_settings_path(self) -> Path:
        return Path(DEFAULT_CONFIG_DIR).expanduser() / SETTINGS_FILE_NAME
    
    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        
        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration: {e}") from e
    
    def load_env(self) -> Dict[str, Any]:
        """Load settings from environment variables"""
        config = {}
        
        # Map environment variables to config keys
        env_mappings = {
            f"{self._env_prefix}CONNECT_TIMEOUT": "connect_timeout",
            f"{self._env_prefix}COMMAND_TIMEOUT": "command_timeout",
            f"{self._env_prefix}TRANSFER_TIMEOUT": "transfer_timeout",
            f"{self._env_prefix}PROBE_TIMEOUT": "probe_timeout",
            f"{self._env_prefix}LOG_LEVEL": "log_level",
        }
        
        for env_key, config_key in env_mappings.items():
            value = self._environ.get(env_key)
            if value:
                config[config_key] = self._convert_value(value)
        
        return config
    
    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type"""
        # Try boolean
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        
        # Try number
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            pass
        
        # Return as string
        return value
    
    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result = {}
        
        for config in configs:
            result = self._deep_merge(result, config)
        
        return result
    
    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()
        
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        
        return result
    
    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML > defaults
        
        Args:
            toml_path: Path to TOML settings file (default file used if present)
            cli_overrides: CLI parameter overrides
            use_env: Whether to load from environment variables
        
        Returns:
            Merged configuration dictionary
        """
        configs = []
        
        # 1. Load TOML if provided, or the default file when it exists
        if toml_path:
            configs.append(self.load_toml(toml_path))
        elif self.default_settings_path().exists():
            configs.append(self.load_toml(self.default_settings_path()))
        
        # 2. Load environment variables
        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)
        
        # 3. Apply CLI overrides (highest priority)
        if cli_overrides:
            configs.append({k: v for k, v in cli_overrides.items() if v is not None})
        
        # Merge all configs
        return self.merge_configs(*configs)
    
    def load_settings(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
    ) -> Settings:
        """Load and validate session settings"""
        return Settings.from_dict(self.load(toml_path, cli_overrides))
    
    # --------------------
    # Connection sources
    # --------------------
    def load_env_connections(self) -> List[ConnectionRecord]:
        """
        Load connections from the SSH_CONNECTIONS environment variable.
        
        The variable holds a JSON array of connection objects. A value that
        is not a JSON array is reported and yields no connections.
        """
        raw = self._environ.get(SSH_CONNECTIONS_ENV)
        if not raw:
            return []
        
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse {SSH_CONNECTIONS_ENV}: {e}")
            return []
        
        if not isinstance(entries, list):
            logger.error(f"{SSH_CONNECTIONS_ENV} must be a JSON array")
            return []
        
        return records_from_entries(entries, ConnectionSource.ENVIRONMENT)
    
    def binarylane_token(self, config: AppConfig) -> Optional[str]:
        """Discovery token from the config file, else from the environment"""
        return config.binarylane.api_token or self._environ.get(BINARYLANE_TOKEN_ENV) or None
