"""
Connection domain models
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Dict, Any, List, Mapping

from ...core.constants import (
    DEFAULT_SSH_PORT,
    DEFAULT_PRIVATE_KEY_PATH,
    DEFAULT_DISCOVERY_USERNAME,
    REDACTED,
)
from ...core.exceptions import ConfigError
from ...core.logging import get_logger

logger = get_logger(__name__)


class ConnectionSource(str, Enum):
    """Where a connection definition came from"""
    MANUAL = "manual"
    ENVIRONMENT = "environment"
    DISCOVERED = "discovered"


# Accepted spellings for loosely-typed input
_FIELD_ALIASES = {
    "username": ("username", "user"),
    "private_key_path": ("private_key_path", "privateKeyPath", "key", "key_file"),
}


def _pick(data: Mapping[str, Any], key: str) -> Any:
    for alias in _FIELD_ALIASES.get(key, (key,)):
        if data.get(alias) is not None:
            return data[alias]
    return None


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = _pick(data, key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = _pick(data, key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string")
    return value


def _parse_port(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"Invalid port: {value!r}")
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid port: {value!r}") from None
    if port == 0:
        return None
    if not (1 <= port <= 65535):
        raise ConfigError(f"Invalid port: {port}")
    return port


@dataclass(frozen=True)
class ConnectionRecord:
    """One addressable remote target"""
    name: str
    host: str
    username: str
    port: Optional[int] = None
    private_key_path: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    source: ConnectionSource = ConnectionSource.MANUAL

    def is_valid(self) -> bool:
        """Check that name, host and username are present"""
        return all(
            isinstance(value, str) and value.strip()
            for value in (self.name, self.host, self.username)
        )

    @property
    def effective_port(self) -> int:
        return self.port or DEFAULT_SSH_PORT

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.effective_port}"

    def with_source(self, source: ConnectionSource) -> "ConnectionRecord":
        return replace(self, source=source)

    def to_dict(self, redact: bool = False) -> Dict[str, Any]:
        """Convert to the stored JSON shape"""
        data: Dict[str, Any] = {
            "name": self.name,
            "host": self.host,
            "port": self.effective_port,
            "username": self.username,
        }
        if self.private_key_path:
            data["private_key_path"] = self.private_key_path
        if self.password:
            data["password"] = REDACTED if redact else self.password
        return data

    def summary(self) -> Dict[str, Any]:
        """Credential-free view for listings"""
        return {
            "name": self.name,
            "host": self.host,
            "port": self.effective_port,
            "username": self.username,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        source: ConnectionSource = ConnectionSource.MANUAL,
    ) -> "ConnectionRecord":
        """
        Validate a loosely-typed mapping into a record.

        Raises:
            ConfigError: If the mapping is not a valid connection definition
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Connection entry must be an object, got {type(data).__name__}")

        return cls(
            name=_required_str(data, "name"),
            host=_required_str(data, "host"),
            username=_required_str(data, "username"),
            port=_parse_port(data.get("port")),
            private_key_path=_optional_str(data, "private_key_path"),
            password=_optional_str(data, "password"),
            source=source,
        )


@dataclass
class BinaryLaneConfig:
    """BinaryLane auto-discovery settings"""
    enabled: bool = True
    api_token: Optional[str] = None
    default_username: str = DEFAULT_DISCOVERY_USERNAME
    default_private_key_path: Optional[str] = DEFAULT_PRIVATE_KEY_PATH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "api_token": self.api_token,
            "default_username": self.default_username,
            "default_private_key_path": self.default_private_key_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BinaryLaneConfig":
        defaults = cls()
        return cls(
            enabled=bool(data.get("enabled", defaults.enabled)),
            api_token=data.get("api_token") or None,
            default_username=data.get("default_username") or defaults.default_username,
            default_private_key_path=data.get(
                "default_private_key_path", defaults.default_private_key_path
            ),
        )


@dataclass
class AppConfig:
    """
    Persisted configuration file contents.

    Manual connections are kept as raw entries; they are validated when the
    manual source is built, so a single bad entry never hides the others.
    """
    binarylane: BinaryLaneConfig = field(default_factory=BinaryLaneConfig)
    connections: List[Dict[str, Any]] = field(default_factory=list)
    # Fallback key for sources that name none of their own
    default_private_key_path: Optional[str] = DEFAULT_PRIVATE_KEY_PATH

    def has_connection(self, name: str) -> bool:
        return any(isinstance(c, dict) and c.get("name") == name for c in self.connections)

    def with_connection(self, record: ConnectionRecord) -> "AppConfig":
        """Return a copy holding record, replacing any entry with the same name"""
        kept = [
            c for c in self.connections
            if not (isinstance(c, dict) and c.get("name") == record.name)
        ]
        return replace(self, connections=kept + [record.to_dict()])

    def without_connection(self, name: str) -> Optional["AppConfig"]:
        """Return a copy without name, or None if it is not stored"""
        if not self.has_connection(name):
            return None
        return replace(
            self,
            connections=[
                c for c in self.connections
                if not (isinstance(c, dict) and c.get("name") == name)
            ],
        )

    def redacted(self) -> "AppConfig":
        """Copy with API token and passwords hidden"""
        binarylane = replace(
            self.binarylane,
            api_token=REDACTED if self.binarylane.api_token else None,
        )
        connections = []
        for entry in self.connections:
            if isinstance(entry, dict) and entry.get("password"):
                entry = {**entry, "password": REDACTED}
            connections.append(entry)
        return replace(self, binarylane=binarylane, connections=connections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "binarylane": self.binarylane.to_dict(),
            "connections": list(self.connections),
            "default_private_key_path": self.default_private_key_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        """Create from dictionary, filling missing fields with defaults"""
        if not isinstance(data, dict):
            raise ConfigError("Config root must be an object")
        binarylane = data.get("binarylane") or {}
        connections = data.get("connections") or []
        if not isinstance(binarylane, dict):
            raise ConfigError("'binarylane' must be an object")
        if not isinstance(connections, list):
            raise ConfigError("'connections' must be a list")
        return cls(
            binarylane=BinaryLaneConfig.from_dict(binarylane),
            connections=connections,
            default_private_key_path=data.get(
                "default_private_key_path", DEFAULT_PRIVATE_KEY_PATH
            ),
        )


def records_from_entries(
    entries: List[Any],
    source: ConnectionSource,
) -> List[ConnectionRecord]:
    """
    Validate raw entries into records, skipping invalid ones.

    Args:
        entries: Loosely-typed connection entries
        source: Provenance stamped on every record

    Returns:
        Valid records in input order
    """
    records = []
    for index, entry in enumerate(entries):
        try:
            records.append(ConnectionRecord.from_dict(entry, source))
        except ConfigError as e:
            logger.warning(f"Skipping invalid {source.value} connection #{index}: {e}")
    return records
