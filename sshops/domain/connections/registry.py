"""
Connection registry - resolved name -> record mapping
"""
import threading
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ...core.constants import DEFAULT_SSH_PORT
from ...core.logging import get_logger
from ...core.utils import expand_home
from .models import ConnectionRecord, ConnectionSource

logger = get_logger(__name__)


class ConnectionRegistry:
    """
    Name-keyed registry of connections merged from prioritized sources.

    Lifecycle: created empty, then rebuilt wholesale by ``merge`` on every
    reload. ``add_manual``/``remove_manual`` patch the published map directly
    and hold until the next ``merge``. The map is replaced as a whole under a
    lock, so ``get``/``list`` never see a half-merged state.
    """

    def __init__(self, home: Optional[Path] = None):
        """
        Initialize empty registry.

        Args:
            home: Home directory used for ~ expansion (defaults to Path.home())
        """
        self._home = home
        self._lock = threading.Lock()
        self._connections: Dict[str, ConnectionRecord] = {}

    def _normalize(self, record: ConnectionRecord) -> ConnectionRecord:
        """Apply default port and expand ~ in the key path"""
        changes = {}
        if not record.port:
            changes["port"] = DEFAULT_SSH_PORT
        if record.private_key_path:
            expanded = expand_home(record.private_key_path, self._home)
            if expanded != record.private_key_path:
                changes["private_key_path"] = expanded
        return replace(record, **changes) if changes else record

    def merge(self, sources: Sequence[Iterable[ConnectionRecord]]) -> None:
        """
        Rebuild the registry from sources ordered highest priority first.

        The first source to define a name wins; later definitions of that
        name are dropped whole. Invalid records are skipped with a warning.

        Args:
            sources: Ordered sequence of ordered record sequences
        """
        resolved: Dict[str, ConnectionRecord] = {}

        for records in sources:
            for record in records:
                if not isinstance(record, ConnectionRecord) or not record.is_valid():
                    logger.warning(f"Skipping invalid connection entry: {record!r}")
                    continue
                if record.name in resolved:
                    logger.debug(
                        f"Connection '{record.name}' from {record.source.value} "
                        f"shadowed by {resolved[record.name].source.value}"
                    )
                    continue
                resolved[record.name] = self._normalize(record)

        with self._lock:
            self._connections = resolved

        logger.info(f"Loaded {len(resolved)} SSH connection(s)")

    def get(self, name: str) -> Optional[ConnectionRecord]:
        """Get a connection by name"""
        with self._lock:
            return self._connections.get(name)

    def list(self) -> List[ConnectionRecord]:
        """All connections in acceptance order"""
        with self._lock:
            return list(self._connections.values())

    def snapshot(self) -> Dict[str, ConnectionRecord]:
        """Copy of the resolved map"""
        with self._lock:
            return dict(self._connections)

    def add_manual(self, record: ConnectionRecord) -> ConnectionRecord:
        """
        Insert or overwrite a manual connection, ignoring merge priority.

        Returns:
            The record as stored
        """
        stored = self._normalize(record.with_source(ConnectionSource.MANUAL))
        with self._lock:
            connections = dict(self._connections)
            connections[stored.name] = stored
            self._connections = connections
        return stored

    def remove_manual(self, name: str) -> bool:
        """
        Remove a manually added connection.

        Returns:
            True if a manual connection was removed, False otherwise
        """
        with self._lock:
            record = self._connections.get(name)
            if record is None or record.source is not ConnectionSource.MANUAL:
                return False
            connections = dict(self._connections)
            del connections[name]
            self._connections = connections
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._connections
