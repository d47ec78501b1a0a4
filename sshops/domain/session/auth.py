"""
Authentication resolution for a connection
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, Sequence

from ...core.constants import DEFAULT_KEY_NAMES
from ...core.exceptions import KeyNotFound, NoAuthenticationAvailable
from ...core.logging import get_logger
from ...core.utils import expand_home, is_readable_file
from ..connections.models import ConnectionRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credential:
    """Credential presented to the remote host"""
    kind: Literal["key", "password"]
    key_path: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_key(cls, path: str) -> "Credential":
        return cls(kind="key", key_path=path)

    @classmethod
    def from_password(cls, password: str) -> "Credential":
        return cls(kind="password", password=password)


class AuthResolver:
    """
    Decide which credential to present for a connection.

    Order: explicit private key, then password, then the first existing
    default key in ~/.ssh. Nothing is cached; every session resolves again.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        default_key_names: Sequence[str] = DEFAULT_KEY_NAMES,
    ):
        self._home = home
        self._default_key_names = tuple(default_key_names)

    @property
    def home(self) -> Path:
        return self._home if self._home is not None else Path.home()

    def default_key_paths(self) -> list[Path]:
        ssh_dir = self.home / ".ssh"
        return [ssh_dir / name for name in self._default_key_names]

    def resolve(self, record: ConnectionRecord) -> Credential:
        """
        Resolve the credential for record.

        Raises:
            KeyNotFound: If the configured key is missing or unreadable
            NoAuthenticationAvailable: If no key, password or default key exists
        """
        if record.private_key_path:
            key_path = expand_home(record.private_key_path, self._home)
            if not is_readable_file(key_path):
                raise KeyNotFound(f"Private key not found: {key_path}")
            return Credential.from_key(key_path)

        if record.password:
            return Credential.from_password(record.password)

        for key_path in self.default_key_paths():
            if key_path.exists():
                logger.debug(f"Using default key {key_path} for '{record.name}'")
                return Credential.from_key(str(key_path))

        raise NoAuthenticationAvailable(
            f"No authentication method available for '{record.name}'. "
            "Provide private_key_path or password."
        )
