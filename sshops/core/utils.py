"""
Core utility functions
"""
import os
from pathlib import Path
from typing import Optional, Union


# ============================================================
# Path Resolution Utilities
# ============================================================

def expand_home(path: Union[str, Path], home: Optional[Path] = None) -> str:
    """
    Expand a leading ~ against the resolving user's home directory.
    
    Only the current user's ~ is expanded; "~other/..." is left untouched.
    
    Args:
        path: Path that may start with ~
        home: Home directory override (defaults to Path.home())
    
    Returns:
        Expanded path as string
    """
    raw = str(path)
    if raw == "~" or raw.startswith("~/") or raw.startswith("~" + os.sep):
        base = home if home is not None else Path.home()
        return str(base) + raw[1:]
    return raw


def is_readable_file(path: Union[str, Path]) -> bool:
    """Check that path is an existing regular file the process can read"""
    p = Path(path)
    return p.is_file() and os.access(p, os.R_OK)


def resolve_local_path(path: Union[str, Path]) -> Path:
    """Resolve local path, expand ~ and other symbols"""
    return Path(path).expanduser()
