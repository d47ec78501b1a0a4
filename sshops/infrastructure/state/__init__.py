"""
State storage implementations
"""
from .config_store import JsonConfigStore, default_config_path

__all__ = ["JsonConfigStore", "default_config_path"]
