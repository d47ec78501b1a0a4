"""
Connection registry domain
"""
from .models import (
    AppConfig,
    BinaryLaneConfig,
    ConnectionRecord,
    ConnectionSource,
    records_from_entries,
)
from .registry import ConnectionRegistry
from .service import ConnectionService

__all__ = [
    "AppConfig",
    "BinaryLaneConfig",
    "ConnectionRecord",
    "ConnectionSource",
    "records_from_entries",
    "ConnectionRegistry",
    "ConnectionService",
]
