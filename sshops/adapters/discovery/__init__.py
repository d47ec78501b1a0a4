"""
Connection discovery providers
"""
from .binarylane import BinaryLaneDiscovery

__all__ = ["BinaryLaneDiscovery"]
