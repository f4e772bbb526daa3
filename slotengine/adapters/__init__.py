"""
Adapters layer - External sources of busy time.
"""

from .json_busy_source import JsonBusySource

__all__ = ["JsonBusySource"]
