"""
Storage Layer.

This package handles all data persistence: the configuration file and the
JSON caches of categories and catalog records.
"""

from .cache import CategoryCache, RecordCache
from .config_manager import ConfigManager

__all__ = ["CategoryCache", "ConfigManager", "RecordCache"]
