"""
Storage Layer.

This package handles all data persistence: the configuration file, the
key/value store and the codecs for the collections kept in it.
"""

from .config_manager import ConfigManager
from .store import JsonFileStore, MemoryStore, PersistentStore

__all__ = ["ConfigManager", "JsonFileStore", "MemoryStore", "PersistentStore"]
