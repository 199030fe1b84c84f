"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as configuration and mod records.
"""

from .config import PluginConfig
from .mods import CacheEntry, ModItem, ModStats, Notification, WatchEntry

__all__ = [
    "CacheEntry",
    "ModItem",
    "ModStats",
    "Notification",
    "PluginConfig",
    "WatchEntry",
]
