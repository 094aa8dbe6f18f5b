"""Configuration management for save-sync."""

from .settings import ConfigManager, SyncConfig

__all__ = ["ConfigManager", "SyncConfig"]
