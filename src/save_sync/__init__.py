"""
Save Sync

Backs up directory trees to a content-tracked local store, detects drift
between the tracked manifest and the live filesystem, and re-synchronizes
on demand.
"""

__version__ = "0.1.0"
__description__ = "Back up and re-synchronize directory trees to a local content-tracked store"

from .archive import Archive
from .config.settings import ConfigManager, SyncConfig
from .store.metadata_store import MetadataStore
from .sync.save_manager import SaveManager

__all__ = ["Archive", "ConfigManager", "SyncConfig", "MetadataStore", "SaveManager"]
