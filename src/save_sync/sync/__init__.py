"""Sync engine for backup operations."""

from .change_detector import ChangeDetector, ChangeKind, ChangeRecord
from .hasher import ContentHasher
from .save_manager import SaveManager
from .users import resolve_local_user

__all__ = [
    "ChangeDetector",
    "ChangeKind",
    "ChangeRecord",
    "ContentHasher",
    "SaveManager",
    "resolve_local_user",
]
