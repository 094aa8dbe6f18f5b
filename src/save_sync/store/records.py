"""Insert and edit payloads accepted by the metadata store."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form stored in SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class NewSave:
    save_path: str
    backup_path: str
    uuid: str
    user_id: int
    friendly_name: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)


@dataclass
class EditSave:
    """Partial edit of a save; ``None`` fields are left untouched."""
    id: int
    friendly_name: Optional[str] = None
    save_path: Optional[str] = None
    modified_at: datetime = field(default_factory=utc_now)


@dataclass
class NewFile:
    file_path: str
    file_hash: bytes
    save_id: int
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)


@dataclass
class EditFile:
    id: int
    file_hash: bytes
    modified_at: datetime = field(default_factory=utc_now)


@dataclass
class NewUser:
    username: str
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)


@dataclass
class EditUser:
    id: int
    username: Optional[str] = None
    modified_at: datetime = field(default_factory=utc_now)
