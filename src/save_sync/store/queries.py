"""Query builders used to select saves, files and users."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass
class SaveQuery:
    """Selects saves by id, friendly name, uuid, path or owning user.

    Single-record lookups use the first predicate that is set, in that order.
    """
    id: Optional[int] = None
    friendly_name: Optional[str] = None
    uuid: Optional[str] = None
    path: Optional[str] = None
    user_id: Optional[int] = None

    def with_id(self, id: int) -> "SaveQuery":
        self.id = id
        return self

    def with_friendly_name(self, name: str) -> "SaveQuery":
        self.friendly_name = name
        return self

    def with_uuid(self, uuid: str) -> "SaveQuery":
        self.uuid = uuid
        return self

    def with_path(self, path: Union[str, Path]) -> "SaveQuery":
        self.path = str(path)
        return self

    def with_user_id(self, id: int) -> "SaveQuery":
        self.user_id = id
        return self


@dataclass
class FileQuery:
    """Selects tracked files by id, path, digest or owning save.

    ``save_id`` scopes path and digest lookups to one save.
    """
    id: Optional[int] = None
    path: Optional[str] = None
    hash: Optional[bytes] = None
    save_id: Optional[int] = None

    def with_id(self, id: int) -> "FileQuery":
        self.id = id
        return self

    def with_path(self, path: Union[str, Path]) -> "FileQuery":
        self.path = str(path)
        return self

    def with_hash(self, hash: bytes) -> "FileQuery":
        self.hash = bytes(hash)
        return self

    def with_save_id(self, save_id: int) -> "FileQuery":
        self.save_id = save_id
        return self


@dataclass
class UserQuery:
    id: Optional[int] = None
    username: Optional[str] = None

    def with_id(self, id: int) -> "UserQuery":
        self.id = id
        return self

    def with_username(self, name: str) -> "UserQuery":
        self.username = name
        return self
