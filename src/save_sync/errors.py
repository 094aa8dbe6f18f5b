"""Exception hierarchy for save-sync operations."""

from pathlib import Path
from typing import Optional, Union


class SaveSyncError(Exception):
    """Base class for every error raised by save-sync."""


class NotFoundError(SaveSyncError):
    """No Save, File or User matched a query."""


class InvalidPathError(SaveSyncError):
    """A path does not exist or cannot be represented as UTF-8."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = path


class IOFailureError(SaveSyncError):
    """Opening, reading, writing, copying or removing a path failed."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = path


class ArchiveError(IOFailureError):
    """Compressing or decompressing an archive failed."""


class InconsistentStateError(SaveSyncError):
    """A query that must match at most one record matched several."""


class AmbiguousUserError(InconsistentStateError):
    """Several users exist and none matches the configured username."""


class AlreadyTrackedError(SaveSyncError):
    """A save already exists for the requested path."""


class ConfigError(SaveSyncError):
    """The configuration file is unreadable or invalid."""


class MetadataStoreError(SaveSyncError):
    """The metadata database rejected or failed a query."""


def ensure_utf8(path: Union[str, Path]) -> str:
    """Return ``path`` as a string, rejecting names that are not valid UTF-8.

    Undecodable bytes in file names surface as lone surrogates in Python
    strings, which cannot be encoded back to UTF-8.
    """
    text = str(path)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidPathError(f"{text!r} is not a UTF-8 compliant path.", path) from e
    return text
