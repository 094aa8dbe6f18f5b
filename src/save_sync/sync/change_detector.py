"""Classification of drift between a tracked manifest and the live filesystem."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Union

from ..errors import ensure_utf8
from .crawler import save_entries
from .hasher import ContentHasher

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """How a path differs from its tracked state."""
    NEW = "new"
    UPDATED = "updated"
    MISSING = "missing"


@dataclass(frozen=True)
class ChangeRecord:
    """One classified difference, valid for a single diff-and-apply cycle."""
    kind: ChangeKind
    path: Path

    def describe(self) -> str:
        labels = {
            ChangeKind.NEW: "New",
            ChangeKind.UPDATED: "Updated",
            ChangeKind.MISSING: "Missing",
        }
        return f"{labels[self.kind]}: {self.path}"


class ChangeDetector:
    """Diff tracked ``path -> digest`` entries against a live directory."""

    def __init__(self, hasher: ContentHasher):
        self.hasher = hasher

    def diff(self, tracked: Mapping[str, bytes], live_root: Union[str, Path]) -> List[ChangeRecord]:
        """Classify every difference between ``tracked`` and ``live_root``.

        Missing entries are decided by membership in the regular files of the
        crawl, so a tracked file replaced by a directory of the same name is
        reported missing. Directories are not tracked and never produce records
        of their own.

        Args:
            tracked: Tracked file paths mapped to their digest at last backup
            live_root: Root of the save on disk

        Returns:
            All MISSING records, followed by NEW and UPDATED records

        Raises:
            IOFailureError: A tracked file could not be rehashed
            InvalidPathError: A live path is not UTF-8 representable
        """
        live_files = [path for path in save_entries(live_root) if path.is_file()]
        live_paths = {str(path) for path in live_files}
        changes: List[ChangeRecord] = []

        for file_path in tracked:
            if file_path not in live_paths:
                changes.append(ChangeRecord(ChangeKind.MISSING, Path(file_path)))

        for path in live_files:
            expected = tracked.get(ensure_utf8(path))
            if expected is None:
                changes.append(ChangeRecord(ChangeKind.NEW, path))
                continue

            if self.hasher.hash_file(path) != bytes(expected):
                changes.append(ChangeRecord(ChangeKind.UPDATED, path))

        logger.debug(f"Detected {len(changes)} changes under {live_root}")
        return changes
