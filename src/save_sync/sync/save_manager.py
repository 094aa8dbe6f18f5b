"""Save lifecycle orchestration: create, check, update and delete."""

import logging
import os
import shutil
import uuid as uuid_lib
from pathlib import Path
from typing import List, Optional, Union

from ..config.settings import SyncConfig
from ..errors import (
    AlreadyTrackedError,
    InconsistentStateError,
    InvalidPathError,
    IOFailureError,
    MetadataStoreError,
    NotFoundError,
    SaveSyncError,
    ensure_utf8,
)
from ..store import EditFile, EditSave, FileQuery, MetadataStore, NewFile, NewSave, Save, SaveQuery, User
from ..utils.logging import TimedOperation
from .backup_paths import derive_backup_root, map_backup_path
from .change_detector import ChangeDetector, ChangeKind, ChangeRecord
from .crawler import save_entries
from .hasher import ContentHasher

# Module logger
logger = logging.getLogger(__name__)


class SaveManager:
    """Drives every Save and File lifecycle transition.

    Filesystem and metadata steps are ordered so that an interrupted
    operation leaves at worst an orphaned backup directory, never a record
    that claims backup files which do not exist.
    """

    def __init__(self, store: MetadataStore, config: SyncConfig,
                 hasher: Optional[ContentHasher] = None):
        """Initialize save manager.

        Args:
            store: Metadata store holding saves, files and users
            config: Process configuration (data location and hash seed)
            hasher: Content hasher; built from ``config.hash_seed`` if omitted
        """
        self.store = store
        self.config = config
        self.hasher = hasher or ContentHasher(config.hash_seed)
        self.detector = ChangeDetector(self.hasher)

    def find_save(self, path: Optional[Union[str, Path]] = None,
                  friendly_name: Optional[str] = None) -> Save:
        """Look a save up by friendly name, or else by original path.

        Raises:
            NotFoundError: No save matches
        """
        if friendly_name:
            save = self.store.get_save(SaveQuery().with_friendly_name(friendly_name))
            if save is None:
                raise NotFoundError(f"There was no save labelled as \"{friendly_name}\" in the db.")
            return save

        if path is None:
            raise ValueError("find_save needs a path or a friendly name")

        save_path = os.path.abspath(path)
        save = self.store.get_save(SaveQuery().with_path(save_path))
        if save is None:
            raise NotFoundError(f"\"{save_path}\" is not a path which is stored in the database.")
        return save

    def create_save(self, root_path: Union[str, Path], owner: User,
                    friendly_name: Optional[str] = None) -> Save:
        """Back up ``root_path`` and start tracking it.

        Every entry is copied into the backup location before the Save and
        its Files are written to the metadata store.

        Args:
            root_path: Directory (or single file) to back up
            owner: User owning the new save
            friendly_name: Optional label for the save

        Returns:
            The stored save

        Raises:
            InvalidPathError: ``root_path`` does not exist or is not UTF-8
            AlreadyTrackedError: ``root_path`` is already a save
            IOFailureError: Copying or hashing failed
        """
        root = Path(os.path.abspath(root_path))
        if not root.exists():
            raise InvalidPathError(f"{root} does not exist on disk.", root)

        save_path = ensure_utf8(root)
        if self.store.get_save(SaveQuery().with_path(save_path)) is not None:
            raise AlreadyTrackedError(f"{save_path} is already tracked.")

        save_uuid = str(uuid_lib.uuid4())
        backup_root = derive_backup_root(self.config.data_location, save_uuid, root)
        backup_path = ensure_utf8(backup_root)

        with TimedOperation(logger, f"backup of {save_path}"):
            entries = save_entries(root)

            if root.is_dir():
                self._make_dirs(backup_root)
            for entry in entries:
                self._copy_to_backup(root, backup_root, entry)

            self.store.create_save(NewSave(
                save_path=save_path,
                backup_path=backup_path,
                uuid=save_uuid,
                user_id=owner.id,
                friendly_name=friendly_name or None,
            ))
            save = self.store.get_save(SaveQuery().with_uuid(save_uuid))
            if save is None:
                raise MetadataStoreError(f"Unable to query {save_path} from db.")

            tracked = 0
            for entry in entries:
                # Directories are copied but have no File record
                if entry.is_file():
                    self._track_file(save, root, backup_root, entry)
                    tracked += 1

        logger.info(f"Created save {save.uuid} for {save_path} with {tracked} files")
        return save

    def check_save(self, save: Save) -> List[ChangeRecord]:
        """Report drift between the save's tracked files and its live tree.

        Raises:
            SaveSyncError: The tracked file list could not be loaded
        """
        try:
            files = self.store.get_files(FileQuery().with_save_id(save.id)) or []
        except MetadataStoreError as e:
            raise SaveSyncError(f"Unable to load the files tracked for {save.display_name}: {e}") from e

        if not os.path.exists(save.save_path):
            logger.warning(f"{save.save_path} no longer exists, every tracked file will be reported missing")

        tracked = {file.file_path: file.file_hash for file in files}
        return self.detector.diff(tracked, save.save_path)

    def update_save(self, save: Save) -> Optional[str]:
        """Apply the save's drift to its backup and tracked files.

        The first failing entry aborts the whole update.

        Returns:
            ``None`` when nothing changed, otherwise one changelog line per change
        """
        changes = self.check_save(save)
        if not changes:
            logger.info(f"{save.display_name} is up to date")
            return None

        root = Path(save.save_path)
        backup_root = Path(save.backup_path)
        changelog: List[str] = []

        with TimedOperation(logger, f"update of {save.display_name}"):
            for change in changes:
                if change.kind is ChangeKind.MISSING:
                    self.store.delete_file(FileQuery().with_path(change.path).with_save_id(save.id))
                    self._remove_backup_file(root, backup_root, change.path)
                    changelog.append(f"Missing (deleted from backup): {change.path}")
                elif change.kind is ChangeKind.NEW:
                    self._copy_to_backup(root, backup_root, change.path)
                    self._track_file(save, root, backup_root, change.path)
                    changelog.append(f"New: {change.path}")
                else:
                    destination = self._copy_to_backup(root, backup_root, change.path)
                    self._retrack_file(save, change.path, destination)
                    changelog.append(f"Updated: {change.path}")

        return "\n".join(changelog)

    def delete_save(self, save: Save) -> None:
        """Stop tracking ``save`` and remove its backup directory.

        File rows go first, then the Save row, and the backup tree is only
        removed once both metadata deletions succeeded.
        """
        uuid_dir = Path(save.backup_path).parent
        if uuid_dir.name != save.uuid:
            raise InconsistentStateError(
                f"Backup path {save.backup_path} is not inside a directory named {save.uuid}"
            )

        with TimedOperation(logger, f"deletion of {save.display_name}"):
            self.store.delete_files(FileQuery().with_save_id(save.id))
            self.store.delete_save(SaveQuery().with_id(save.id))

            try:
                shutil.rmtree(uuid_dir)
            except FileNotFoundError:
                logger.warning(f"Backup directory {uuid_dir} was already gone")
            except OSError as e:
                raise IOFailureError(f"Unable to remove backup directory {uuid_dir}: {e}", uuid_dir) from e

    def rename_save(self, save: Save, friendly_name: str) -> Save:
        """Change the friendly name of ``save``."""
        self.store.update_save(EditSave(id=save.id, friendly_name=friendly_name))
        renamed = self.store.get_save(SaveQuery().with_id(save.id))
        if renamed is None:
            raise NotFoundError(f"Save {save.id} disappeared while renaming it")
        return renamed

    def _track_file(self, save: Save, root: Path, backup_root: Path, path: Path) -> None:
        # The digest describes the backup copy, which is what was actually saved
        destination = map_backup_path(path, backup_root, save_root=root)
        self.store.create_file(NewFile(
            file_path=ensure_utf8(path),
            file_hash=self.hasher.hash_file(destination),
            save_id=save.id,
        ))

    def _retrack_file(self, save: Save, path: Path, destination: Path) -> None:
        file_path = ensure_utf8(path)
        tracked = self.store.get_file(FileQuery().with_path(file_path).with_save_id(save.id))
        if tracked is None:
            raise NotFoundError(f"Unable to retrieve file with path {file_path} from the database.")
        self.store.update_file(EditFile(id=tracked.id, file_hash=self.hasher.hash_file(destination)))

    def _copy_to_backup(self, root: Path, backup_root: Path, path: Path) -> Path:
        destination = map_backup_path(path, backup_root, save_root=root)

        if path.is_dir():
            self._make_dirs(destination)
            return destination

        self._make_dirs(destination.parent)
        if destination.is_dir():
            # A directory in the backup was replaced by a file in the save
            self._remove_backup_tree(destination)
        try:
            shutil.copy2(path, destination)
        except OSError as e:
            raise IOFailureError(f"Unable to copy {path} to {destination}: {e}", path) from e

        logger.debug(f"Copied {path} -> {destination}")
        return destination

    def _remove_backup_file(self, root: Path, backup_root: Path, path: Path) -> None:
        destination = map_backup_path(path, backup_root, save_root=root)
        try:
            destination.unlink()
        except FileNotFoundError:
            logger.warning(f"Backup copy {destination} was already gone")
            return
        except OSError as e:
            raise IOFailureError(f"Unable to remove backup copy {destination}: {e}", destination) from e
        logger.debug(f"Removed {destination}")

    @staticmethod
    def _remove_backup_tree(path: Path) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise IOFailureError(f"Unable to remove stale backup directory {path}: {e}", path) from e
        logger.debug(f"Removed stale directory {path}")

    @staticmethod
    def _make_dirs(path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"Unable to create directory {path}: {e}", path) from e
