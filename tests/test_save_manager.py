"""End-to-end tests for the save lifecycle."""

import os
from pathlib import Path

import pytest

from save_sync.errors import (
    AlreadyTrackedError,
    InvalidPathError,
    IOFailureError,
    MetadataStoreError,
    NotFoundError,
    SaveSyncError,
)
from save_sync.store import FileQuery, SaveQuery
from save_sync.sync.change_detector import ChangeKind, ChangeRecord


def _tracked_files(store, save):
    return {f.file_path: f for f in store.get_files(FileQuery().with_save_id(save.id)) or []}


def test_create_backs_up_and_tracks(manager, store, user, config, game_dir, hasher):
    save = manager.create_save(game_dir, user)

    saves = store.get_all_saves()
    assert [s.id for s in saves] == [save.id]
    assert save.save_path == str(game_dir)
    assert save.friendly_name is None
    assert save.user_id == user.id
    assert Path(save.backup_path) == config.data_location / save.uuid / "game"

    live_file = game_dir / "save1.dat"
    files = _tracked_files(store, save)
    assert list(files) == [str(live_file)]
    assert files[str(live_file)].file_hash == hasher.hash_file(live_file)

    backup_copy = Path(save.backup_path) / "save1.dat"
    assert backup_copy.read_bytes() == live_file.read_bytes()


def test_create_copies_nested_and_empty_directories(manager, store, user, game_dir):
    (game_dir / "slots" / "auto").mkdir(parents=True)
    (game_dir / "slots" / "auto" / "a.sav").write_bytes(b"auto")
    (game_dir / "empty").mkdir()

    save = manager.create_save(game_dir, user, "My Game")

    backup = Path(save.backup_path)
    assert (backup / "slots" / "auto" / "a.sav").read_bytes() == b"auto"
    assert (backup / "empty").is_dir()
    assert save.friendly_name == "My Game"
    # directories are copied but only regular files are tracked
    assert set(_tracked_files(store, save)) == {
        str(game_dir / "save1.dat"),
        str(game_dir / "slots" / "auto" / "a.sav"),
    }


def test_create_empty_directory_makes_backup_root(manager, user, tmp_path):
    root = tmp_path / "blank"
    root.mkdir()

    save = manager.create_save(root, user)

    assert Path(save.backup_path).is_dir()
    assert manager.check_save(save) == []


def test_create_single_file_save(manager, store, user, game_dir):
    live_file = game_dir / "save1.dat"

    save = manager.create_save(live_file, user)

    assert Path(save.backup_path).read_bytes() == live_file.read_bytes()
    assert list(_tracked_files(store, save)) == [str(live_file)]

    live_file.write_bytes(b"changed")
    assert manager.update_save(save) == f"Updated: {live_file}"
    assert Path(save.backup_path).read_bytes() == b"changed"


def test_create_missing_path_fails(manager, store, user, tmp_path):
    with pytest.raises(InvalidPathError, match="does not exist"):
        manager.create_save(tmp_path / "missing", user)

    assert store.get_all_saves() == []


def test_create_twice_fails(manager, user, game_dir):
    manager.create_save(game_dir, user)

    with pytest.raises(AlreadyTrackedError):
        manager.create_save(game_dir, user)


def test_failed_copy_writes_no_metadata(manager, store, user, config, game_dir, monkeypatch):
    (game_dir / "second.dat").write_bytes(b"2")
    calls = []

    def failing_copy(src, dst, *args, **kwargs):
        calls.append(src)
        if len(calls) == 2:
            raise OSError("disk full")
        return dst

    monkeypatch.setattr("save_sync.sync.save_manager.shutil.copy2", failing_copy)

    with pytest.raises(IOFailureError, match="disk full"):
        manager.create_save(game_dir, user)

    assert store.get_all_saves() == []
    assert store.get_all_files() == []


def test_check_detects_update(manager, user, game_dir):
    save = manager.create_save(game_dir, user)
    live_file = game_dir / "save1.dat"

    live_file.write_bytes(os.urandom(48))

    assert manager.check_save(save) == [ChangeRecord(ChangeKind.UPDATED, live_file)]


def test_update_refreshes_digest_and_backup(manager, store, user, game_dir, hasher):
    save = manager.create_save(game_dir, user)
    live_file = game_dir / "save1.dat"
    live_file.write_bytes(os.urandom(48))

    changelog = manager.update_save(save)

    assert changelog == f"Updated: {live_file}"
    tracked = _tracked_files(store, save)[str(live_file)]
    assert tracked.file_hash == hasher.hash_file(live_file)
    assert (Path(save.backup_path) / "save1.dat").read_bytes() == live_file.read_bytes()
    assert manager.check_save(save) == []


def test_update_without_changes_returns_none(manager, user, game_dir):
    save = manager.create_save(game_dir, user)

    assert manager.update_save(save) is None


def test_update_applies_new_and_missing(manager, store, user, game_dir):
    save = manager.create_save(game_dir, user)
    old_file = game_dir / "save1.dat"
    new_file = game_dir / "slots" / "save2.dat"
    old_file.unlink()
    new_file.parent.mkdir()
    new_file.write_bytes(b"fresh")

    changelog = manager.update_save(save)

    assert changelog.splitlines() == [
        f"Missing (deleted from backup): {old_file}",
        f"New: {new_file}",
    ]
    backup = Path(save.backup_path)
    assert not (backup / "save1.dat").exists()
    assert (backup / "slots" / "save2.dat").read_bytes() == b"fresh"
    assert list(_tracked_files(store, save)) == [str(new_file)]


def test_update_file_replaced_by_directory(manager, store, user, game_dir):
    save = manager.create_save(game_dir, user)
    old_file = game_dir / "save1.dat"
    old_file.unlink()
    old_file.mkdir()
    (old_file / "slot.dat").write_bytes(b"slot")

    assert manager.check_save(save) == [
        ChangeRecord(ChangeKind.MISSING, old_file),
        ChangeRecord(ChangeKind.NEW, old_file / "slot.dat"),
    ]

    manager.update_save(save)

    backup = Path(save.backup_path)
    assert (backup / "save1.dat" / "slot.dat").read_bytes() == b"slot"
    assert list(_tracked_files(store, save)) == [str(old_file / "slot.dat")]
    assert manager.update_save(save) is None


def test_update_directory_replaced_by_file(manager, store, user, game_dir):
    nested = game_dir / "slots"
    nested.mkdir()
    (nested / "save2.dat").write_bytes(b"nested")
    save = manager.create_save(game_dir, user)

    (nested / "save2.dat").unlink()
    nested.rmdir()
    nested.write_bytes(b"flat")

    manager.update_save(save)

    backup = Path(save.backup_path)
    assert (backup / "slots").read_bytes() == b"flat"
    assert str(nested) in _tracked_files(store, save)
    assert manager.update_save(save) is None


def test_update_tolerates_backup_copy_already_gone(manager, store, user, game_dir):
    save = manager.create_save(game_dir, user)
    (game_dir / "save1.dat").unlink()
    (Path(save.backup_path) / "save1.dat").unlink()

    changelog = manager.update_save(save)

    assert changelog == f"Missing (deleted from backup): {game_dir / 'save1.dat'}"
    assert _tracked_files(store, save) == {}


def test_update_aborts_on_first_failure(manager, store, user, game_dir, monkeypatch):
    save = manager.create_save(game_dir, user)
    (game_dir / "new.dat").write_bytes(b"new")

    def failing_copy(src, dst, *args, **kwargs):
        raise OSError("read-only backup")

    monkeypatch.setattr("save_sync.sync.save_manager.shutil.copy2", failing_copy)

    with pytest.raises(IOFailureError):
        manager.update_save(save)

    assert str(game_dir / "new.dat") not in _tracked_files(store, save)


def test_check_surfaces_store_failure(manager, store, user, game_dir, monkeypatch):
    save = manager.create_save(game_dir, user)

    def broken(query):
        raise MetadataStoreError("database is locked")

    monkeypatch.setattr(store, "get_files", broken)

    with pytest.raises(SaveSyncError, match="Unable to load the files tracked"):
        manager.check_save(save)


def test_delete_removes_rows_then_backup(manager, store, user, config, game_dir):
    save = manager.create_save(game_dir, user)
    uuid_dir = config.data_location / save.uuid
    assert uuid_dir.is_dir()

    manager.delete_save(save)

    assert store.get_files(FileQuery().with_save_id(save.id)) is None
    assert store.get_save(SaveQuery().with_id(save.id)) is None
    assert not uuid_dir.exists()
    assert game_dir.joinpath("save1.dat").exists()


def test_delete_failure_after_file_rows_keeps_save_and_backup(manager, store, user, game_dir, monkeypatch):
    save = manager.create_save(game_dir, user)
    backup_copy = Path(save.backup_path) / "save1.dat"

    def failing_delete(query):
        raise MetadataStoreError("simulated crash")

    monkeypatch.setattr(store, "delete_save", failing_delete)

    with pytest.raises(MetadataStoreError):
        manager.delete_save(save)

    assert store.get_files(FileQuery().with_save_id(save.id)) is None
    assert store.get_save(SaveQuery().with_id(save.id)) is not None
    assert backup_copy.exists()


def test_find_save(manager, user, game_dir):
    save = manager.create_save(game_dir, user, "game1")

    assert manager.find_save(friendly_name="game1").id == save.id
    assert manager.find_save(path=game_dir).id == save.id

    with pytest.raises(NotFoundError):
        manager.find_save(friendly_name="other")
    with pytest.raises(NotFoundError):
        manager.find_save(path=game_dir.parent)


def test_rename_save(manager, user, game_dir):
    save = manager.create_save(game_dir, user)

    renamed = manager.rename_save(save, "favourite")

    assert renamed.friendly_name == "favourite"
    assert renamed.backup_path == save.backup_path
