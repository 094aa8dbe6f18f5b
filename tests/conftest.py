"""Shared test fixtures for save-sync."""

import os
import sys
from pathlib import Path

import pytest

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from save_sync.config.settings import SyncConfig
from save_sync.store import MetadataStore, NewUser, UserQuery
from save_sync.sync.hasher import ContentHasher
from save_sync.sync.save_manager import SaveManager

TEST_SEED = 1337


@pytest.fixture
def config(tmp_path: Path) -> SyncConfig:
    data_location = tmp_path / "data"
    return SyncConfig(
        data_location=data_location,
        db_location=data_location / "saves.db",
        xxhash_seed=TEST_SEED,
        local_username="tester",
    )


@pytest.fixture
def store(config: SyncConfig):
    store = MetadataStore(config.db_location)
    yield store
    store.close()


@pytest.fixture
def user(store: MetadataStore):
    store.create_user(NewUser(username="tester"))
    return store.get_user(UserQuery().with_username("tester"))


@pytest.fixture
def hasher() -> ContentHasher:
    return ContentHasher(TEST_SEED)


@pytest.fixture
def manager(store: MetadataStore, config: SyncConfig) -> SaveManager:
    return SaveManager(store, config)


@pytest.fixture
def game_dir(tmp_path: Path) -> Path:
    """A save directory holding one file of 32 random bytes."""
    root = tmp_path / "live" / "game"
    root.mkdir(parents=True)
    (root / "save1.dat").write_bytes(os.urandom(32))
    return root
