"""Tests for archive export and import."""

import io
import os
import tarfile

import pytest
import zstandard as zstd

from save_sync.archive import Archive
from save_sync.errors import ArchiveError


@pytest.fixture
def src_dir(tmp_path):
    root = tmp_path / "test_dir"
    (root / "sub_dir" / "deeper").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "file1.txt").write_text("This file contains some text")
    (root / "sub_dir" / "file2.txt").write_text("This file contains some different text")
    (root / "sub_dir" / "deeper" / "blob.bin").write_bytes(os.urandom(4096))
    return root


def _snapshot(root):
    return {
        path.relative_to(root).as_posix(): (path.read_bytes() if path.is_file() else None)
        for path in root.rglob("*")
    }


def test_directory_round_trip(tmp_path, src_dir):
    archive_path = tmp_path / "archive.tar.zst"
    copy_dir = tmp_path / "decompress"

    Archive.compress(src_dir, archive_path)
    Archive.decompress(archive_path, copy_dir)

    restored = copy_dir / "test_dir"
    assert _snapshot(restored) == _snapshot(src_dir)
    assert (restored / "empty").is_dir()


def test_file_round_trip(tmp_path):
    expected = os.urandom(32)
    source = tmp_path / "random.bin"
    source.write_bytes(expected)
    archive_path = tmp_path / "random.bin.zst"
    actual = tmp_path / "actual.bin"

    Archive.compress(source, archive_path)
    Archive.decompress(archive_path, actual)

    assert actual.read_bytes() == expected


def test_empty_file_round_trip(tmp_path):
    source = tmp_path / "empty.bin"
    source.write_bytes(b"")

    Archive.compress(source, tmp_path / "empty.zst")
    Archive.decompress(tmp_path / "empty.zst", tmp_path / "restored.bin")

    assert (tmp_path / "restored.bin").read_bytes() == b""


def test_first_member_describes_the_source(tmp_path, src_dir):
    Archive.compress(src_dir, tmp_path / "dir.tar.zst")
    Archive.compress(src_dir / "file1.txt", tmp_path / "file.zst")

    directory = Archive.first_member(tmp_path / "dir.tar.zst")
    single = Archive.first_member(tmp_path / "file.zst")

    assert directory.isdir() and directory.name == "test_dir"
    assert single.isfile() and single.name == "file1.txt"


def test_tar_file_round_trips_as_a_file(tmp_path, src_dir):
    mods = tmp_path / "mods.tar"
    with tarfile.open(mods, "w") as tar:
        tar.add(src_dir / "file1.txt", arcname="file1.txt")
    archive_path = tmp_path / "mods.tar.zst"
    restored = tmp_path / "restored.tar"

    Archive.compress(mods, archive_path)
    Archive.decompress(archive_path, restored)

    assert restored.is_file()
    assert restored.read_bytes() == mods.read_bytes()


def test_compressed_output_is_zstd(tmp_path, src_dir):
    archive_path = tmp_path / "dir.tar.zst"
    Archive.compress(src_dir, archive_path)

    assert archive_path.read_bytes()[:4] == b"\x28\xb5\x2f\xfd"


def test_missing_source_raises(tmp_path):
    with pytest.raises(ArchiveError):
        Archive.compress(tmp_path / "missing.bin", tmp_path / "out.zst")


def test_corrupt_archive_raises(tmp_path):
    bogus = tmp_path / "bogus.zst"
    bogus.write_bytes(b"definitely not zstd data")

    with pytest.raises(ArchiveError):
        Archive.decompress(bogus, tmp_path / "out")


def test_empty_stream_raises(tmp_path):
    empty = tmp_path / "empty.zst"
    empty.write_bytes(zstd.ZstdCompressor().compress(b""))

    with pytest.raises(ArchiveError):
        Archive.decompress(empty, tmp_path / "out")


def test_escaping_member_is_rejected(tmp_path):
    payload = b"evil"
    raw = io.BytesIO()
    with tarfile.open(fileobj=raw, mode="w") as tar:
        info = tarfile.TarInfo("../escaped.txt")
        info.size = len(payload)
        tar.addfile(info, io.BytesIO(payload))

    archive_path = tmp_path / "evil.tar.zst"
    archive_path.write_bytes(zstd.ZstdCompressor().compress(raw.getvalue()))

    with pytest.raises(ArchiveError):
        Archive.decompress_archive(archive_path, tmp_path / "target")

    assert not (tmp_path / "escaped.txt").exists()
