"""Single-file export and import of backups using tar and zstd."""

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Union

import zstandard as zstd

from .errors import ArchiveError

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 3


class Archive:
    """Compress a directory or file into one container and back.

    Both kinds are written as a zstd-compressed tar whose first member is
    the source itself, named after it. A directory member is unpacked as a
    tree; a regular file member is restored as the target file.
    """

    @classmethod
    def compress(cls, source: Union[str, Path], target: Union[str, Path]) -> None:
        source = Path(source)
        if source.is_dir():
            cls.compress_directory(source, target)
        else:
            cls.compress_file(source, target)

    @classmethod
    def decompress(cls, source: Union[str, Path], target: Union[str, Path]) -> None:
        """Reverse :meth:`compress`.

        A directory archive is unpacked into the directory ``target``; a
        file archive is written to the file ``target``.
        """
        if cls.first_member(source).isdir():
            cls.decompress_archive(source, target)
        else:
            cls.decompress_file(source, target)

    @staticmethod
    def _write_tar(source: Path, target: Path) -> None:
        if not source.name:
            raise ArchiveError(f"Unable to determine the name of {source}", source)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            cctx = zstd.ZstdCompressor(level=COMPRESSION_LEVEL)
            with open(target, 'wb') as f:
                with cctx.stream_writer(f, closefd=False) as compressor:
                    with tarfile.open(fileobj=compressor, mode="w|") as tar:
                        tar.add(source, arcname=source.name)
        except (OSError, tarfile.TarError, zstd.ZstdError) as e:
            raise ArchiveError(f"Failed to compress {source} into {target}: {e}", source) from e

    @classmethod
    def compress_directory(cls, source: Union[str, Path], target: Union[str, Path]) -> None:
        source = Path(source)
        target = Path(target)
        if not source.is_dir():
            raise ArchiveError(f"{source} is not a directory", source)

        cls._write_tar(source, target)
        logger.info(f"Compressed directory {source} -> {target}")

    @classmethod
    def compress_file(cls, source: Union[str, Path], target: Union[str, Path]) -> None:
        source = Path(source)
        target = Path(target)
        if not source.is_file():
            raise ArchiveError(f"{source} is not a regular file", source)

        cls._write_tar(source, target)
        logger.info(f"Compressed file {source} -> {target}")

    @staticmethod
    def first_member(source: Union[str, Path]) -> tarfile.TarInfo:
        """Read the header of the member describing the archived source.

        Raises:
            ArchiveError: ``source`` is unreadable, corrupt or empty
        """
        try:
            dctx = zstd.ZstdDecompressor()
            with open(source, 'rb') as f:
                with dctx.stream_reader(f) as reader:
                    with tarfile.open(fileobj=reader, mode="r|") as tar:
                        member = tar.next()
        except (OSError, tarfile.TarError, zstd.ZstdError) as e:
            raise ArchiveError(f"Failed to read {source}: {e}", source) from e

        if member is None:
            raise ArchiveError(f"{source} contains no members", source)
        return member

    @staticmethod
    def decompress_archive(source: Union[str, Path], target: Union[str, Path]) -> None:
        source = Path(source)
        target = Path(target)

        try:
            target.mkdir(parents=True, exist_ok=True)
            dctx = zstd.ZstdDecompressor()
            with open(source, 'rb') as f:
                with dctx.stream_reader(f) as reader:
                    with tarfile.open(fileobj=reader, mode="r|") as tar:
                        # "data" rejects absolute paths and members escaping target
                        tar.extractall(target, filter="data")
        except (OSError, tarfile.TarError, zstd.ZstdError) as e:
            raise ArchiveError(f"Failed to decompress {source} into {target}: {e}", source) from e

        logger.info(f"Decompressed archive {source} -> {target}")

    @staticmethod
    def decompress_file(source: Union[str, Path], target: Union[str, Path]) -> None:
        source = Path(source)
        target = Path(target)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            dctx = zstd.ZstdDecompressor()
            with open(source, 'rb') as f:
                with dctx.stream_reader(f) as reader:
                    with tarfile.open(fileobj=reader, mode="r|") as tar:
                        member = tar.next()
                        if member is None or not member.isfile():
                            raise ArchiveError(f"{source} does not hold a single file", source)
                        with tar.extractfile(member) as src, open(target, 'wb') as dst:
                            shutil.copyfileobj(src, dst)
        except (OSError, tarfile.TarError, zstd.ZstdError) as e:
            raise ArchiveError(f"Failed to decompress {source} into {target}: {e}", source) from e

        logger.info(f"Decompressed file {source} -> {target}")
