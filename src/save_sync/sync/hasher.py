"""Streaming content hashing used for change detection."""

import logging
import struct
from pathlib import Path
from typing import Union

import xxhash

from ..errors import IOFailureError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 0x4000


class ContentHasher:
    """Seeded XXH64 digests of file contents.

    The digest is a change detector, not a security primitive.
    """

    DIGEST_SIZE = 8

    def __init__(self, seed: int, chunk_size: int = CHUNK_SIZE):
        """Initialize content hasher.

        Args:
            seed: Unsigned 64-bit hash seed shared by the whole process
            chunk_size: Bytes read per iteration; does not affect the digest
        """
        self.seed = seed
        self.chunk_size = chunk_size

    @staticmethod
    def digest_to_bytes(value: int) -> bytes:
        """Serialize a 64-bit digest as 8 little-endian bytes."""
        return struct.pack("<Q", value)

    def hash_bytes(self, data: bytes) -> bytes:
        """Hash an in-memory buffer; equal to :meth:`hash_file` of the same bytes."""
        return self.digest_to_bytes(xxhash.xxh64_intdigest(data, seed=self.seed))

    def hash_file(self, path: Union[str, Path]) -> bytes:
        """Hash the contents of ``path``.

        Args:
            path: File to hash

        Returns:
            8-byte little-endian digest

        Raises:
            IOFailureError: The file could not be opened or read
        """
        hasher = xxhash.xxh64(seed=self.seed)

        try:
            with open(path, 'rb') as f:
                for chunk in iter(lambda: f.read(self.chunk_size), b""):
                    hasher.update(chunk)
        except OSError as e:
            raise IOFailureError(f"Failed to stream data from \"{path}\": {e}", path) from e

        digest = self.digest_to_bytes(hasher.intdigest())
        logger.debug(f"Hashed {path}: {digest.hex()}")
        return digest
