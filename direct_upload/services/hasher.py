"""
Content checksums computed on the client before any network call.

The hex digest travels with the sign request and is bound into the signed
PUT, so storage rejects bytes that do not match.
"""
import asyncio
import hashlib
from pathlib import Path
from typing import Iterable, Union

CHUNK_SIZE = 1024 * 1024


def compute_sha256(data: bytes) -> str:
    """Lowercase hex SHA-256 of ``data``."""
    return hashlib.sha256(data).hexdigest()


def compute_chunks_sha256(chunks: Iterable[bytes]) -> str:
    digest = hashlib.sha256()
    for chunk in chunks:
        digest.update(chunk)
    return digest.hexdigest()


def compute_file_sha256(path: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> str:
    """
    Lowercase hex SHA-256 of a file, read in chunks.

    Raises:
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        return compute_chunks_sha256(iter(lambda: f.read(chunk_size), b""))


async def hash_file(path: Union[str, Path], chunk_size: int = CHUNK_SIZE) -> str:
    """Hash a file in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(compute_file_sha256, path, chunk_size)
