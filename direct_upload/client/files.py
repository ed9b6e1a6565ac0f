"""
Local files as seen by the upload client.
"""
import asyncio
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from direct_upload.schemas.upload import FileDescriptor
from direct_upload.services.hasher import CHUNK_SIZE, compute_sha256, hash_file

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ClientFile:
    """
    A file on disk or in memory, with the metadata the server will see.

    Use ``from_path`` or ``from_bytes`` rather than the constructor.
    """
    name: str
    size: int
    mime_type: str
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "ClientFile":
        """
        Raises:
            OSError: If the file does not exist or cannot be stat'ed
        """
        path = Path(path)
        size = os.stat(path).st_size
        return cls(
            name=path.name,
            size=size,
            mime_type=mime_type or guess_mime_type(path.name),
            path=path,
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: Optional[str] = None) -> "ClientFile":
        return cls(
            name=name,
            size=len(data),
            mime_type=mime_type or guess_mime_type(name),
            data=data,
        )

    def descriptor(self) -> FileDescriptor:
        return FileDescriptor(name=self.name, size=self.size, mime_type=self.mime_type)

    async def checksum(self) -> str:
        """Hex SHA-256 of the content; files are hashed off the event loop."""
        if self.data is not None:
            return compute_sha256(self.data)
        return await hash_file(self.path)

    async def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
        if self.data is not None:
            for i in range(0, len(self.data), chunk_size):
                yield self.data[i:i + chunk_size]
            return

        with open(self.path, "rb") as f:
            while True:
                chunk = await asyncio.to_thread(f.read, chunk_size)
                if not chunk:
                    break
                yield chunk


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or DEFAULT_MIME_TYPE
