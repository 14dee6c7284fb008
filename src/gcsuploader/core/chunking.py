"""Fixed-size chunking of a byte source.

This module provides:
- ByteSource: Protocol for anything that can serve byte ranges
- FileSource / BytesSource: Local file and in-memory implementations
- Chunk: A slice of data read from a source
- ChunkSource: Sequential chunk reader driven by the upload loop
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from gcsuploader.core.config import DEFAULT_CHUNK_SIZE
from gcsuploader.core.types import PROBE_OFFSET, ChunkReadError, UsageError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@runtime_checkable
class ByteSource(Protocol):
    """Anything that can serve byte ranges of a fixed-size payload."""

    @property
    def size(self) -> int:
        """Total payload size in bytes."""
        ...

    @property
    def content_type(self) -> str:
        """MIME type of the payload."""
        ...

    def read(self, offset: int, limit: int) -> tuple[bytes, int]:
        """Read bytes [offset, limit).

        Returns:
            Tuple of (data, number of bytes actually read).

        Raises:
            ChunkReadError: If the range cannot be read.
        """
        ...


class FileSource:
    """Byte source backed by a local file."""

    def __init__(self, path: Path | str, content_type: str | None = None) -> None:
        """Initialize the file source.

        Args:
            path: Path to the file to upload.
            content_type: MIME type, guessed from the file name if omitted.

        Raises:
            UsageError: If the path is not a regular file.
        """
        self._path = Path(path)
        if not self._path.is_file():
            raise UsageError(f"File not found: {self._path}")
        self._size = self._path.stat().st_size
        if content_type is None:
            content_type, _ = mimetypes.guess_type(self._path.name)
        self._content_type = content_type or DEFAULT_CONTENT_TYPE

    @property
    def path(self) -> Path:
        return self._path

    @property
    def size(self) -> int:
        return self._size

    @property
    def content_type(self) -> str:
        return self._content_type

    def read(self, offset: int, limit: int) -> tuple[bytes, int]:
        try:
            with self._path.open("rb") as f:
                f.seek(offset)
                data = f.read(max(limit - offset, 0))
        except OSError as e:
            raise ChunkReadError(
                f"Cannot read {self._path} at offset {offset}: {e}", offset
            ) from e
        return data, len(data)


class BytesSource:
    """Byte source backed by an in-memory buffer."""

    def __init__(
        self, data: bytes, content_type: str = DEFAULT_CONTENT_TYPE
    ) -> None:
        self._data = bytes(data)
        self._content_type = content_type

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def content_type(self) -> str:
        return self._content_type

    def read(self, offset: int, limit: int) -> tuple[bytes, int]:
        if offset < 0 or offset > len(self._data):
            raise ChunkReadError(
                f"Offset {offset} outside buffer of {len(self._data)} bytes", offset
            )
        data = self._data[offset:limit]
        return data, len(data)


@dataclass
class Chunk:
    """Represents a chunk of data read from a byte source."""

    offset: int
    data: bytes

    @property
    def size(self) -> int:
        """Return the size of this chunk in bytes."""
        return len(self.data)

    @property
    def end(self) -> int:
        """Return the offset of the last byte in this chunk."""
        return self.offset + self.size - 1


class ChunkSource:
    """Produces sequential, non-overlapping chunks from a byte source.

    Each call to next() is independent: there is no queue and no prefetch,
    the caller controls pacing entirely.
    """

    def __init__(self, source: ByteSource, chunk_size: int | None = None) -> None:
        """Initialize the chunk source.

        Args:
            source: Byte source to read from.
            chunk_size: Bytes per chunk (default 100 MiB).

        Raises:
            UsageError: If source is missing or chunk_size is not positive.
        """
        if source is None:
            raise UsageError("Missing mandatory byte source")
        if chunk_size is None:
            chunk_size = DEFAULT_CHUNK_SIZE
        if chunk_size <= 0:
            raise UsageError(f"Chunk size must be positive, got {chunk_size}")

        self._source = source
        self._chunk_size = chunk_size
        self._cursor = 0

    @property
    def source(self) -> ByteSource:
        return self._source

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def cursor(self) -> int:
        """Offset of the next unread byte."""
        return self._cursor

    @property
    def total_size(self) -> int:
        return self._source.size

    async def next(self, offset: int | str | None = None) -> Chunk | None:
        """Read the next chunk.

        Args:
            offset: First byte to read. None reads from the cursor;
                PROBE_OFFSET returns None without touching the source.

        Returns:
            The chunk read, or None for a probe.

        Raises:
            ChunkReadError: If the source cannot produce the range.
        """
        if offset == PROBE_OFFSET:
            return None

        read_offset = self._cursor if offset is None else int(offset)
        total = self._source.size
        if read_offset < 0 or read_offset > total:
            raise ChunkReadError(
                f"Offset {read_offset} outside source of {total} bytes", read_offset
            )
        limit = min(read_offset + self._chunk_size, total)

        data, bytes_read = await asyncio.to_thread(
            self._source.read, read_offset, limit
        )
        self._cursor = read_offset + bytes_read
        logger.debug(f"Read {bytes_read} bytes at offset {read_offset}")
        return Chunk(offset=read_offset, data=data[:bytes_read])
