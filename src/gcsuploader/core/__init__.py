"""Core module - Chunking, configuration, and shared types."""

from gcsuploader.core.chunking import (
    DEFAULT_CONTENT_TYPE,
    ByteSource,
    BytesSource,
    Chunk,
    ChunkSource,
    FileSource,
)
from gcsuploader.core.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    UploadConfig,
)
from gcsuploader.core.types import (
    PROBE_OFFSET,
    ChunkReadError,
    EventKind,
    InvalidRangeError,
    ProtocolError,
    TransportError,
    UploadError,
    UploadStatus,
    UsageError,
)

__all__ = [
    # Chunking
    "ByteSource",
    "BytesSource",
    "Chunk",
    "ChunkSource",
    "DEFAULT_CONTENT_TYPE",
    "FileSource",
    # Config
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "UploadConfig",
    # Types
    "ChunkReadError",
    "EventKind",
    "InvalidRangeError",
    "PROBE_OFFSET",
    "ProtocolError",
    "TransportError",
    "UploadError",
    "UploadStatus",
    "UsageError",
]
