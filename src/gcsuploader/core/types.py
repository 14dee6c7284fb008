"""Shared types for gcsuploader.

This module defines the enums and exception classes used by both the
chunk reader (core) and the upload driver (client).
"""

from __future__ import annotations

from enum import Enum

# Offset value meaning "ask the server where we left off, send no data".
PROBE_OFFSET = "*"


class UploadStatus(str, Enum):
    """Status of an upload session.

    DONE and CANCELLED are terminal: no transition leaves them.
    """

    IN_PROGRESS = "inprogress"
    PAUSED = "pause"
    CANCELLED = "cancel"
    DONE = "done"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transitions are possible."""
        return self in (UploadStatus.DONE, UploadStatus.CANCELLED)


class EventKind(str, Enum):
    """Kinds of events raised by an upload session."""

    PROGRESS = "progress"
    ERROR = "error"
    DONE = "done"
    CANCEL = "cancel"
    PAUSE = "pause"


class UploadError(Exception):
    """Base exception for upload errors."""


class UsageError(UploadError):
    """Invalid arguments supplied when starting an upload."""


class ChunkReadError(UploadError):
    """The byte source could not produce the requested range."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class TransportError(UploadError):
    """A request could not be sent or its response could not be used."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidRangeError(TransportError):
    """An incomplete (308) response carried a missing or malformed Range."""


class ProtocolError(UploadError):
    """The server answered with a status the protocol does not expect."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
