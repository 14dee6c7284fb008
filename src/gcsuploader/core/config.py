"""Upload configuration.

This module defines the configuration shared by the upload driver and the
command-line interface.
"""

from __future__ import annotations

from dataclasses import dataclass

from gcsuploader.core.types import UsageError

# 256 KiB is the granularity resumable endpoints expect for non-final chunks.
CHUNK_GRANULARITY = 256 * 1024
DEFAULT_CHUNK_SIZE = CHUNK_GRANULARITY * 4 * 100  # 100 MiB

DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_DELAY = 5.0  # seconds


@dataclass
class UploadConfig:
    """Configuration for one resumable upload.

    Attributes:
        session_uri: Pre-obtained resumable upload session URI.
        chunk_size: Number of bytes sent per request.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
        max_retries: Consecutive failures tolerated before giving up.
        retry_delay: Seconds to wait before each retry.
    """

    session_uri: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    timeout: float = 30.0
    verify_ssl: bool = True
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        """Validate values."""
        if not self.session_uri or not self.session_uri.startswith(
            ("http://", "https://")
        ):
            raise UsageError(f"Invalid session URI: {self.session_uri!r}")
        if self.chunk_size <= 0:
            raise UsageError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.max_retries < 0:
            raise UsageError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise UsageError(f"retry_delay must be >= 0, got {self.retry_delay}")

    @property
    def is_secure(self) -> bool:
        """Check if the session URI uses HTTPS.

        Returns:
            True if the upload goes over HTTPS.
        """
        return self.session_uri.startswith("https://")
