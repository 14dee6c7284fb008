"""Upload entry point.

run() builds the chunk reader and the session for a file and starts the
transfer loop, returning the session immediately so callers can attach
listeners and use the controls while the upload is in flight.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from gcsuploader.client.api import HTTPTransport, Transport
from gcsuploader.client.retry import RetryPolicy, Sleep
from gcsuploader.client.session import UploadSession
from gcsuploader.core.chunking import ByteSource, BytesSource, ChunkSource, FileSource
from gcsuploader.core.config import DEFAULT_CHUNK_SIZE, UploadConfig
from gcsuploader.core.types import UsageError

logger = logging.getLogger(__name__)


def open_source(file: ByteSource | Path | str | bytes) -> ByteSource:
    """Wrap a path or buffer into a byte source.

    Raises:
        UsageError: If no file is given or the path does not exist.
    """
    if file is None or (isinstance(file, str) and not file):
        raise UsageError("You need to provide a file to upload")
    if isinstance(file, (bytes, bytearray, memoryview)):
        return BytesSource(bytes(file))
    if isinstance(file, (str, Path)):
        return FileSource(file)
    if isinstance(file, ByteSource):
        return file
    raise UsageError(f"Unsupported file type: {type(file).__name__}")


def start_upload(
    file: ByteSource | Path | str | bytes,
    config: UploadConfig,
    transport: Transport | None = None,
    sleep: Sleep | None = None,
) -> UploadSession:
    """Start uploading a file as described by config.

    Must be called from a running event loop.

    Args:
        file: Byte source, path or in-memory buffer to upload.
        config: Upload configuration.
        transport: Transport to use (an HTTPTransport owned by the session
            is created when omitted).
        sleep: Timer used for retry backoff (asyncio.sleep by default).

    Returns:
        The started session.

    Raises:
        UsageError: If the file is missing.
    """
    source = open_source(file)

    owns_transport = transport is None
    if transport is None:
        transport = HTTPTransport(timeout=config.timeout, verify_ssl=config.verify_ssl)

    retry_policy = RetryPolicy(
        max_retries=config.max_retries,
        delay=config.retry_delay,
        sleep=sleep or asyncio.sleep,
    )

    session = UploadSession(
        ChunkSource(source, config.chunk_size),
        config.session_uri,
        transport,
        retry_policy=retry_policy,
        owns_transport=owns_transport,
    )
    session.start()
    return session


def run(
    file: ByteSource | Path | str | bytes,
    session_uri: str,
    chunk_size: int | None = None,
    *,
    transport: Transport | None = None,
    sleep: Sleep | None = None,
    **options: Any,
) -> UploadSession:
    """Upload a file to a resumable upload session.

    Usage:
        session = run("video.mp4", session_uri)
        session.set_on_progress(print)
        session.set_on_done(lambda: print("done"))
        # session.pause(); session.resume(); session.cancel()
        await session.join()

    Args:
        file: Byte source, path or in-memory buffer to upload.
        session_uri: Pre-obtained resumable upload session URI.
        chunk_size: Bytes per request (default 100 MiB).
        transport: Transport to use instead of a new HTTPTransport.
        sleep: Timer used for retry backoff.
        **options: Other UploadConfig fields (timeout, max_retries, ...).

    Returns:
        The started session.

    Raises:
        UsageError: If the file is missing or the arguments are invalid.
    """
    if file is None:
        raise UsageError("You need to provide a file to upload")
    config = UploadConfig(
        session_uri=session_uri,
        chunk_size=chunk_size or DEFAULT_CHUNK_SIZE,
        **options,
    )
    return start_upload(file, config, transport=transport, sleep=sleep)
