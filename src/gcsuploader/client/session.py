"""Upload session state machine and transfer loop.

This module provides:
- UploadSession: Owns the state of one resumable upload, exposes the
  pause/resume/cancel controls and drives the chunk exchange loop

State transitions:
    IN_PROGRESS ──pause()──► PAUSED ──resume()──► IN_PROGRESS
         │                     │
         ├──cancel()───────────┴──► CANCELLED (terminal)
         └──server complete───────► DONE (terminal)

The loop issues one request at a time. Controls are observed only between
requests: an in-flight request is never aborted, its result is discarded
when the session is no longer in progress by the time it arrives. Every
resumption (after a pause, an error or a stall) starts with a probe,
since only the server knows which bytes it persisted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from gcsuploader.client.api import Transport
from gcsuploader.client.events import EventDispatcher, Listener
from gcsuploader.client.protocol import ExchangeResult, build_headers, interpret_response
from gcsuploader.client.retry import RetryPolicy
from gcsuploader.core.chunking import ChunkSource
from gcsuploader.core.types import PROBE_OFFSET, EventKind, UploadStatus

logger = logging.getLogger(__name__)

Offset = int | str | None


class UploadSession:
    """State of one resumable upload and the loop that drives it.

    Usage:
        session = UploadSession(chunks, session_uri, transport)
        session.set_on_progress(lambda offset: print("confirmed", offset))
        session.set_on_done(lambda: print("uploaded"))
        session.start()
        await session.join()
    """

    def __init__(
        self,
        chunks: ChunkSource,
        session_uri: str,
        transport: Transport,
        retry_policy: RetryPolicy | None = None,
        content_type: str | None = None,
        owns_transport: bool = False,
    ) -> None:
        """Initialize the session.

        Args:
            chunks: Chunk reader over the file being uploaded.
            session_uri: Resumable upload session URI.
            transport: Transport used to send requests.
            retry_policy: Retry budget and backoff (default 5 retries, 5s).
            content_type: MIME type sent with data chunks (default from source).
            owns_transport: Close the transport once the upload is done or
                cancelled, or in aclose().
        """
        self._chunks = chunks
        self._session_uri = session_uri
        self._transport = transport
        self._retry = retry_policy or RetryPolicy()
        self._total_size = chunks.total_size
        self._content_type = content_type or chunks.source.content_type
        self._owns_transport = owns_transport
        self._transport_closed = False

        self._events = EventDispatcher()
        self._status = UploadStatus.IN_PROGRESS
        self._progress = 0
        self._last_error: BaseException | None = None
        self._retry_count = 0
        self._retries_exhausted = False
        self._probe_requested = False

        self._task: asyncio.Task[None] | None = None
        self._backoff: asyncio.Future[Any] | None = None

    # === State ===

    @property
    def status(self) -> UploadStatus:
        return self._status

    @property
    def total_size(self) -> int:
        return self._total_size

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def session_uri(self) -> str:
        return self._session_uri

    @property
    def progress(self) -> int:
        """Highest byte offset the server confirmed."""
        return self._progress

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def retries_exhausted(self) -> bool:
        """Check if automatic retrying stopped with the upload unfinished.

        The session stays IN_PROGRESS; resume() starts a fresh attempt.
        """
        return self._retries_exhausted

    @property
    def is_running(self) -> bool:
        """Check if the transfer loop is active."""
        return self._task is not None and not self._task.done()

    # === Listeners ===

    def on(self, kind: EventKind | str, listener: Listener) -> None:
        """Register the listener for an event kind (last one wins).

        Events raised before registration are delivered immediately.
        """
        self._events.on(kind, listener)

    def set_on_progress(self, callback: Callable[[int], None]) -> None:
        """Set callback receiving each newly confirmed byte offset."""
        self.on(EventKind.PROGRESS, callback)

    def set_on_error(self, callback: Callable[[BaseException], None]) -> None:
        """Set callback for transfer errors."""
        self.on(EventKind.ERROR, callback)

    def set_on_done(self, callback: Callable[[], None]) -> None:
        """Set callback for completion."""
        self.on(EventKind.DONE, callback)

    def set_on_cancel(self, callback: Callable[[], None]) -> None:
        """Set callback for cancellation."""
        self.on(EventKind.CANCEL, callback)

    def set_on_pause(self, callback: Callable[[], None]) -> None:
        """Set callback for pausing."""
        self.on(EventKind.PAUSE, callback)

    # === Controls ===

    def start(self) -> None:
        """Start the transfer loop from the beginning of the file.

        Must be called from a running event loop.
        """
        if self._task is not None:
            raise RuntimeError("Upload already started")
        logger.info(
            f"Starting upload of {self._total_size} bytes to {self._session_uri} "
            f"({self._chunks.chunk_size} bytes per chunk)"
        )
        self._spawn(None)

    def pause(self) -> None:
        """Pause the upload after the in-flight request completes.

        Fires the pause event only when going from in progress to paused.
        """
        if self._status is not UploadStatus.IN_PROGRESS:
            return
        self._status = UploadStatus.PAUSED
        logger.info(f"Upload paused at byte {self._progress}")
        self._interrupt_backoff()
        self._events.emit(EventKind.PAUSE)

    def resume(self) -> bool:
        """Resume a paused or stalled upload, starting with a probe.

        Returns:
            True if the upload continues, False if it already ended.
        """
        if self._status.is_terminal:
            logger.warning(f"Cannot resume an upload that is {self._status.value}")
            return False

        if self._status is UploadStatus.IN_PROGRESS and self.is_running:
            return True

        self._status = UploadStatus.IN_PROGRESS
        self._retry_count = 0
        self._retries_exhausted = False

        if self.is_running:
            # The active loop picks the new state up at its next decision point.
            self._probe_requested = True
            return True

        logger.info(f"Resuming upload from byte {self._progress}")
        self._spawn(PROBE_OFFSET)
        return True

    def cancel(self) -> None:
        """Cancel the upload. Fires the cancel event once."""
        if self._status.is_terminal:
            return
        self._status = UploadStatus.CANCELLED
        logger.info(f"Upload cancelled at byte {self._progress}")
        self._interrupt_backoff()
        self._events.emit(EventKind.CANCEL)

    def done(self) -> None:
        """Mark the upload as complete. Fires the done event once.

        Called by the transfer loop when the server reports completion.
        """
        if self._status.is_terminal:
            return
        self._status = UploadStatus.DONE
        logger.info(f"Upload of {self._total_size} bytes complete")
        self._events.emit(EventKind.DONE)

    async def join(self) -> None:
        """Wait until no transfer loop is active.

        Returns when the upload is done, cancelled, paused or stalled. An
        owned transport is closed once the upload is done or cancelled.
        """
        while self._task is not None and not self._task.done():
            await self._task
        if self._status.is_terminal:
            await self._close_transport()

    async def aclose(self) -> None:
        """Cancel the loop task and close the transport if owned."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        await self._close_transport()

    # === Transfer loop ===

    def _spawn(self, offset: Offset) -> None:
        self._task = asyncio.get_running_loop().create_task(
            self._transfer_loop(offset), name=f"upload:{self._session_uri}"
        )

    async def _transfer_loop(self, offset: Offset) -> None:
        try:
            await self._run_exchanges(offset)
        finally:
            if self._status.is_terminal:
                await self._close_transport()

    async def _run_exchanges(self, offset: Offset) -> None:
        while self._status is UploadStatus.IN_PROGRESS:
            if self._probe_requested:
                self._probe_requested = False
                offset = PROBE_OFFSET

            try:
                result = await self._exchange(offset)
            except Exception as e:
                self._record_error(e)
                if self._status is not UploadStatus.IN_PROGRESS:
                    return
                if not self._retry.can_retry(self._retry_count):
                    self._retries_exhausted = True
                    logger.error(
                        f"Giving up after {self._retry_count} retries at byte "
                        f"{self._progress}: {e}"
                    )
                    return
                self._retry_count += 1
                await self._wait_backoff(e)
                offset = PROBE_OFFSET
                continue

            if self._status is not UploadStatus.IN_PROGRESS:
                logger.debug(f"Discarding response, upload is {self._status.value}")
                return

            self._retry_count = 0
            if result.done:
                self.done()
                return

            self._set_progress(result.last_byte)
            offset = result.next_offset

    async def _close_transport(self) -> None:
        if not self._owns_transport or self._transport_closed:
            return
        self._transport_closed = True
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    async def _exchange(self, offset: Offset) -> ExchangeResult:
        """Send one chunk (or a probe) and interpret the response."""
        chunk = await self._chunks.next(offset)
        headers = build_headers(chunk, self._total_size, self._content_type)
        if chunk is None:
            logger.debug("Probing server for the confirmed offset")
        else:
            logger.debug(f"Sending {headers['Content-Range']}")

        response = await self._transport.request(
            "PUT",
            self._session_uri,
            headers=headers,
            body=chunk.data if chunk is not None else None,
        )
        return interpret_response(response)

    async def _wait_backoff(self, error: BaseException) -> None:
        """Wait before a retry; pause() and cancel() cut the wait short."""
        backoff = asyncio.ensure_future(self._retry.wait(self._retry_count, error))
        self._backoff = backoff
        try:
            await asyncio.wait({backoff})
        finally:
            self._backoff = None
            backoff.cancel()

    def _interrupt_backoff(self) -> None:
        if self._backoff is not None:
            self._backoff.cancel()

    def _record_error(self, error: BaseException) -> None:
        self._last_error = error
        logger.warning(f"Upload error at byte {self._progress}: {error}")
        self._events.emit(EventKind.ERROR, error)

    def _set_progress(self, offset: int | None) -> None:
        # Offset 0 carries no observable forward movement.
        if not offset or offset <= self._progress:
            return
        self._progress = offset
        self._events.emit(EventKind.PROGRESS, offset)
