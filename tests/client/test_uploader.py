"""Tests for the run() entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

from gcsuploader.client.uploader import open_source, run, start_upload
from gcsuploader.core.chunking import BytesSource, FileSource
from gcsuploader.core.config import DEFAULT_CHUNK_SIZE, UploadConfig
from gcsuploader.core.types import TransportError, UploadStatus, UsageError
from tests.client.fakes import FakeSleep, FakeTransport, incomplete, ok

SESSION_URI = "https://storage.example.com/upload?upload_id=e2e"


class TestOpenSource:
    """Tests for open_source."""

    def test_bytes(self) -> None:
        """Buffers should become in-memory sources."""
        source = open_source(b"abc")
        assert isinstance(source, BytesSource)
        assert source.size == 3

    def test_path(self, tmp_path: Path) -> None:
        """Paths should become file sources."""
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        source = open_source(str(path))

        assert isinstance(source, FileSource)
        assert source.content_type == "text/plain"

    def test_existing_source_passes_through(self) -> None:
        """Byte sources should be used as-is."""
        source = BytesSource(b"x")
        assert open_source(source) is source

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_file(self, value: object) -> None:
        """Missing file should be a usage error."""
        with pytest.raises(UsageError, match="provide a file"):
            open_source(value)  # type: ignore[arg-type]

    def test_unsupported_type(self) -> None:
        """Other objects should be rejected."""
        with pytest.raises(UsageError):
            open_source(42)  # type: ignore[arg-type]


class TestRun:
    """Tests for run()."""

    def test_missing_file_fails_synchronously(self) -> None:
        """run() without a file should raise before any session exists."""
        with pytest.raises(UsageError):
            run(None, SESSION_URI)  # type: ignore[arg-type]

    def test_invalid_session_uri(self) -> None:
        """run() should validate the session URI."""
        with pytest.raises(UsageError):
            run(b"data", "not-a-url")

    @pytest.mark.asyncio
    async def test_returns_started_session(self) -> None:
        """run() should return immediately with the loop running."""
        transport = FakeTransport(incomplete(9), ok())

        session = run(b"x" * 20, SESSION_URI, 10, transport=transport)

        assert session.status is UploadStatus.IN_PROGRESS
        assert session.is_running is True
        assert transport.requests == []

        done: list[bool] = []
        session.set_on_done(lambda: done.append(True))
        await session.join()

        assert done == [True]
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_default_chunk_size(self) -> None:
        """Chunk size should default to 100 MiB."""
        transport = FakeTransport(ok())

        session = run(b"x" * 10, SESSION_URI, transport=transport)
        await session.join()

        assert DEFAULT_CHUNK_SIZE == 100 * 1024 * 1024
        assert transport.requests[0].content_range == "bytes 0-9/10"

    @pytest.mark.asyncio
    async def test_options_configure_retries(self) -> None:
        """Extra options should reach the retry policy."""
        transport = FakeTransport(TransportError("down"), TransportError("down"))
        sleep = FakeSleep()

        session = run(
            b"x" * 10,
            SESSION_URI,
            transport=transport,
            sleep=sleep,
            max_retries=1,
            retry_delay=0.5,
        )
        await session.join()

        assert sleep.delays == [0.5]
        assert session.retries_exhausted is True


class TestEndToEnd:
    """Wire-level uploads through httpx."""

    @pytest.mark.asyncio
    async def test_three_chunk_upload(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A 1,000,000-byte file should go up in three PUTs."""
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=308, headers={"Range": "bytes=0-399999"})
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=308, headers={"Range": "bytes=0-799999"})
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=200, json={"name": "video.mp4"})

        session = start_upload(
            BytesSource(bytes(1_000_000), "video/mp4"),
            UploadConfig(session_uri=SESSION_URI, chunk_size=400_000),
        )
        progress: list[int] = []
        session.set_on_progress(progress.append)
        await session.join()
        await session.aclose()

        requests = httpx_mock.get_requests()
        assert [r.headers["Content-Range"] for r in requests] == [
            "bytes 0-399999/1000000",
            "bytes 400000-799999/1000000",
            "bytes 800000-999999/1000000",
        ]
        assert [len(r.content) for r in requests] == [400_000, 400_000, 200_000]
        assert all(r.headers["Content-Type"] == "video/mp4" for r in requests)
        assert progress == [399_999, 799_999]
        assert session.status is UploadStatus.DONE

    @pytest.mark.asyncio
    async def test_network_error_resumes_from_probe(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """After a failed chunk, the probe result should set the next offset."""
        httpx_mock.add_exception(httpx.ConnectError("network down"))
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=308, headers={"Range": "bytes=0-199999"})
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=200)

        sleep = FakeSleep()
        errors: list[BaseException] = []
        session = run(bytes(400_000), SESSION_URI, 400_000, sleep=sleep)
        session.set_on_error(errors.append)
        await session.join()
        await session.aclose()

        requests = httpx_mock.get_requests()
        assert len(requests) == 3
        assert "Content-Range" not in requests[1].headers
        assert requests[1].content == b""
        assert requests[2].headers["Content-Range"] == "bytes 200000-399999/400000"
        assert len(errors) == 1
        assert isinstance(errors[0], TransportError)
        assert sleep.delays == [5.0]
        assert session.status is UploadStatus.DONE


class TestOwnedTransport:
    """Tests for the transport run() creates itself."""

    @pytest.mark.asyncio
    async def test_closed_after_completion(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """The HTTP client should be closed once the upload is done."""
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=200)

        session = run(b"hello", SESSION_URI)
        await session.join()

        assert session.status is UploadStatus.DONE
        assert session._transport._client.is_closed is True

    @pytest.mark.asyncio
    async def test_closed_after_cancel_while_paused(self) -> None:
        """Cancelling with no loop running should still close the client."""
        session = run(b"hello", SESSION_URI)
        session.pause()
        await session.join()
        assert session._transport._client.is_closed is False

        session.cancel()
        await session.join()

        assert session.status is UploadStatus.CANCELLED
        assert session._transport._client.is_closed is True

    @pytest.mark.asyncio
    async def test_open_while_stalled(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A stalled upload keeps its client so resume() can use it."""
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=503)
        httpx_mock.add_response(url=SESSION_URI, method="PUT", status_code=200)

        session = run(b"hello", SESSION_URI, max_retries=0)
        await session.join()

        assert session.retries_exhausted is True
        assert session._transport._client.is_closed is False

        session.resume()
        await session.join()

        assert session.status is UploadStatus.DONE
        assert session._transport._client.is_closed is True
        assert "Content-Length" not in httpx_mock.get_requests()[1].headers

    @pytest.mark.asyncio
    async def test_default_backoff_uses_asyncio_sleep(self) -> None:
        """Without an injected timer the retry policy sleeps for real."""
        session = run(b"hello", SESSION_URI, transport=FakeTransport(ok()))
        await session.join()

        assert session._retry.sleep is asyncio.sleep
