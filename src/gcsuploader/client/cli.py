"""Command-line interface for gcsuploader.

Commands:
- gcsupload FILE SESSION_URI: Upload a local file to a resumable session
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

import click

from gcsuploader.client.api import HTTPTransport
from gcsuploader.client.session import UploadSession
from gcsuploader.client.uploader import start_upload
from gcsuploader.core.chunking import FileSource
from gcsuploader.core.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    UploadConfig,
)
from gcsuploader.core.types import UploadError, UploadStatus

logger = logging.getLogger(__name__)

EXIT_STALLED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the gcsuploader package to stdout.

    Args:
        verbose: Log per-chunk DEBUG messages instead of INFO.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    package_logger = logging.getLogger("gcsuploader")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(log_format))
    package_logger.addHandler(stdout_handler)
    package_logger.propagate = False


def format_progress(offset: int, total: int) -> str:
    """Format a confirmed offset as 'sent/total (pct%)'."""
    sent = offset + 1 if offset else 0
    percent = 100.0 * sent / total if total else 100.0
    return f"{sent}/{total} bytes ({percent:.1f}%)"


async def upload_file(
    path: Path, config: UploadConfig, content_type: str | None
) -> UploadSession:
    """Upload a file, cancelling on SIGINT, and wait for the loop to stop."""
    source = FileSource(path, content_type)

    async with HTTPTransport(timeout=config.timeout, verify_ssl=config.verify_ssl) as transport:
        session = start_upload(source, config, transport=transport)
        session.set_on_progress(
            lambda offset: click.echo(f"Sent {format_progress(offset, source.size)}")
        )
        session.set_on_error(lambda error: click.echo(f"Error: {error}", err=True))
        session.set_on_cancel(lambda: click.echo("Upload cancelled"))

        loop = asyncio.get_running_loop()
        handler_installed = False
        try:
            loop.add_signal_handler(signal.SIGINT, session.cancel)
            handler_installed = True
        except (NotImplementedError, RuntimeError):
            logger.debug("SIGINT handler unavailable, Ctrl-C will not cancel the upload")
        try:
            await session.join()
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)

    return session


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("session_uri")
@click.option(
    "--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, show_default=True,
    help="Bytes sent per request.",
)
@click.option("--content-type", default=None, help="MIME type (guessed from the name).")
@click.option("--timeout", type=float, default=30.0, show_default=True, help="Request timeout in seconds.")
@click.option("--max-retries", type=int, default=DEFAULT_MAX_RETRIES, show_default=True)
@click.option("--retry-delay", type=float, default=DEFAULT_RETRY_DELAY, show_default=True)
@click.option("--insecure", is_flag=True, help="Do not verify SSL certificates.")
@click.option("--verbose", "-v", is_flag=True, help="Log every chunk exchange.")
@click.version_option()
def upload(
    file: Path,
    session_uri: str,
    chunk_size: int,
    content_type: str | None,
    timeout: float,
    max_retries: int,
    retry_delay: float,
    insecure: bool,
    verbose: bool,
) -> None:
    """Upload FILE to the resumable upload SESSION_URI.

    Press Ctrl-C to cancel the upload.
    """
    setup_logging(verbose)

    try:
        config = UploadConfig(
            session_uri=session_uri,
            chunk_size=chunk_size,
            timeout=timeout,
            verify_ssl=not insecure,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )
        session = asyncio.run(upload_file(file, config, content_type))
    except UploadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_USAGE)

    logger.debug(f"Upload of {file} ended as {session.status.value}")
    if session.status is UploadStatus.DONE:
        click.echo(f"Uploaded {file} ({session.total_size} bytes)")
        return
    if session.status is UploadStatus.CANCELLED:
        sys.exit(EXIT_CANCELLED)

    click.echo(
        f"Upload stalled at {format_progress(session.progress, session.total_size)}: "
        f"{session.last_error}",
        err=True,
    )
    sys.exit(EXIT_STALLED)


def main() -> None:
    """Entry point for the CLI."""
    upload()
