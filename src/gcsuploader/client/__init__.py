"""Upload driver for resumable upload sessions.

Architecture:
    run() → ChunkSource → UploadSession ⇄ Transport → session URI

Components:
- **ChunkSource**: Reads fixed-size chunks from the file on demand
- **UploadSession**: State machine, controls and transfer loop
- **EventDispatcher**: Per-kind listeners with buffering for late listeners
- **RetryPolicy**: Fixed-delay retry budget
- **HTTPTransport**: httpx-based PUT requests

All public symbols are re-exported here.
"""

from gcsuploader.client.api import HTTPTransport, Transport, TransportResponse
from gcsuploader.client.events import EventDispatcher
from gcsuploader.client.protocol import (
    ExchangeResult,
    build_headers,
    content_range,
    interpret_response,
    parse_range,
)
from gcsuploader.client.retry import NETWORK_EXCEPTIONS, RetryPolicy
from gcsuploader.client.session import UploadSession
from gcsuploader.client.uploader import open_source, run, start_upload

__all__ = [
    # Transport
    "HTTPTransport",
    "Transport",
    "TransportResponse",
    # Events
    "EventDispatcher",
    # Protocol
    "ExchangeResult",
    "build_headers",
    "content_range",
    "interpret_response",
    "parse_range",
    # Retry
    "NETWORK_EXCEPTIONS",
    "RetryPolicy",
    # Session
    "UploadSession",
    "open_source",
    "run",
    "start_upload",
]
