"""Wire format of the resumable upload protocol.

Every request is a PUT to the session URI:

- Probe: no body and no Content-Range/Content-Type, asks the server how
  many bytes it has persisted.
- Data: the chunk bytes with Content-Length, Content-Type and
  ``Content-Range: bytes <start>-<end>/<total>``.

The server answers 200/201 when the object is complete, or 308 with a
``Range: bytes=0-<last byte received>`` header while bytes are missing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from gcsuploader.client.api import TransportResponse
from gcsuploader.core.chunking import Chunk
from gcsuploader.core.types import InvalidRangeError, ProtocolError

STATUS_COMPLETE = frozenset({200, 201})
STATUS_INCOMPLETE = 308

_RANGE_RE = re.compile(r"^\s*[A-Za-z]+\s*[=\s]\s*(\d+)\s*-\s*(\d+)\s*$")


@dataclass
class ExchangeResult:
    """Interpretation of one response.

    Attributes:
        done: Whether the server reported the upload complete.
        last_byte: Last byte offset the server confirmed (incomplete only).
    """

    done: bool
    last_byte: int | None = None

    @property
    def next_offset(self) -> int | None:
        """Offset of the first byte still to send."""
        if self.last_byte is None:
            return None
        return self.last_byte + 1


def content_range(chunk: Chunk, total_size: int) -> str:
    """Build the Content-Range value for a data request.

    A zero-length chunk (empty file, or every byte already sent) carries
    no byte range and only finalizes the object size.
    """
    if chunk.size == 0:
        return f"bytes */{total_size}"
    return f"bytes {chunk.offset}-{chunk.end}/{total_size}"


def build_headers(
    chunk: Chunk | None, total_size: int, content_type: str
) -> dict[str, str]:
    """Build request headers; a probe (chunk is None) sends none."""
    if chunk is None:
        return {}
    return {
        "Content-Length": str(chunk.size),
        "Content-Type": content_type,
        "Content-Range": content_range(chunk, total_size),
    }


def parse_range(value: str | None) -> int:
    """Return the last confirmed byte from a Range header value.

    Args:
        value: Header value such as ``bytes=0-399999``.

    Returns:
        The offset after the hyphen.

    Raises:
        InvalidRangeError: If the value is missing or malformed.
    """
    if not value:
        raise InvalidRangeError("Missing 'Range' header", STATUS_INCOMPLETE)
    match = _RANGE_RE.match(value)
    if match is None:
        raise InvalidRangeError(
            f"Invalid 'Range' header received: {value!r}", STATUS_INCOMPLETE
        )
    start, end = int(match.group(1)), int(match.group(2))
    if end < start:
        raise InvalidRangeError(
            f"Invalid 'Range' header received: {value!r}", STATUS_INCOMPLETE
        )
    return end


def interpret_response(response: TransportResponse) -> ExchangeResult:
    """Map a response onto the protocol outcomes.

    Raises:
        InvalidRangeError: On a 308 without a usable Range header.
        ProtocolError: On any status other than 200, 201 or 308.
    """
    if response.status_code in STATUS_COMPLETE:
        return ExchangeResult(done=True)
    if response.status_code == STATUS_INCOMPLETE:
        return ExchangeResult(
            done=False, last_byte=parse_range(response.headers.get("range"))
        )
    raise ProtocolError(
        f"Unexpected response status {response.status_code}",
        response.status_code,
    )
