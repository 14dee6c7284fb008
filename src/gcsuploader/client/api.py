"""HTTP transport for resumable upload sessions.

This module provides:
- TransportResponse: Status code and headers of a completed request
- Transport: Protocol consumed by the upload driver
- HTTPTransport: httpx-based implementation
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from gcsuploader.core.types import TransportError

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Response of a transport request.

    Only the status code and headers cross the transport boundary; upload
    endpoints answer with empty (or ignorable) bodies.
    """

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)

    def __post_init__(self) -> None:
        """Make header lookups case-insensitive."""
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> TransportResponse:
        """Create from an httpx response."""
        return cls(status_code=response.status_code, headers=response.headers)


class Transport(Protocol):
    """Sends a request and returns its status and headers, or fails."""

    async def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> TransportResponse:
        ...


class HTTPTransport:
    """httpx-backed transport for upload requests."""

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            client: Existing client to use; it is not closed by aclose().
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            verify=verify_ssl,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HTTPTransport:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> TransportResponse:
        """Send a request.

        Args:
            method: HTTP method.
            url: Target URL.
            headers: Request headers.
            body: Optional request body.

        Returns:
            Status code and headers of the response.

        Raises:
            TransportError: If the request could not be completed.
        """
        request = self._client.build_request(
            method,
            url,
            headers=dict(headers or {}),
            content=body,
        )
        if body is None:
            # httpx adds "Content-Length: 0" to bodiless PUTs; a probe sends none.
            request.headers.pop("Content-Length", None)

        try:
            response = await self._client.send(request)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        logger.debug(f"{method} {url} -> {response.status_code}")
        return TransportResponse.from_httpx(response)
