"""Retry policy for chunk exchanges.

This module provides:
- RetryPolicy: Fixed-delay retry budget used by the upload driver
- NETWORK_EXCEPTIONS: Exceptions that indicate connectivity issues
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from gcsuploader.core.config import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY
from gcsuploader.core.types import TransportError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Network-related exceptions that indicate connectivity issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    TransportError,
    ConnectionError,
    TimeoutError,
    OSError,
)


@dataclass
class RetryPolicy:
    """Fixed-delay retry budget.

    Attributes:
        max_retries: Consecutive retries allowed before giving up.
        delay: Seconds to wait before each retry.
        sleep: Timer used for the wait (asyncio.sleep unless overridden).
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    delay: float = DEFAULT_RETRY_DELAY
    sleep: Sleep = field(default=asyncio.sleep)

    def can_retry(self, retry_count: int) -> bool:
        """Check if another retry is allowed after retry_count retries."""
        return retry_count < self.max_retries

    async def wait(self, attempt: int, error: BaseException | None = None) -> None:
        """Wait before retry number `attempt` (1-based).

        Args:
            attempt: Retry number about to be made.
            error: The failure that caused the retry, for logging.
        """
        kind = "Network error" if isinstance(error, NETWORK_EXCEPTIONS) else "Error"
        logger.warning(
            f"{kind}: {error}. Retry {attempt}/{self.max_retries} "
            f"in {self.delay:.1f}s..."
        )
        await self.sleep(self.delay)
