"""
Read-after-write verification for administrative transactions.

A confirmed receipt does not guarantee that the node we read from already
serves the new state. Instead of sleeping a fixed interval, re-read with
exponential backoff until the expected state shows up or attempts run out.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReadAfterWriteConfig:
    """Backoff schedule for post-confirmation reads.

    Attributes:
        attempts: Total number of reads (at least 1)
        base_delay: Delay before the second read, in seconds
        max_delay: Cap for any single delay
        exponential_base: Growth factor between delays
    """

    attempts: int = 6
    base_delay: float = 0.5
    max_delay: float = 8.0
    exponential_base: float = 2.0

    def calculate_delay(self, attempt: int) -> float:
        delay = self.base_delay * (self.exponential_base ** attempt)
        return max(0.0, min(delay, self.max_delay))


DEFAULT_READ_AFTER_WRITE = ReadAfterWriteConfig()


async def verify_read_after_write(
    read: Callable[[], Awaitable[T]],
    accept: Callable[[T], bool],
    config: ReadAfterWriteConfig = DEFAULT_READ_AFTER_WRITE,
    *,
    what: str = "state",
) -> Tuple[T, bool]:
    """
    Re-read until `accept(value)` holds or attempts are exhausted.

    Returns:
        (last value read, whether it was accepted)
    """
    value = await read()
    for attempt in range(max(config.attempts, 1) - 1):
        if accept(value):
            return value, True
        delay = config.calculate_delay(attempt)
        logger.info(f"Waiting {delay:.1f}s for {what} to update (attempt {attempt + 1})")
        await asyncio.sleep(delay)
        value = await read()
    return value, accept(value)
