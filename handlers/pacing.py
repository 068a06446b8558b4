"""Fixed-interval pacing for batch workflows that hit the API in a loop.

Cliniko rate-limits to 200 requests per 5 minutes. Batch tools pause a
fixed delay before each call; when a call comes back 429 they sleep once
for a longer fixed interval and re-raise so the caller moves on to the
next item. The failed item is not retried.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from api_client import ApiError
from config import RATE_LIMIT_BACKOFF, REQUEST_DELAY

logger = logging.getLogger("cliniko-mcp")

RATE_LIMITED = 429

T = TypeVar("T")


@dataclass(frozen=True)
class Pacer:
    delay: float = REQUEST_DELAY
    backoff: float = RATE_LIMIT_BACKOFF

    async def call(self, fn: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        await asyncio.sleep(self.delay)
        try:
            return await fn(*args, **kwargs)
        except ApiError as exc:
            if exc.status_code == RATE_LIMITED:
                logger.warning("Rate limit hit - waiting %.1f seconds", self.backoff)
                await asyncio.sleep(self.backoff)
            raise
