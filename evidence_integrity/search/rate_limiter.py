"""
Per-provider token bucket rate limiting for bibliographic API calls.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Mapping

from evidence_integrity.models import ProviderRateLimit
from evidence_integrity.utils.structured_log import log_rate_limit_wait

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Token bucket rate limiter for one external service.

    The bucket starts full. Tokens refill lazily on each acquire, so there is no
    background task. Waiters are served in arrival order.
    """

    def __init__(
        self,
        max_tokens: float,
        refill_rate: float,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_tokens: Bucket capacity (burst size)
            refill_rate: Tokens added per second (long-run requests per second)
            name: Service name, used in logs
            clock: Monotonic time source
        """
        if max_tokens <= 0 or refill_rate <= 0:
            raise ValueError("max_tokens and refill_rate must be positive")
        self.name = name
        self.max_tokens = float(max_tokens)
        self.refill_rate = float(refill_rate)
        self.tokens = float(max_tokens)
        self._clock = clock
        self.last_refill = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    async def acquire(self) -> None:
        """
        Take one token, suspending the caller while the bucket is empty.

        Cancelling the awaiting task abandons the wait without consuming a token.
        """
        async with self._lock:
            self._refill()
            while self.tokens < 1:
                wait = 1.0 / self.refill_rate
                logger.debug(f"{self.name}: rate limit reached, sleeping for {wait:.3f}s")
                log_rate_limit_wait(self.name, self.tokens, self.max_tokens)
                await asyncio.sleep(wait)
                self._refill()
            self.tokens -= 1


def build_rate_limiters(limits: Mapping[str, ProviderRateLimit]) -> Dict[str, RateLimiter]:
    """
    Create one independent limiter per configured provider.

    Args:
        limits: Provider name -> bucket settings

    Returns:
        Provider name -> RateLimiter
    """
    return {
        name: RateLimiter(max_tokens=limit.max_tokens, refill_rate=limit.refill_rate, name=name)
        for name, limit in limits.items()
    }
