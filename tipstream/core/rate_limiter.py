"""
TIPSTREAM - Request Pacing
Token bucket rate limiter with a sliding window and a cooldown between
consecutive requests.

Callers go through ``slot()`` one at a time, so wrapping a loop body in it
both serializes the work and spaces it out:

    limiter = RateLimiter(max_requests=30, window_seconds=60, cooldown_seconds=2.0)
    for url in urls:
        async with limiter.slot():
            await scrape(url)
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimiter:
    """Sliding-window limiter that also enforces a pause after each request."""

    max_requests: int
    window_seconds: float
    cooldown_seconds: float = 0.0
    name: str = "rate_limiter"
    requests: List[float] = field(default_factory=list)
    last_finished: Optional[float] = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @classmethod
    def with_cooldown(cls, seconds: float, name: str = "rate_limiter") -> "RateLimiter":
        """Limiter that only enforces a fixed pause between requests."""
        return cls(max_requests=1_000_000, window_seconds=1.0, cooldown_seconds=seconds, name=name)

    def can_request(self) -> bool:
        """Check if a request can be made."""
        return self.wait_time() == 0.0

    def add_request(self) -> None:
        """Record a request."""
        self.requests.append(time.monotonic())

    def wait_time(self) -> float:
        """Get time to wait before next request."""
        self._cleanup()
        now = time.monotonic()
        wait = 0.0
        if len(self.requests) >= self.max_requests:
            oldest = min(self.requests)
            wait = max(wait, oldest + self.window_seconds - now)
        if self.last_finished is not None and self.cooldown_seconds > 0:
            wait = max(wait, self.last_finished + self.cooldown_seconds - now)
        return max(0.0, wait)

    def _cleanup(self) -> None:
        """Remove expired requests from window."""
        cutoff = time.monotonic() - self.window_seconds
        self.requests = [r for r in self.requests if r > cutoff]

    def reset(self) -> None:
        self.requests.clear()
        self.last_finished = None

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold the limiter for one request, waiting for the window and cooldown first."""
        async with self._lock:
            delay = self.wait_time()
            if delay > 0:
                logger.debug(f"[{self.name}] Pacing: waiting {delay:.2f}s")
                await asyncio.sleep(delay)
            self.add_request()
            try:
                yield
            finally:
                self.last_finished = time.monotonic()
