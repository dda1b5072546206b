"""Sliding window rate limiter for the credential endpoints."""

import asyncio
import time
from typing import Dict, List, Optional

from fastapi import Request
from structlog import get_logger

logger = get_logger()


class RateLimitExceeded(Exception):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Too many attempts, retry in {retry_after} seconds.")


class RateLimiter:
    """Counts attempts per key inside a moving time window."""

    def __init__(self, rate_limit: int = 20, time_window: int = 60):
        self.rate_limit = rate_limit
        self.time_window = time_window  # in seconds
        self.requests: Dict[str, List[float]] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None
        logger.info("rate_limiter_initialized", rate_limit=rate_limit, time_window=time_window)

    async def start(self):
        """Start the periodic cleanup task."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._periodic_cleanup())

    async def stop(self):
        """Stop the periodic cleanup task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    def _prune(self, key: str, now: float) -> List[float]:
        cutoff = now - self.time_window
        kept = [ts for ts in self.requests.get(key, []) if ts > cutoff]
        if kept:
            self.requests[key] = kept
        else:
            self.requests.pop(key, None)
        return kept

    async def _periodic_cleanup(self):
        """Drop keys with no attempt left in the window."""
        while True:
            try:
                await asyncio.sleep(self.time_window)
                async with self._lock:
                    now = time.monotonic()
                    for key in list(self.requests):
                        self._prune(key, now)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("rate_limiter_cleanup_error", error=str(e))

    async def check_rate_limit(self, key: str) -> None:
        """Record an attempt for ``key`` or raise RateLimitExceeded."""
        await self.start()
        now = time.monotonic()

        async with self._lock:
            attempts = self._prune(key, now)
            if len(attempts) >= self.rate_limit:
                retry_after = max(1, int(attempts[0] + self.time_window - now) + 1)
                logger.warning(
                    "rate_limit_exceeded",
                    key=key,
                    current_requests=len(attempts),
                    rate_limit=self.rate_limit,
                )
                raise RateLimitExceeded(retry_after)
            self.requests[key] = [*attempts, now]


def client_key(request: Request) -> str:
    """Key attempts by client address and path.

    Behind the proxy every connection comes from the proxy itself. The proxy
    appends the address it saw to ``x-forwarded-for``, so only the last hop
    is trusted. Earlier hops come from the client and may be forged.
    """
    forwarded = request.headers.get("x-forwarded-for")
    client_ip = forwarded.split(",")[-1].strip() if forwarded else ""
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"
    return f"{client_ip}:{request.url.path}"
