"""
Fixed-window request limiting per client IP.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float  # epoch seconds


@dataclass
class RateLimitStatus:
    """Outcome of one counted request"""
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": datetime.fromtimestamp(self.reset_at, timezone.utc).isoformat(),
        }


class IpRateLimiter:
    """Counts requests per client IP in fixed windows kept in memory"""

    def __init__(self,
                 limit: int = 50,
                 window_seconds: float = 60,
                 cleanup_interval_seconds: float = 5 * 60):
        self.limit = limit
        self.window_seconds = window_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._windows: Dict[str, RateLimitWindow] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    def hit(self, client_ip: str) -> RateLimitStatus:
        """Count one request from client_ip and report whether it is allowed"""
        now = time.time()
        window = self._windows.get(client_ip)
        if window is None or now > window.reset_at:
            window = RateLimitWindow(count=0, reset_at=now + self.window_seconds)
            self._windows[client_ip] = window

        window.count += 1
        allowed = window.count <= self.limit
        if not allowed:
            logger.warning(f"IP rate limit exceeded for {client_ip} ({window.count}/{self.limit})")

        return RateLimitStatus(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - window.count),
            reset_at=window.reset_at,
            retry_after=max(1, math.ceil(window.reset_at - now)),
        )

    def store_size(self) -> int:
        return len(self._windows)

    def clear_all(self) -> None:
        self._windows.clear()

    def cleanup_expired(self) -> int:
        now = time.time()
        expired = [ip for ip, window in self._windows.items() if now > window.reset_at]
        for ip in expired:
            del self._windows[ip]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired IP rate limit entries")
        return len(expired)

    def start_cleanup_job(self) -> None:
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(f"Rate limit cleanup job started (interval: {self.cleanup_interval_seconds}s)")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval_seconds)
            self.cleanup_expired()

    async def stop_cleanup_job(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            await asyncio.gather(self._cleanup_task, return_exceptions=True)
            self._cleanup_task = None
            logger.info("Rate limit cleanup job stopped")
