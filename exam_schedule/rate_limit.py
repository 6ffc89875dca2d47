"""
Sliding-window rate limiter for the exam schedule service.
시험 일정 서비스의 슬라이딩 윈도우 속도 제한 모듈입니다.

Crawl and extraction endpoints hit a third-party site and paid LLM APIs, so
each identity (API key, else client IP) gets RATE_LIMIT_PER_MINUTE calls per
minute. The limiter instance lives on app.state.

Usage:
    @app.post("/api/exam-schedules/crawl")
    async def crawl(..., _: None = Depends(check_rate_limit)):
        ...
"""

import asyncio
import logging
import time
from collections import deque
from typing import Callable

from fastapi import Depends, HTTPException, Request, status

from .auth import require_api_key

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60.0


class RateLimitExceeded(Exception):
    def __init__(self, retry_after: int):
        super().__init__(f"Retry after {retry_after} seconds")
        self.retry_after = retry_after


class SlidingWindowLimiter:
    """Per-identity sliding window over the last minute."""

    def __init__(self, per_minute: int, clock: Callable[[], float] = time.monotonic):
        if per_minute < 1:
            raise ValueError(f"per_minute must be >= 1, got {per_minute}")
        self.per_minute = per_minute
        self._clock = clock
        # 식별 키 -> 요청 타임스탬프 데크
        self._windows: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, identity: str) -> None:
        """Record one request; raises RateLimitExceeded when over the limit."""
        now = self._clock()
        window_start = now - _WINDOW_SECONDS

        async with self._lock:
            window = self._windows.setdefault(identity, deque())

            # Drop timestamps outside the current window
            while window and window[0] < window_start:
                window.popleft()

            if len(window) >= self.per_minute:
                # Oldest request in window determines when a slot opens
                retry_after = int(_WINDOW_SECONDS - (now - window[0])) + 1
                raise RateLimitExceeded(retry_after)

            window.append(now)


def _get_identity(api_key: str | None, request: Request) -> str:
    """API 키가 있으면 사용하고, 없으면 클라이언트 IP를 사용합니다."""
    if api_key:
        return f"key:{api_key}"
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else "unknown"
    return f"ip:{ip}"


async def check_rate_limit(
    request: Request,
    api_key: str | None = Depends(require_api_key),
) -> None:
    """FastAPI dependency enforcing the per-identity limit (HTTP 429 when exceeded)."""
    limiter: SlidingWindowLimiter = request.app.state.rate_limiter
    identity = _get_identity(api_key, request)
    try:
        await limiter.hit(identity)
    except RateLimitExceeded as e:
        logger.warning("Rate limit exceeded for %s", identity)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=(
                f"Rate limit exceeded: {limiter.per_minute} requests/minute. "
                f"Retry after {e.retry_after} seconds."
            ),
            headers={"Retry-After": str(e.retry_after)},
        ) from e
