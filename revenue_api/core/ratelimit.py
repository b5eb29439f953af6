"""
Fixed-window, per-client-IP rate limiting.

Buckets live in memory for the process lifetime and are owned by the
application instance (`app.state.rate_limiter`). The check and the increment
happen under one lock, so the cap is exact within a single process.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .errors import ErrorCode
from .http import error_json

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass
class Bucket:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_s: int = 0


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        window_ms: int,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = 1000,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive.")
        if max_requests <= 0:
            raise ValueError("max_requests must be positive.")
        self.window_s = window_ms / 1000.0
        self.max_requests = max_requests
        self._clock = clock
        self._buckets: dict[str, Bucket] = {}
        self._lock = Lock()
        self._sweep_every = max(1, sweep_every)
        self._hits_since_sweep = 0

    def hit(self, key: str) -> RateLimitDecision:
        """
        Count one request for `key` and decide whether it may proceed.
        """
        now = self._clock()
        with self._lock:
            self._hits_since_sweep += 1
            if self._hits_since_sweep >= self._sweep_every:
                self._sweep(now)

            bucket = self._buckets.get(key)
            if bucket is None or bucket.reset_at <= now:
                self._buckets[key] = Bucket(count=1, reset_at=now + self.window_s)
                return RateLimitDecision(allowed=True, remaining=self.max_requests - 1)

            if bucket.count >= self.max_requests:
                retry_after = max(1, math.ceil(bucket.reset_at - now))
                return RateLimitDecision(allowed=False, remaining=0, retry_after_s=retry_after)

            bucket.count += 1
            return RateLimitDecision(allowed=True, remaining=self.max_requests - bucket.count)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock.
        expired = [key for key, bucket in self._buckets.items() if bucket.reset_at <= now]
        for key in expired:
            del self._buckets[key]
        self._hits_since_sweep = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def client_ip(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return UNKNOWN_CLIENT


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject requests over the limit with 429 and `Retry-After`.

    The limiter is read from `app.state.rate_limiter` so each app instance has
    its own buckets.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        ip = client_ip(request)
        decision = limiter.hit(ip)
        quota_headers = {
            "X-RateLimit-Limit": str(limiter.max_requests),
            "X-RateLimit-Remaining": str(decision.remaining),
        }
        if decision.allowed:
            response = await call_next(request)
            response.headers.update(quota_headers)
            return response

        logger.warning(
            "rate_limit_exceeded ip=%s path=%s retry_after_s=%s",
            ip,
            request.url.path,
            decision.retry_after_s,
        )
        message = "Muitas requisições. Tente novamente mais tarde."
        return error_json(
            429,
            message,
            [{"code": ErrorCode.RATE_LIMIT_EXCEEDED, "message": message}],
            {"Retry-After": str(decision.retry_after_s), **quota_headers},
        )
