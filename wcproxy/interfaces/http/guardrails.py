"""Request-rate guardrail middleware for WCProxy."""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

import anyio
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from .errors import log_and_return_error_response
from ...constants import RATE_LIMIT_MESSAGE
from ...enums import ErrorType, RateLimitScope
from ...logging import info, LogRecord, LogEvent

_GLOBAL_KEY = "__global__"


@dataclass
class RateLimitDecision:
    """Outcome of a single rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: float

    def headers(self) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(math.ceil(self.reset_seconds)),
        }


class _MemoryRateLimiter:
    """Simple in-memory sliding-window rate limiter."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter with sliding window configuration.

        Args:
            max_requests: Requests allowed per key within one window
            window_seconds: Length of the sliding window
            clock: Monotonic time source
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._store: Dict[str, Deque[float]] = {}
        self._lock = anyio.Lock()
        self._last_sweep = clock()

    def _evict_idle(self, window_start: float) -> None:
        """Drop keys whose newest request has left the window."""
        idle = [k for k, ts in self._store.items() if not ts or ts[-1] <= window_start]
        for k in idle:
            del self._store[k]

    async def allow(self, key: str) -> RateLimitDecision:
        """Record a request for *key* unless its window is already full."""
        now = self._clock()
        window_start = now - self.window_seconds
        async with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._evict_idle(window_start)
                self._last_sweep = now
            timestamps = self._store.setdefault(key, deque())
            while timestamps and timestamps[0] <= window_start:
                timestamps.popleft()

            allowed = len(timestamps) < self.max_requests
            if allowed:
                timestamps.append(now)

            reset_seconds = (
                timestamps[0] + self.window_seconds - now
                if timestamps
                else self.window_seconds
            )
            return RateLimitDecision(
                allowed=allowed,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - len(timestamps)),
                reset_seconds=max(0.0, reset_seconds),
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Caps requests per window, process-wide or per client IP."""

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int,
        window_seconds: float = 1.0,
        scope: str = RateLimitScope.Global.value,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initializes rate limiting middleware with specified parameters.

        Args:
            app: Downstream ASGI application instance
            max_requests: Requests permitted per window
            window_seconds: Length of the sliding window in seconds
            scope: ``global`` for one shared bucket, ``client`` for one per IP
            clock: Monotonic time source
        """
        super().__init__(app)
        self._limiter = _MemoryRateLimiter(max_requests, window_seconds, clock)
        self._scope = RateLimitScope(scope)

    def _key_for(self, request: Request) -> str:
        if self._scope == RateLimitScope.Client:
            return request.client.host if request.client else "anonymous"
        return _GLOBAL_KEY

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Apply rate limiting and forward the request if allowed."""
        decision = await self._limiter.allow(self._key_for(request))
        if not decision.allowed:
            info(
                LogRecord(
                    event=LogEvent.RATE_LIMITED.value,
                    message="Request rejected by rate limiter",
                    request_id=getattr(request.state, "request_id", None),
                    data={
                        "limit": decision.limit,
                        "window_seconds": self._limiter.window_seconds,
                        "scope": self._scope.value,
                    },
                )
            )
            headers = decision.headers()
            headers["Retry-After"] = str(max(1, math.ceil(decision.reset_seconds)))
            return await log_and_return_error_response(
                request,
                429,
                ErrorType.RATE_LIMIT,
                RATE_LIMIT_MESSAGE,
                headers=headers,
            )

        response = await call_next(request)
        for name, value in decision.headers().items():
            response.headers.setdefault(name, value)
        return response
