"""In-memory sliding-window limiter for complaint mutations.

Only state-changing methods count against the window; reads are free.
Requests are keyed by the ``X-Actor-Id`` header when it names a known
actor, otherwise by client IP, so a shared NAT does not throttle
unrelated citizens.  Unknown actor ids count against the IP window.
Single-process only; a multi-instance deployment needs a shared store.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Final

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from jansunwai.errors import NotFound
from jansunwai.middleware.auth import ACTOR_HEADER

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_LIMITED_METHODS: Final[frozenset[str]] = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_WINDOW_SECONDS: Final[float] = 60.0
_SWEEP_EVERY: Final[int] = 1000


class _Window:
    """Timestamps of the requests one key made in the last minute."""

    __slots__ = ("hits",)

    def __init__(self) -> None:
        self.hits: deque[float] = deque()

    def expire(self, now: float) -> None:
        cutoff = now - _WINDOW_SECONDS
        while self.hits and self.hits[0] < cutoff:
            self.hits.popleft()

    def retry_after(self, now: float) -> int:
        return max(1, int(_WINDOW_SECONDS - (now - self.hits[0])) + 1)

    def idle(self, now: float) -> bool:
        return not self.hits or self.hits[-1] < now - _WINDOW_SECONDS


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window rate limiter keyed by actor id or client IP.

    Parameters
    ----------
    app:
        The ASGI application.
    max_requests_per_minute:
        Mutating requests allowed per key per 60-second window.
    trusted_proxy_count:
        Reverse proxies between the client and the application.  The
        client IP is taken from ``X-Forwarded-For`` at index
        ``-(trusted_proxy_count + 1)``; 0 uses the leftmost entry.
    """

    def __init__(
        self,
        app: object,
        max_requests_per_minute: int = 30,
        trusted_proxy_count: int = 1,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._limit = max_requests_per_minute
        self._proxies = trusted_proxy_count
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._since_sweep = 0

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method not in _LIMITED_METHODS:
            return await call_next(request)

        key = await self._key_for(request)
        now = time.monotonic()

        async with self._lock:
            self._since_sweep += 1
            if self._since_sweep >= _SWEEP_EVERY:
                self._since_sweep = 0
                self._sweep(now)

            window = self._windows.setdefault(key, _Window())
            window.expire(now)
            if len(window.hits) >= self._limit:
                rejection = self._reject(key, window.retry_after(now))
            else:
                window.hits.append(now)
                rejection = None
                remaining = self._limit - len(window.hits)

        if rejection is not None:
            return rejection

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response

    def _reject(self, key: str, retry_after: int) -> JSONResponse:
        logger.warning("rate_limit.exceeded", key=key, limit=self._limit, retry_after=retry_after)
        return JSONResponse(
            status_code=429,
            content={
                "status_code": 429,
                "message": "Too many requests; slow down and retry shortly.",
                "details": {"rule": "rate_limited", "retry_after_seconds": retry_after},
            },
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(self._limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    async def _key_for(self, request: Request) -> str:
        """Known actors get their own window; anything else counts against the IP."""
        actor_id = request.headers.get(ACTOR_HEADER, "").strip()
        directory = getattr(request.app.state, "directory", None)
        if actor_id and directory is not None:
            try:
                await directory.get_actor(actor_id)
            except NotFound:
                pass
            else:
                return f"actor:{actor_id}"
        return f"ip:{self._client_ip(request)}"

    def _client_ip(self, request: Request) -> str:
        forwarded = [part.strip() for part in request.headers.get("X-Forwarded-For", "").split(",") if part.strip()]
        if forwarded:
            position = self._proxies + 1
            return forwarded[-position] if 0 < self._proxies and position <= len(forwarded) else forwarded[0]
        real_ip = request.headers.get("X-Real-IP", "").strip()
        if real_ip:
            return real_ip
        return request.client.host if request.client else "unknown"

    def _sweep(self, now: float) -> None:
        idle = [key for key, window in self._windows.items() if window.idle(now)]
        for key in idle:
            del self._windows[key]
        if idle:
            logger.debug("rate_limit.sweep", removed_keys=len(idle))
