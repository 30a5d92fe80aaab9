"""Sliding-window rate limiter middleware for challenge endpoints."""
import hashlib
import math
import time
from collections import defaultdict, deque

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from lovebug.config import settings

_LIMITED_PREFIXES = ("/challenges",)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client sliding-window limiter on challenge traffic.
    Allows RATE_LIMIT_REQUESTS requests per RATE_LIMIT_WINDOW_S seconds.
    Clients are keyed by a digest of the bearer token when present, else by IP.
    """

    def __init__(self, app):
        super().__init__(app)
        # client key → deque of request timestamps
        self._windows: dict[str, deque] = defaultdict(deque)
        self._last_sweep = 0.0

    def _client_key(self, request: Request) -> str:
        auth = request.headers.get("Authorization")
        if auth:
            return f"auth:{hashlib.sha256(auth.encode('utf-8')).hexdigest()}"
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def check(self, key: str, now: float) -> float | None:
        """Record a hit; return seconds until retry if the key is over the limit."""
        window = settings.rate_limit_window_s
        if now - self._last_sweep > window:
            self._sweep(now, window)
        dq = self._windows[key]

        while dq and now - dq[0] > window:
            dq.popleft()

        if len(dq) >= settings.rate_limit_requests:
            return max(0.0, window - (now - dq[0]))

        dq.append(now)
        return None

    def _sweep(self, now: float, window: float) -> None:
        """Drop clients whose newest hit has left the window."""
        stale = [k for k, dq in self._windows.items() if not dq or now - dq[-1] > window]
        for k in stale:
            del self._windows[k]
        self._last_sweep = now

    async def dispatch(self, request: Request, call_next) -> Response:
        if not request.url.path.startswith(_LIMITED_PREFIXES):
            return await call_next(request)

        retry_after = self.check(self._client_key(request), time.monotonic())
        if retry_after is not None:
            return Response(
                content='{"detail":"rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(math.ceil(retry_after))},
            )
        return await call_next(request)
