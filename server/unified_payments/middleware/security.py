"""
Security middleware for the Unified Payments API
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from unified_payments.core.logging import get_logger

logger = get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """Get client IP address from request."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "script-src 'self'; "
            "img-src 'self' data: https:;"
        )

        # HSTS (only with HTTPS)
        if request.url.scheme == "https":
            response.headers[
                "Strict-Transport-Security"
            ] = "max-age=31536000; includeSubDomains"

        return response


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0


class RateLimiter:
    """
    Per-key request counter over a fixed window.

    The window for a key starts with its first request and is reset once it
    has expired. Requests beyond ``max_requests`` inside the window are
    rejected with the seconds left until the reset.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
        max_tracked_keys: int = 10_000,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._max_tracked_keys = max_tracked_keys
        self._counters: Dict[str, Dict[str, float]] = {}

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        counter = self._counters.get(key)

        if counter is None or now > counter["reset_time"]:
            if counter is None and len(self._counters) >= self._max_tracked_keys:
                self._make_room(now)
            counter = {"count": 0, "reset_time": now + self.window_seconds}
            self._counters[key] = counter

        counter["count"] += 1

        if counter["count"] > self.max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_at=counter["reset_time"],
                retry_after=max(1, math.ceil(counter["reset_time"] - now)),
            )

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - int(counter["count"]),
            reset_at=counter["reset_time"],
        )

    def _make_room(self, now: float) -> None:
        expired = [key for key, counter in self._counters.items() if now > counter["reset_time"]]
        for key in expired:
            del self._counters[key]

        # Table still full of live windows: drop the one closest to resetting.
        if len(self._counters) >= self._max_tracked_keys:
            soonest = min(self._counters, key=lambda key: self._counters[key]["reset_time"])
            del self._counters[soonest]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limit ``/api`` requests per client IP.

    Payment mutations (``POST /api/payments/...``) also count against a
    stricter second limiter.
    """

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        payment_limiter: Optional[RateLimiter] = None,
        path_prefix: str = "/api",
        payment_path_prefix: str = "/api/payments/",
    ):
        super().__init__(app)
        self.limiter = limiter
        self.payment_limiter = payment_limiter
        self.path_prefix = path_prefix
        self.payment_path_prefix = payment_path_prefix

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not path.startswith(self.path_prefix):
            return await call_next(request)

        key = get_client_ip(request)

        decision = self.limiter.hit(key)
        if not decision.allowed:
            return self._reject(self.limiter, decision, path)

        if (
            self.payment_limiter is not None
            and request.method == "POST"
            and path.startswith(self.payment_path_prefix)
        ):
            payment_decision = self.payment_limiter.hit(key)
            if not payment_decision.allowed:
                return self._reject(self.payment_limiter, payment_decision, path)

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)

        return response

    def _reject(self, limiter: RateLimiter, decision: RateLimitDecision, path: str) -> JSONResponse:
        logger.warning("rate_limit.exceeded", path=path, limit=decision.limit, retry_after=decision.retry_after)
        return JSONResponse(
            status_code=429,
            content={
                "success": False,
                "error": "Rate limit exceeded",
                "message": (
                    f"Too many requests. Limit: {limiter.max_requests} requests "
                    f"per {limiter.window_seconds / 60:g} minutes"
                ),
                "retryAfter": decision.retry_after,
            },
            headers={"Retry-After": str(decision.retry_after)},
        )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all HTTP requests."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.time()

        logger.info(
            "http.request_started",
            method=request.method,
            path=request.url.path,
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("User-Agent", ""),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "http.request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                process_time=f"{time.time() - start_time:.4f}",
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            "http.request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=f"{process_time:.4f}",
        )
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        return response
