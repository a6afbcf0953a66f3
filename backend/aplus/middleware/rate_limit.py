"""
A+ Marketplace Backend — Rate Limiting Middleware
===================================================

What:  Per-IP sliding-window limits with a tighter bucket for credential
       and money-moving endpoints.
How:   Each (bucket, client IP) pair keeps its request timestamps in memory.
       A request that would exceed its bucket's limit gets a 429 envelope
       with Retry-After.

Buckets:
    sensitive: POST login/register, purchases, payment links, withdrawal
               requests. Limited to `rate_limit_sensitive_requests`.
    default:   everything else. Limited to `rate_limit_requests`.

The state is per process. With several uvicorn workers each one enforces
its own limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from aplus.config import settings
from aplus.exceptions import RateLimitExceededError
from aplus.middleware.request_id import REQUEST_ID_HEADER, accept_request_id

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "default"
SENSITIVE_BUCKET = "sensitive"

EXCLUDED_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})

SENSITIVE_POST_PATHS = frozenset({
    "/api/v1/users/login",
    "/api/v1/users/register",
    "/api/v1/purchase",
    "/api/v1/notes/create-payment-link",
    "/api/v1/withdrawals",
})


def bucket_for(method: str, path: str) -> str:
    if method != "POST":
        return DEFAULT_BUCKET
    if path in SENSITIVE_POST_PATHS:
        return SENSITIVE_BUCKET
    if path.startswith("/api/v1/notes/") and path.endswith("/purchase"):
        return SENSITIVE_BUCKET
    return DEFAULT_BUCKET


def limit_for(bucket: str) -> int:
    if bucket == SENSITIVE_BUCKET:
        return settings.rate_limit_sensitive_requests
    return settings.rate_limit_requests


class RateLimitMiddleware(BaseHTTPMiddleware):

    # Sweep idle keys after this many admitted requests
    CLEANUP_EVERY = 1000

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._hits: Dict[Tuple[str, str], Deque[float]] = defaultdict(deque)
        self._admitted = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket = bucket_for(request.method, path)
        limit = limit_for(bucket)
        now = time.time()
        window_start = now - settings.rate_limit_window

        hits = self._hits[(bucket, client_ip)]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= limit:
            retry_after = int(hits[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit hit: ip=%s bucket=%s %d requests in %ds",
                client_ip,
                bucket,
                len(hits),
                settings.rate_limit_window,
            )
            return self._reject(request, RateLimitExceededError(retry_after=retry_after))

        hits.append(now)
        self._admitted += 1
        if self._admitted % self.CLEANUP_EVERY == 0:
            self._forget_idle(window_start)

        return await call_next(request)

    @staticmethod
    def _reject(request: Request, exc: RateLimitExceededError) -> JSONResponse:
        # Runs before RequestIDMiddleware and outside the exception handlers
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_type,
                "message": exc.message,
                "details": exc.details,
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after), REQUEST_ID_HEADER: rid},
        )

    def _forget_idle(self, window_start: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Dropped %d idle rate-limit keys", len(idle))
