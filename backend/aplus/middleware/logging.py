"""
A+ Marketplace Backend — Access Log Middleware
================================================

What:  One access-log line per API call: method, path, status, duration,
       request ID, client IP and, once the bearer guard has run, the
       caller's user id.
How:   The auth dependency stores the caller on `request.state.user_id`;
       the scope state is shared with this middleware, so it is readable
       after the response is produced. Static file hits and health checks are
       logged at DEBUG only.

Request bodies, uploads and Authorization headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from aplus.middleware.request_id import request_id_var

logger = logging.getLogger("aplus.access")

QUIET_PREFIXES = ("/health", "/api/v1/files/")


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        path = request.url.path
        status = response.status_code
        level = level_for_status(status)
        if status < 400 and path.startswith(QUIET_PREFIXES):
            level = logging.DEBUG
        if not logger.isEnabledFor(level):
            return response

        user_id = getattr(request.state, "user_id", None)
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        logger.log(
            level,
            "%s %s → %d in %.1fms [%s] ip=%s user=%s",
            request.method,
            path,
            status,
            elapsed_ms,
            rid,
            client_ip,
            user_id or "-",
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(elapsed_ms, 2),
                "client_ip": client_ip,
                "user_id": str(user_id) if user_id else None,
            },
        )
        return response
