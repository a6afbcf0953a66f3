"""
A+ Marketplace Backend — Request ID Middleware
================================================

What:  Correlation ID per request, echoed in the `X-Request-ID` header and
       returned in every error envelope.
How:   A client-supplied ID is accepted only if it is short and made of
       safe characters (it ends up in log lines); otherwise a fresh 12-hex
       ID is generated. Stored in a ContextVar for services and handlers,
       and on `request.state` for routes.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def accept_request_id(candidate: str) -> str:
    """The caller's ID when it is log-safe, else a generated one."""
    if candidate and _SAFE_ID.match(candidate):
        return candidate
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
