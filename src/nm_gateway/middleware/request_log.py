"""Request logging middleware.

Every request gets a request id: the caller's X-Request-ID when it is a
plausible token, otherwise a fresh one. The id goes into request.state (so
ApiResponse envelopes carry it) and back out in the X-Request-ID header.

Log format:
    INFO [POST] /api/v1/notes/3/purchase → 200 (12ms) req_1f2e3d4c5b6a
Server errors are logged at WARNING.
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("nm.request")

_CLIENT_ID = re.compile(r"[A-Za-z0-9_.-]{1,64}")


def resolve_request_id(header: str | None) -> str:
    if header and _CLIENT_ID.fullmatch(header):
        return header
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = resolve_request_id(request.headers.get("X-Request-ID"))

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response
