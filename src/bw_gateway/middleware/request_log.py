"""Request logging middleware.

One line per HTTP request: method, path, status, latency and a short request
id. The request id is injected into request.state for the response envelope.
Money endpoints also log the idempotency key their operation ran under, so a
failed request and its replay can be matched; 5xx lines are WARNING.

Log format:
    INFO [POST] /api/v1/transfers → 200 (23ms) req_a1b2c3d4e5f6 key=9f1c...
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("bw.request")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = f"req_{uuid.uuid4().hex[:12]}"

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        key = getattr(request.state, "idempotency_key", None)
        logger.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            "[%s] %s → %d (%.0fms) %s%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
            f" key={key}" if key else "",
        )
        return response
