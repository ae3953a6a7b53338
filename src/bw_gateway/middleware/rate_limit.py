"""Rate limiting for money-moving endpoints.

Fixed-window counter in Redis:
  key   "ratelimit:{caller}:{minute_window}"
  INCR, EXPIRE 60 on first hit, reject above RATE_LIMIT_PER_MINUTE.

Caller is the bearer token subject when present (unverified here; the
router verifies it), otherwise the client IP from X-Forwarded-For or the
socket. Redis failures fail open: the request proceeds and a warning is logged.
"""

import logging
import time

from jose import JWTError, jwt
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from config.settings import settings
from src.bw_common.errors import RateLimitError
from src.bw_common.redis_client import get_redis
from src.bw_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60

# Path fragments of POST endpoints that move money
_LIMITED_SUFFIXES: tuple[str, ...] = ("/transfers", "/purchase", "/top-up")


def is_limited(method: str, path: str) -> bool:
    return method == "POST" and path.rstrip("/").endswith(_LIMITED_SUFFIXES)


def caller_key(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        try:
            sub = jwt.get_unverified_claims(auth[7:]).get("sub")
        except JWTError:
            sub = None
        if sub:
            return f"user:{sub}"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not is_limited(request.method, request.url.path):
            return await call_next(request)

        window = int(time.time()) // _WINDOW_SECONDS
        key = f"ratelimit:{caller_key(request)}:{window}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except (RedisError, OSError) as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return await call_next(request)

        if count > settings.RATE_LIMIT_PER_MINUTE:
            err = RateLimitError()
            retry_after = _WINDOW_SECONDS - int(time.time()) % _WINDOW_SECONDS
            return JSONResponse(
                status_code=err.http_status,
                content=error_response(
                    err.code, err.message, request_id=getattr(request.state, "request_id", None)
                ).model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
