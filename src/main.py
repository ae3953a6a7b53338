"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.bw_catalog.api.router import library_router, marketplace_router
from src.bw_common.errors import AppError
from src.bw_common.redis_client import close_redis, get_redis
from src.bw_common.response import error_response
from src.bw_gateway.middleware.rate_limit import RateLimitMiddleware
from src.bw_gateway.middleware.request_log import RequestLogMiddleware
from src.bw_ledger.api.router import router as wallet_router
from src.bw_orchestrator.api.router import router as transactions_router
from src.bw_transfer.api.router import router as transfer_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB (postgres backend) + Redis. Shutdown: dispose."""
    # Startup
    if settings.STORE_BACKEND == "postgres":
        from src.bw_common.database import engine

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    await get_redis()
    logger.info("%s started: store=%s", settings.APP_NAME, settings.STORE_BACKEND)
    yield
    # Shutdown
    if settings.STORE_BACKEND == "postgres":
        from src.bw_common.database import engine

        await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "Request failed: %s %s code=%d category=%s",
            request.method, request.url.path, exc.code, exc.category.value,
            exc_info=exc,
        )
    resp = error_response(
        exc.code,
        exc.message,
        request_id=getattr(request.state, "request_id", None),
        idempotency_key=(
            getattr(request.state, "idempotency_key", None) if exc.retriable else None
        ),
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(wallet_router, prefix="/api/v1")
app.include_router(marketplace_router, prefix="/api/v1")
app.include_router(library_router, prefix="/api/v1")
app.include_router(transactions_router, prefix="/api/v1")
app.include_router(transfer_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0", "store": settings.STORE_BACKEND}
