"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.nm_common.database import async_session_factory, engine, ping_database
from src.nm_common.errors import AppError
from src.nm_common.redis_client import close_redis, get_redis
from src.nm_common.response import error_response
from src.nm_gateway.api.router import router as auth_router
from src.nm_gateway.middleware.rate_limit import RateLimitMiddleware
from src.nm_gateway.middleware.request_log import RequestLogMiddleware
from src.nm_ledger.api.admin_router import router as admin_router
from src.nm_ledger.api.dependencies import get_ledger_service
from src.nm_ledger.api.notes_router import router as notes_router
from src.nm_ledger.api.users_router import router as users_router
from src.nm_storage.api.router import router as uploads_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, replay the ledger journal. Shutdown: dispose."""
    # Startup
    await ping_database()
    await get_redis()
    async with async_session_factory() as session:
        await get_ledger_service().restore(session)
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Outermost last: request logging wraps rate limiting
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(notes_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(uploads_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
