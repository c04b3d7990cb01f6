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
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from src.sx_book.api.router import router as book_router
from src.sx_common.database import engine
from src.sx_common.enums import ErrorKind
from src.sx_common.errors import AppError, InvalidCredentialsError, RequestValidationFailed
from src.sx_common.redis_client import close_redis, get_redis
from src.sx_common.response import error_response
from src.sx_gateway.middleware.rate_limit import RateLimitMiddleware
from src.sx_gateway.middleware.request_log import RequestLogMiddleware
from src.sx_order.api.router import router as order_router
from src.sx_trade.api.history_router import router as history_router
from src.sx_trade.api.trades_router import router as trades_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# HTTP errors raised by FastAPI itself (auth scheme, unknown routes) -> ErrorKind
_HTTP_STATUS_KIND = {
    401: ErrorKind.FORBIDDEN,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.INVALID_OPERATION,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if settings.RATE_LIMIT_ENABLED:
        try:
            redis = await get_redis()
            await redis.ping()
        except RedisError:
            logger.warning(
                "Redis unreachable at startup; rate limiting will fail open", exc_info=True
            )
    logger.info("%s %s started", settings.APP_NAME, VERSION)
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version=VERSION,
    lifespan=lifespan,
)


# Last added runs first: request ids exist before the rate limiter answers
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, exc.kind.value, _request_id(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    err = RequestValidationFailed(detail)
    resp = error_response(err.code, err.message, err.kind.value, _request_id(request))
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 401:
        err = InvalidCredentialsError()
        code, message, kind = err.code, err.message, err.kind
    else:
        code = exc.status_code
        message = str(exc.detail)
        kind = _HTTP_STATUS_KIND.get(exc.status_code, ErrorKind.VALIDATION)
    resp = error_response(code, message, kind.value, _request_id(request))
    return JSONResponse(
        status_code=exc.status_code,
        content=resp.model_dump(),
        headers=getattr(exc, "headers", None),
    )


app.include_router(order_router, prefix="/api/v1")
app.include_router(book_router, prefix="/api/v1")
app.include_router(history_router, prefix="/api/v1")
app.include_router(trades_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": VERSION}
