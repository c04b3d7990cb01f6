"""Redis fixed-window rate limiting.

Rules:
  - Every request:          RATE_LIMIT_GLOBAL_MAX per RATE_LIMIT_GLOBAL_WINDOW_SECONDS per client
  - Order writes (POST/DELETE under /orders): RATE_LIMIT_ORDER_WRITES_PER_MINUTE per client

A client is the token's user id when a valid Bearer token is present, else the
first X-Forwarded-For hop, else the socket peer address.

Counting is INCR + EXPIRE NX on "ratelimit:{group}:{client}", sent together in
one MULTI/EXEC pipeline so a counter never outlives its window. If Redis is
unreachable the request is let through and a warning is logged.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from config.settings import settings
from src.sx_common.errors import InvalidCredentialsError, RateLimitError
from src.sx_common.redis_client import get_redis
from src.sx_common.response import error_response
from src.sx_gateway.auth.jwt_handler import decode_token

logger = logging.getLogger(__name__)

_ORDER_WRITE_METHODS = frozenset({"POST", "DELETE"})
_ORDER_PATH_PREFIX = "/api/v1/orders"


@dataclass(frozen=True)
class RateLimitRule:
    group: str
    limit: int
    window_seconds: int


GLOBAL_RULE = RateLimitRule(
    "global", settings.RATE_LIMIT_GLOBAL_MAX, settings.RATE_LIMIT_GLOBAL_WINDOW_SECONDS
)
ORDER_WRITE_RULE = RateLimitRule("orders", settings.RATE_LIMIT_ORDER_WRITES_PER_MINUTE, 60)


def rules_for(request: Request) -> list[RateLimitRule]:
    rules = [GLOBAL_RULE]
    if request.method in _ORDER_WRITE_METHODS and request.url.path.startswith(_ORDER_PATH_PREFIX):
        rules.append(ORDER_WRITE_RULE)
    return rules


def client_identity(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            sub = decode_token(token).get("sub")
        except InvalidCredentialsError:
            sub = None
        if sub:
            return f"user:{sub}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        enabled: bool | None = None,
    ) -> None:
        super().__init__(app)
        self._redis_factory = redis_factory
        self._enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self._enabled:
            return await call_next(request)

        identity = client_identity(request)
        try:
            redis = await self._redis_factory()
            for rule in rules_for(request):
                key = f"ratelimit:{rule.group}:{identity}"
                async with redis.pipeline(transaction=True) as pipe:
                    pipe.incr(key)
                    # NX: only the first hit of a window sets the expiry
                    pipe.expire(key, rule.window_seconds, nx=True)
                    count, _ = await pipe.execute()
                if count > rule.limit:
                    retry_after = await redis.ttl(key)
                    logger.warning("Rate limit %s exceeded by %s", rule.group, identity)
                    return _too_many_requests(request, max(int(retry_after), 1))
        except RedisError:
            logger.warning("Rate limiter unavailable, letting request through", exc_info=True)

        return await call_next(request)


def _too_many_requests(request: Request, retry_after: int) -> JSONResponse:
    # Raised errors never reach the app's exception handlers from middleware
    err = RateLimitError()
    resp = error_response(
        err.code,
        err.message,
        err.kind.value,
        getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=err.http_status,
        content=resp.model_dump(),
        headers={"Retry-After": str(retry_after)},
    )
