import logging
import time
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .application.ports.rate_limiter import RateLimiter
from .config import settings
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter

logger = logging.getLogger(__name__)


def build_rate_limiter(redis_url: Optional[str] = None) -> RateLimiter:
    if redis_url:
        from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(redis_url)
    return InMemoryRateLimiter()


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, limiter: Optional[RateLimiter] = None, rate_limit: Optional[int] = None):
        super().__init__(app)
        self.limiter = limiter or build_rate_limiter(settings.REDIS_URL)
        self.rate_limit = rate_limit or settings.RATE_LIMIT_PER_MINUTE

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if not self.limiter.allow(f"ip:{client_ip}", self.rate_limit, 60):
            logger.warning(f"Rate limit exceeded for IP: {client_ip}")
            return JSONResponse(
                status_code=429,
                content={"success": False, "data": None, "error": "Rate limit exceeded. Please try again later."}
            )
        return await call_next(request)


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(f"Response: {response.status_code} {request.method} {request.url.path} in {duration:.3f}s")

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(e)}", exc_info=True)
            error = f"Internal server error: {str(e)}" if settings.DEBUG else "Internal server error"
            return JSONResponse(
                status_code=500,
                content={"success": False, "data": None, "error": error}
            )
