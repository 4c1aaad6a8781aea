"""Request logging and per-client rate limiting."""
import time

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .logging_config import get_logger

logger = get_logger("http")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    enabled=settings.rate_limit_enabled,
)


def _client(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request with status and duration; sets ``X-Process-Time``."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"{request.method} {request.url.path} from {_client(request)} "
                         f"failed after {elapsed:.1f}ms", exc_info=True)
            raise

        elapsed = (time.perf_counter() - started) * 1000
        log = logger.warning if response.status_code >= 400 else logger.info
        log(f"{request.method} {request.url.path} from {_client(request)} "
            f"-> {response.status_code} in {elapsed:.1f}ms")
        response.headers["X-Process-Time"] = f"{elapsed:.2f}ms"
        return response


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"rate limit hit by {_client(request)} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "limit": str(exc.detail),
            "path": request.url.path,
        },
        headers={"Retry-After": "60"},
    )
