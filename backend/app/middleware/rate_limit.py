from functools import lru_cache

from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.core.config import get_app_config
from app.observability.logging import get_logger
from app.schemas.books import MetricsErrorResponse


limiter = Limiter(key_func=get_remote_address)
logger = get_logger(__name__)


@lru_cache(maxsize=1)
def metrics_rate_limit() -> str:
    return get_app_config().server.metrics_rate_limit


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "rate limit exceeded: %s",
        exc.detail,
        extra={"method": request.method, "path": request.url.path, "status_code": 429},
    )
    body = MetricsErrorResponse(error="Rate limit exceeded. Please try again later.")
    return JSONResponse(status_code=429, content=body.model_dump(mode="json"))
