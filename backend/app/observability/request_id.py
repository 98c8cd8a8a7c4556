from __future__ import annotations

import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.observability.logging import get_logger, reset_request_id, set_request_id
from app.observability.metrics import observe_ms

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags every request with an ``X-Request-ID`` and writes one access log line."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        token = set_request_id(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            latency_ms = (time.perf_counter() - started) * 1000.0
            observe_ms("http.request_ms", latency_ms, labels={"status": response.status_code})
            logger.info(
                "http.request.complete",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "latency_ms": round(latency_ms, 2),
                },
            )
        finally:
            reset_request_id(token)
        response.headers["X-Request-ID"] = request_id
        return response
