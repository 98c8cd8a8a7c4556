from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.dependencies import build_books_source
from app.api.router import api_router
from app.core.config import get_app_config
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from app.observability.logging import configure_logging, get_logger
from app.observability.request_id import RequestIDMiddleware


configure_logging()
logger = get_logger(__name__)
config = get_app_config()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.books_source = build_books_source(config.upstream)
    logger.info(
        "books source ready",
        extra={"source": config.upstream.source, "url": config.upstream.books_api_url},
    )
    yield


app = FastAPI(title="Book Metrics API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.server.frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=config.server.port, log_config=None)
