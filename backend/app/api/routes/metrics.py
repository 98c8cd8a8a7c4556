from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_metrics_service
from app.middleware.rate_limit import limiter, metrics_rate_limit
from app.schemas.books import MetricsErrorResponse, MetricsResponse
from app.services.metrics_service import MetricsService


router = APIRouter()


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    responses={
        404: {"model": MetricsErrorResponse},
        429: {"model": MetricsErrorResponse},
        500: {"model": MetricsErrorResponse},
        502: {"model": MetricsErrorResponse},
        503: {"model": MetricsErrorResponse},
        504: {"model": MetricsErrorResponse},
    },
)
@limiter.limit(metrics_rate_limit)
async def get_metrics(
    request: Request,
    author: str | None = Query(default=None),
    metrics_service: MetricsService = Depends(get_metrics_service),
) -> JSONResponse:
    del request  # required by slowapi decorator
    status_code, body = await metrics_service.respond(author)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
