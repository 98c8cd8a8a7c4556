from datetime import datetime, timezone

from fastapi import APIRouter

from app.schemas.books import HealthResponse


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc).isoformat())
