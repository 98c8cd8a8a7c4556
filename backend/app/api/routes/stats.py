from __future__ import annotations

from fastapi import APIRouter

from app.observability.metrics import snapshot


router = APIRouter()


@router.get("/stats")
def get_stats() -> dict[str, object]:
    return snapshot()
