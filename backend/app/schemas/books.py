from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    author: str
    units_sold: int = Field(ge=0)
    price: float = Field(ge=0)


class MetricsResponse(BaseModel):
    mean_units_sold: float = 0
    cheapest_book: Book | None = None
    books_written_by_author: list[Book] = Field(default_factory=list)


class MetricsErrorResponse(MetricsResponse):
    error: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
