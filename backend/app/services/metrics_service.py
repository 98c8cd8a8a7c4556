from __future__ import annotations

import logging
from typing import Sequence

from app.observability.metrics import increment
from app.schemas.books import Book, MetricsErrorResponse, MetricsResponse
from app.services.books_source import BooksFetchError, BooksSource
from app.services.metrics_calculator import BookMetricsCalculator, MetricsCalculator

logger = logging.getLogger(__name__)

INTERNAL_ERROR = (500, "Internal server error")

# Matched against the wrapped upstream message, first hit wins.
# TODO: switch to BooksFetchError.status_code once every BooksSource sets it.
_ERROR_STATUS_MAP: tuple[tuple[str, int, str], ...] = (
    ("Resource not found (404)", 404, "Books data not found"),
    ("Too many requests (429)", 429, "Rate limit exceeded. Please try again later."),
    ("Service unavailable (503)", 503, "Books service temporarily unavailable"),
    ("Gateway timeout (504)", 504, "Books service timeout"),
    ("Bad gateway (502)", 502, "Books service temporarily unavailable"),
)


def map_error_to_status(error: BaseException) -> tuple[int, str]:
    message = str(error)
    for needle, status_code, public_message in _ERROR_STATUS_MAP:
        if needle in message:
            return status_code, public_message
    return INTERNAL_ERROR


class MetricsService:
    def __init__(self, books_source: BooksSource, calculator: MetricsCalculator | None = None) -> None:
        self._books_source = books_source
        self._calculator = calculator or BookMetricsCalculator()

    def generate_metrics(self, books: Sequence[Book], author: str | None = None) -> MetricsResponse:
        return MetricsResponse(
            mean_units_sold=self._calculator.calculate_mean_units_sold(books),
            cheapest_book=self._calculator.find_cheapest_book(books),
            books_written_by_author=self._calculator.find_books_by_author(books, author) if author else [],
        )

    async def respond(self, author: str | None = None) -> tuple[int, MetricsResponse]:
        try:
            books = await self._books_source.get_books()
            metrics = self.generate_metrics(books, author)
        except Exception as exc:
            status_code, public_message = map_error_to_status(exc)
            increment("metrics.request", labels={"status": status_code})
            # BooksFetchError was already logged with its traceback by the source
            logger.error(
                "Error in metrics route",
                exc_info=not isinstance(exc, BooksFetchError),
                extra={"author": author, "status_code": status_code, "error_code": type(exc).__name__},
            )
            return status_code, MetricsErrorResponse(error=public_message)

        increment("metrics.request", labels={"status": 200})
        return 200, metrics
