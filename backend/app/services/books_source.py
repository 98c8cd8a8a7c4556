from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import TypeAdapter

from app.clients.http_retry import HttpRetryClient
from app.core.config import DEFAULT_BOOKS_API_URL
from app.schemas.books import Book

logger = logging.getLogger(__name__)

_BOOK_LIST = TypeAdapter(list[Book])

MOCK_BOOKS: tuple[Book, ...] = (
    Book(id=1, name="Node.js Design Patterns", author="Mario Casciaro", units_sold=5000, price=40),
    Book(id=2, name="Clean Code", author="Robert C. Martin", units_sold=15000, price=50),
    Book(id=3, name="The Pragmatic Programmer", author="Andrew Hunt", units_sold=13000, price=45),
)


class BooksFetchError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BooksSource(Protocol):
    async def get_books(self) -> list[Book]: ...


def _parse_books(payload: Any) -> list[Book]:
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of books, got {type(payload).__name__}")
    return _BOOK_LIST.validate_python(payload)


class HttpBooksSource:
    def __init__(self, http_client: HttpRetryClient | None = None, api_url: str = DEFAULT_BOOKS_API_URL) -> None:
        self._http_client = http_client or HttpRetryClient()
        self._api_url = api_url

    @property
    def api_url(self) -> str:
        return self._api_url

    async def get_books(self) -> list[Book]:
        try:
            payload = await self._http_client.get(self._api_url)
            return _parse_books(payload)
        except Exception as exc:
            logger.exception("Error fetching books from API", extra={"url": self._api_url})
            message = str(exc)
            status_code = getattr(exc, "status_code", None)
            if message:
                raise BooksFetchError(f"Failed to fetch books: {message}", status_code=status_code) from exc
            raise BooksFetchError("Failed to fetch books from external service", status_code=status_code) from exc


class MockBooksSource:
    def __init__(self, books: list[Book] | None = None) -> None:
        self._books = list(MOCK_BOOKS) if books is None else list(books)

    async def get_books(self) -> list[Book]:
        return list(self._books)
