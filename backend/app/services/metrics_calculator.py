from __future__ import annotations

from typing import Protocol, Sequence

from app.schemas.books import Book


def mean_units_sold(books: Sequence[Book]) -> float:
    if not books:
        return 0
    return sum(book.units_sold for book in books) / len(books)


def cheapest_book(books: Sequence[Book]) -> Book | None:
    if not books:
        return None
    # min() keeps the first of equal keys
    return min(books, key=lambda book: book.price)


def books_by_author(books: Sequence[Book], author: str | None) -> list[Book]:
    """Books whose author matches ``author`` ignoring case.

    A missing or empty ``author`` means no filter was asked for, which
    yields an empty list rather than every book.
    """
    if not author:
        return []
    target = author.lower()
    return [book for book in books if book.author.lower() == target]


class MetricsCalculator(Protocol):
    def calculate_mean_units_sold(self, books: Sequence[Book]) -> float: ...

    def find_cheapest_book(self, books: Sequence[Book]) -> Book | None: ...

    def find_books_by_author(self, books: Sequence[Book], author: str | None) -> list[Book]: ...


class BookMetricsCalculator:
    def calculate_mean_units_sold(self, books: Sequence[Book]) -> float:
        return mean_units_sold(books)

    def find_cheapest_book(self, books: Sequence[Book]) -> Book | None:
        return cheapest_book(books)

    def find_books_by_author(self, books: Sequence[Book], author: str | None) -> list[Book]:
        return books_by_author(books, author)
