from __future__ import annotations

from typing import Any, Callable, Iterator

import pytest

from app.api.dependencies import get_books_source
from app.main import app
from app.middleware.rate_limit import limiter
from app.observability.metrics import reset
from app.schemas.books import Book


@pytest.fixture(autouse=True)
def _clean_state() -> Iterator[None]:
    limiter.reset()
    reset()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def use_books_source() -> Callable[[Any], None]:
    def _override(source: Any) -> None:
        app.dependency_overrides[get_books_source] = lambda: source

    return _override


@pytest.fixture
def sample_books() -> list[Book]:
    return [
        Book(id=1, name="First", author="A", units_sold=100, price=20),
        Book(id=2, name="Second", author="B", units_sold=200, price=15),
        Book(id=3, name="Third", author="A", units_sold=300, price=25),
    ]
