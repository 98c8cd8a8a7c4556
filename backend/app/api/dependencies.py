from __future__ import annotations

from fastapi import Depends, Request

from app.clients.http_retry import HttpRetryClient
from app.core.config import UpstreamConfig
from app.services.books_source import BooksSource, HttpBooksSource, MockBooksSource
from app.services.metrics_service import MetricsService


def build_books_source(upstream: UpstreamConfig) -> BooksSource:
    if upstream.source == "mock":
        return MockBooksSource()
    http_client = HttpRetryClient(upstream.retry, timeout_seconds=upstream.timeout_seconds)
    return HttpBooksSource(http_client, api_url=upstream.books_api_url)


def get_books_source(request: Request) -> BooksSource:
    return request.app.state.books_source


def get_metrics_service(books_source: BooksSource = Depends(get_books_source)) -> MetricsService:
    return MetricsService(books_source)
