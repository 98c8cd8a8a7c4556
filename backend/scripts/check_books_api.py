#!/usr/bin/env python3
"""
Probe the configured books endpoint the same way the API does.

- Loads config the same way the API does (config/books.yml, .env, env vars)
- Fetches the book list through the retrying client
- Prints the computed metrics, or the translated upstream error
- Exits non-zero when the upstream could not be read
"""

from __future__ import annotations

import asyncio
import sys

from app.api.dependencies import build_books_source
from app.core.config import get_app_config
from app.observability.logging import configure_logging
from app.services.books_source import BooksFetchError
from app.services.metrics_service import MetricsService


async def main(author: str | None = None) -> int:
    configure_logging("WARNING")
    upstream = get_app_config().upstream
    retry = upstream.retry
    print(f"Source: {upstream.source} ({upstream.books_api_url})")
    print(
        f"Retry: {retry.max_retries} retries, base {retry.base_delay_ms:.0f}ms, "
        f"max {retry.max_delay_ms:.0f}ms, on {sorted(retry.retryable_status_codes)}"
    )

    books_source = build_books_source(upstream)
    try:
        books = await books_source.get_books()
    except BooksFetchError as e:
        print(f"[ERROR] {e}")
        return 1

    metrics = MetricsService(books_source).generate_metrics(books, author)
    print(f"[OK] {len(books)} books")
    print(f"Mean units sold: {metrics.mean_units_sold:.2f}")
    if metrics.cheapest_book is not None:
        cheapest = metrics.cheapest_book
        print(f"Cheapest: {cheapest.name} by {cheapest.author} ({cheapest.price})")
    if author:
        print(f"Books by {author}: {len(metrics.books_written_by_author)}")
        for book in metrics.books_written_by_author:
            print(f" - {book.name}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None)))
