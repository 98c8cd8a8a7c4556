from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

import httpx
from fastapi.testclient import TestClient

from app.clients.http_retry import HttpRetryClient
from app.core.config import RetryConfig
from app.main import app
from app.observability.logging import JsonFormatter
from app.services.books_source import HttpBooksSource
from app.tests.fakes import FailingBooksSource


UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
BOOKS_URL = "http://books.test/api/v1/books"


def _flaky_books_source(first_status: int = 503) -> HttpBooksSource:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(first_status)
        return httpx.Response(
            200,
            json=[{"id": 1, "name": "Book", "author": "A", "units_sold": 10, "price": 3}],
        )

    async def no_sleep(seconds: float) -> None:
        return None

    client = HttpRetryClient(
        RetryConfig(max_retries=2, base_delay_ms=5),
        transport=httpx.MockTransport(handler),
        sleep=no_sleep,
    )
    return HttpBooksSource(client, api_url=BOOKS_URL)


def test_request_id_passthrough_header() -> None:
    with TestClient(app) as client:
        response = client.get("/health", headers={"X-Request-ID": "abc"})

    assert response.status_code == 200
    assert response.headers.get("X-Request-ID") == "abc"


def test_request_id_generated_when_missing() -> None:
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    request_id = response.headers.get("X-Request-ID")
    assert request_id is not None
    assert UUID_RE.match(request_id) is not None


def test_stats_count_upstream_attempts_and_retries(use_books_source: Callable[[Any], None]) -> None:
    use_books_source(_flaky_books_source())

    with TestClient(app) as client:
        metrics = client.get("/metrics")
        stats = client.get("/stats")

    assert metrics.status_code == 200
    assert stats.status_code == 200

    counters = stats.json()["counters"]
    timers = stats.json()["timers_ms"]
    assert counters["upstream.attempt"] == 2
    assert counters["upstream.retry"] == 1
    assert counters["upstream.failure{status=503}"] == 1
    assert counters["metrics.request{status=200}"] == 1
    assert timers["upstream.latency_ms"]["count"] == 2


def test_stats_count_mapped_failures(use_books_source: Callable[[Any], None]) -> None:
    use_books_source(_flaky_books_source(first_status=404))

    with TestClient(app) as client:
        metrics = client.get("/metrics")
        stats = client.get("/stats")

    assert metrics.status_code == 404
    counters = stats.json()["counters"]
    assert counters["upstream.attempt"] == 1
    assert "upstream.retry" not in counters
    assert counters["metrics.request{status=404}"] == 1


def test_retry_logs_include_request_id(use_books_source: Callable[[Any], None], caplog: Any) -> None:
    use_books_source(_flaky_books_source())
    caplog.set_level(logging.INFO)
    formatter = JsonFormatter()

    with TestClient(app) as client:
        response = client.get("/metrics", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200

    json_logs: list[dict[str, Any]] = []
    for record in caplog.records:
        if record.name.startswith("app."):
            json_logs.append(json.loads(formatter.format(record)))

    retry_logs = [log for log in json_logs if log["logger"] == "app.clients.http_retry"]
    assert len(retry_logs) == 1
    assert retry_logs[0]["level"] == "WARNING"
    assert retry_logs[0]["request_id"] == "req-123"
    assert retry_logs[0]["attempt"] == 1
    assert retry_logs[0]["max_attempts"] == 3
    assert retry_logs[0]["url"] == BOOKS_URL

    access_logs = [log for log in json_logs if log["message"] == "http.request.complete"]
    assert any(log["request_id"] == "req-123" and log["status_code"] == 200 for log in access_logs)


def test_failed_fetch_is_logged_server_side(use_books_source: Callable[[Any], None], caplog: Any) -> None:
    use_books_source(_flaky_books_source(first_status=404))
    caplog.set_level(logging.ERROR)

    with TestClient(app) as client:
        response = client.get("/metrics")

    assert response.json()["error"] == "Books data not found"
    messages = {record.getMessage() for record in caplog.records}
    assert "Error fetching books from API" in messages
    assert "Error in metrics route" in messages


def test_upstream_failure_traceback_logged_once(use_books_source: Callable[[Any], None], caplog: Any) -> None:
    use_books_source(_flaky_books_source(first_status=404))
    caplog.set_level(logging.ERROR)

    with TestClient(app) as client:
        client.get("/metrics")

    with_traceback = [record for record in caplog.records if record.exc_info]
    assert [record.name for record in with_traceback] == ["app.services.books_source"]
    boundary = [record for record in caplog.records if record.name == "app.services.metrics_service"]
    assert len(boundary) == 1
    assert boundary[0].status_code == 404


def test_unexpected_error_traceback_logged_at_boundary(use_books_source: Callable[[Any], None], caplog: Any) -> None:
    use_books_source(FailingBooksSource(KeyError("missing")))
    caplog.set_level(logging.ERROR)

    with TestClient(app) as client:
        client.get("/metrics")

    boundary = [record for record in caplog.records if record.name == "app.services.metrics_service"]
    assert len(boundary) == 1
    assert boundary[0].exc_info is not None
    assert boundary[0].exc_info[0] is KeyError
