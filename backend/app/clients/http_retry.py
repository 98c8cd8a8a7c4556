from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Protocol

import httpx

from app.clients.errors import (
    AttemptFailure,
    UpstreamExhaustedError,
    UpstreamFatalError,
    translate_failure,
)
from app.core.config import RetryConfig
from app.observability.metrics import increment, timed

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10.0
JITTER_RATIO = 0.1
# 2 ** 40 ms is decades; past that max_delay_ms always wins
MAX_BACKOFF_EXPONENT = 40


class RetryObserver(Protocol):
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        message: str,
        delay_ms: float,
        url: str,
    ) -> None: ...


def log_retry(*, attempt: int, max_attempts: int, message: str, delay_ms: float, url: str) -> None:
    increment("upstream.retry")
    logger.warning(
        "HTTP request failed (attempt %s/%s): %s. Retrying in %sms...",
        attempt,
        max_attempts,
        message,
        round(delay_ms),
        extra={
            "attempt": attempt,
            "max_attempts": max_attempts,
            "delay_ms": delay_ms,
            "url": url,
        },
    )


class HttpRetryClient:
    """GET-only HTTP client with bounded exponential backoff.

    Transport failures and responses whose status is listed in
    ``RetryConfig.retryable_status_codes`` are retried up to
    ``max_retries`` times. Everything else that httpx raises is translated
    into an ``UpstreamError`` and raised on the spot; exceptions that do not
    come from httpx are left alone.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        on_retry: RetryObserver | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        jitter: Callable[[], float] | None = None,
    ) -> None:
        self._config = config or RetryConfig()
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport
        self._on_retry = on_retry or log_retry
        self._sleep = sleep or asyncio.sleep
        self._jitter = jitter or random.random

    @property
    def config(self) -> RetryConfig:
        return self._config

    def calculate_delay(self, attempt: int) -> float:
        exponent = min(attempt - 1, MAX_BACKOFF_EXPONENT)
        exponential_delay = self._config.base_delay_ms * (2**exponent)
        jitter = self._jitter() * JITTER_RATIO * exponential_delay
        return max(0.0, min(exponential_delay + jitter, self._config.max_delay_ms))

    def _classify(self, exc: httpx.HTTPError, url: str) -> AttemptFailure:
        if isinstance(exc, httpx.HTTPStatusError):
            status_code = exc.response.status_code
            return AttemptFailure(
                retryable=status_code in self._config.retryable_status_codes,
                message=f"Request failed with status code {status_code}",
                url=str(exc.request.url),
                status_code=status_code,
                status_text=exc.response.reason_phrase,
            )
        # no response at all: refused, reset, timed out
        return AttemptFailure(retryable=True, message=str(exc) or type(exc).__name__, url=url)

    async def _request(self, url: str) -> Any:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.json()

    async def get(self, url: str) -> Any:
        max_attempts = self._config.max_attempts

        for attempt in range(1, max_attempts + 1):
            increment("upstream.attempt")
            try:
                with timed("upstream.latency_ms"):
                    payload = await self._request(url)
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                failure = self._classify(exc, url)
                increment("upstream.failure", labels={"status": failure.status_code or "network"})

                if not failure.retryable:
                    raise UpstreamFatalError(
                        translate_failure(failure),
                        status_code=failure.status_code,
                        url=failure.url,
                        attempts=attempt,
                    ) from exc
                if attempt == max_attempts:
                    raise UpstreamExhaustedError(
                        translate_failure(failure),
                        status_code=failure.status_code,
                        url=failure.url,
                        attempts=attempt,
                    ) from exc

                delay_ms = self.calculate_delay(attempt)
                self._on_retry(
                    attempt=attempt,
                    max_attempts=max_attempts,
                    message=failure.message,
                    delay_ms=delay_ms,
                    url=url,
                )
            else:
                return payload

            await self._sleep(delay_ms / 1000.0)

        raise RuntimeError("retry loop exited without a result")
