from __future__ import annotations

from dataclasses import dataclass


_STATUS_MESSAGES = {
    429: "Too many requests (429). Please try again later.",
    500: "Internal server error (500). The external service is experiencing issues.",
    502: "Bad gateway (502). The external service is temporarily unavailable.",
    503: "Service unavailable (503). The external service is temporarily down.",
    504: "Gateway timeout (504). The external service took too long to respond.",
}


@dataclass(frozen=True)
class AttemptFailure:
    """Outcome of one failed GET, before translation.

    ``status_code`` is ``None`` when no response was received at all.
    """

    retryable: bool
    message: str
    url: str
    status_code: int | None = None
    status_text: str | None = None


class UpstreamError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.attempts = attempts


class UpstreamFatalError(UpstreamError):
    pass


class UpstreamExhaustedError(UpstreamError):
    pass


def translate_failure(failure: AttemptFailure) -> str:
    if failure.status_code is None:
        return f"Network error: {failure.message}"
    if failure.status_code == 404:
        return f"Resource not found (404): {failure.url}"

    known = _STATUS_MESSAGES.get(failure.status_code)
    if known is not None:
        return known
    return f"HTTP error {failure.status_code}: {failure.status_text or ''}"
