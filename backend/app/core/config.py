from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


DEFAULT_BOOKS_API_URL = "https://6781684b85151f714b0aa5db.mockapi.io/api/v1/books"


class RetryConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay_ms: float = Field(default=1000.0, gt=0)
    max_delay_ms: float = Field(default=30000.0, gt=0)
    retryable_status_codes: frozenset[int] = Field(default=frozenset({429, 500, 502, 503, 504}))

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


class UpstreamConfig(BaseModel):
    books_api_url: str = Field(default=DEFAULT_BOOKS_API_URL)
    timeout_seconds: float = Field(default=10.0, gt=0)
    source: Literal["http", "mock"] = Field(default="http")
    retry: RetryConfig = Field(default_factory=RetryConfig)


class ServerConfig(BaseModel):
    frontend_origin: str = Field(default="http://localhost:5173")
    metrics_rate_limit: str = Field(default="120/minute")
    port: int = Field(default=3000)


class AppConfig(BaseModel):
    upstream: UpstreamConfig
    server: ServerConfig


def _config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "config" / "books.yml"


def _env_path() -> Path:
    return Path(__file__).resolve().parents[2] / ".env"


def _load_yaml_config() -> dict[str, Any]:
    path = _config_path()
    if not path.exists():
        return {}

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        return raw
    return {}


def _parse_status_codes(value: str) -> frozenset[int]:
    return frozenset(int(code.strip()) for code in value.split(",") if code.strip())


def _retry_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    env_max_retries = os.getenv("BOOKS_MAX_RETRIES")
    env_base_delay = os.getenv("BOOKS_BASE_DELAY_MS")
    env_max_delay = os.getenv("BOOKS_MAX_DELAY_MS")
    env_status_codes = os.getenv("BOOKS_RETRYABLE_STATUS_CODES")

    if env_max_retries is not None:
        overrides["max_retries"] = int(env_max_retries)
    if env_base_delay is not None:
        overrides["base_delay_ms"] = float(env_base_delay)
    if env_max_delay is not None:
        overrides["max_delay_ms"] = float(env_max_delay)
    if env_status_codes is not None:
        overrides["retryable_status_codes"] = _parse_status_codes(env_status_codes)
    return overrides


def get_app_config() -> AppConfig:
    load_dotenv(_env_path(), override=False)

    raw = _load_yaml_config()
    upstream_raw = dict(raw.get("upstream") or {})
    server_raw = dict(raw.get("server") or {})

    env_api_url = os.getenv("API_URL")
    env_source = os.getenv("BOOKS_SOURCE")
    env_frontend_origin = os.getenv("FRONTEND_ORIGIN")
    env_rate_limit = os.getenv("METRICS_RATE_LIMIT")
    env_port = os.getenv("PORT")

    if env_api_url is not None:
        upstream_raw["books_api_url"] = env_api_url
    if env_source is not None:
        upstream_raw["source"] = env_source.strip().lower()

    retry_raw = dict(upstream_raw.pop("retry", None) or {})
    retry_raw.update(_retry_overrides())
    upstream = UpstreamConfig(**upstream_raw, retry=RetryConfig(**retry_raw))
    server = ServerConfig(**server_raw)

    if env_frontend_origin is not None:
        server.frontend_origin = env_frontend_origin
    if env_rate_limit is not None:
        server.metrics_rate_limit = env_rate_limit
    if env_port is not None:
        server.port = int(env_port)

    return AppConfig(upstream=upstream, server=server)
