"""Pydantic models used across catalog-crawler configuration flow."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_BASE_URL = "https://api.numista.com/v3"
DEFAULT_API_KEY_HEADER = "Numista-API-Key"
DEFAULT_PAGE_SIZE = 50
MAX_RETRIES = 3
BASE_RETRY_DELAY_MS = 1000
MAX_CONSECUTIVE_RATE_LIMIT = 2

# Outgoing parameter order mirrors the upstream search form.
SEARCH_FIELDS: tuple[str, ...] = (
    "lang",
    "category",
    "q",
    "issuer",
    "catalogue",
    "number",
    "ruler",
    "material",
    "year",
    "date",
    "size",
    "weight",
)


class SearchQuery(BaseModel):
    """Recognised filter keys for the upstream ``/types`` search."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    lang: str | None = "en"
    category: str | None = None
    q: str | None = None
    issuer: str | None = None
    catalogue: str | None = None
    number: str | None = None
    ruler: str | None = None
    material: str | None = None
    year: str | None = None
    date: str | None = None
    size: str | None = None
    weight: str | None = None

    @field_validator(*SEARCH_FIELDS, mode="before")
    @classmethod
    def _strip_blank(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def with_issuer(self, issuer_code: str) -> "SearchQuery":
        """Return a copy scoped to a single issuer; every other field is kept."""

        return self.model_copy(update={"issuer": issuer_code.strip() or None})

    def filters(self) -> list[tuple[str, str]]:
        return [
            (name, value)
            for name in SEARCH_FIELDS
            if (value := getattr(self, name)) is not None
        ]

    def to_params(self, page: int, page_size: int) -> list[tuple[str, str]]:
        return [("page", str(page)), ("count", str(page_size)), *self.filters()]


class ApiConfig(BaseModel):
    """Where and how to reach the upstream catalog API."""

    base_url: str = DEFAULT_BASE_URL
    api_key_header: str = DEFAULT_API_KEY_HEADER
    page_size: int = DEFAULT_PAGE_SIZE
    # None leaves the transport without a timeout.
    timeout: float | None = 30.0

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return value

    @model_validator(mode="after")
    def _validate_page_size(self) -> "ApiConfig":
        if not 1 <= self.page_size <= 50:
            raise ValueError("page_size must be between 1 and 50")
        if not self.api_key_header.strip():
            raise ValueError("api_key_header cannot be empty")
        return self


class RetryPolicy(BaseModel):
    """Retry and credential-rotation tuning for the fetcher."""

    max_retries: int = MAX_RETRIES
    base_retry_delay_ms: int = BASE_RETRY_DELAY_MS
    max_consecutive_rate_limit: int = MAX_CONSECUTIVE_RATE_LIMIT
    # False narrows retries to 429 and 5xx; other 4xx fail on first sight.
    retry_client_errors: bool = True

    @model_validator(mode="after")
    def _validate_bounds(self) -> "RetryPolicy":
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.base_retry_delay_ms < 0:
            raise ValueError("base_retry_delay_ms must be >= 0")
        if self.max_consecutive_rate_limit < 1:
            raise ValueError("max_consecutive_rate_limit must be >= 1")
        return self

    def is_retryable(self, status_code: int) -> bool:
        if self.retry_client_errors:
            return True
        return status_code == 429 or status_code >= 500


class ExportConfig(BaseModel):
    """Default export behaviour for the CLI."""

    format: Literal["json", "jsonl", "csv", "sqlite"] = "json"
    include_raw: bool = False


class GlobalConfig(BaseModel):
    """Global controls shared across crawls."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    export: ExportConfig = Field(default_factory=ExportConfig)
    enable_progress_bar: bool = True


__all__ = [
    "ApiConfig",
    "DEFAULT_API_KEY_HEADER",
    "DEFAULT_BASE_URL",
    "DEFAULT_PAGE_SIZE",
    "ExportConfig",
    "GlobalConfig",
    "RetryPolicy",
    "SEARCH_FIELDS",
    "SearchQuery",
]
