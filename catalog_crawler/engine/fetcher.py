"""HTTP fetching with bounded retry and credential rotation on rate limiting."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict

import httpx
import structlog

from ..config import ApiConfig, RetryPolicy
from ..exceptions import ExhaustionError, TransportError, UpstreamError
from .credentials import CredentialPool
from .events import ProgressKind, ProgressTracker

RATE_LIMIT_HEADERS = (
    "retry-after",
    "x-ratelimit-limit",
    "x-ratelimit-remaining",
    "x-ratelimit-reset",
)


class FetchStep(str, Enum):
    """Transitions of the per-call retry state machine."""

    FETCH = "fetch"
    SUCCESS = "success"
    ROTATE = "rotate"
    BACKOFF = "backoff"
    FAIL = "fail"


@dataclass(slots=True)
class FetchState:
    """Loop state of one logical fetch."""

    attempt: int = 1
    rotations_this_attempt: int = 0
    response: httpx.Response | None = field(default=None, repr=False)


class RetryingFetcher:
    """Issue GET requests against the catalog API using the active credential.

    Each call makes at most ``max_retries`` attempts. Repeated failures rotate
    to the next credential without consuming an attempt; other failures wait
    ``base_retry_delay_ms * attempt`` before trying again.
    """

    def __init__(
        self,
        pool: CredentialPool,
        api_config: ApiConfig | None = None,
        retry_policy: RetryPolicy | None = None,
        tracker: ProgressTracker | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.pool = pool
        self.api_config = api_config or ApiConfig()
        self.retry_policy = retry_policy or RetryPolicy()
        self.tracker = tracker or ProgressTracker(pool)
        self.logger = logger or structlog.get_logger("catalog_crawler.fetcher")
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self.api_config.timeout)

    def __enter__(self) -> "RetryingFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def url_for(self, path: str) -> str:
        return f"{self.api_config.base_url}/{path.lstrip('/')}"

    def fetch(self, url: str, context_label: str | None = None) -> Any:
        """Return the parsed JSON body of ``url`` or raise a CrawlError."""

        label = context_label or "Request"
        max_retries = self.retry_policy.max_retries
        state = FetchState()
        step = FetchStep.FETCH

        while state.attempt <= max_retries:
            if step is FetchStep.FETCH:
                state.response = self._send(url)
                step = self._classify(state)
            elif step is FetchStep.SUCCESS:
                self.pool.reset_failures()
                return self._decode(state.response, label)
            elif step is FetchStep.ROTATE:
                self._rotate(state, label)
                step = FetchStep.FETCH
            elif step is FetchStep.BACKOFF:
                self._backoff(state, label)
                state.attempt += 1
                state.rotations_this_attempt = 0
                step = FetchStep.FETCH
            elif step is FetchStep.FAIL:
                self._fail(state, label)

        raise ExhaustionError(context_label)

    # ------------------------------------------------------------------
    def _send(self, url: str) -> httpx.Response:
        headers = {self.api_config.api_key_header: self.pool.active}
        try:
            return self._client.get(url, headers=headers)
        except httpx.TransportError as exc:
            self.logger.error("transport_error", url=url, error=str(exc))
            raise TransportError(url, exc) from exc

    def _decode(self, response: httpx.Response, label: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self.logger.error(
                "invalid_json_body",
                context=label,
                status=response.status_code,
                content_type=response.headers.get("content-type"),
            )
            raise UpstreamError(response.status_code, response.text, label) from exc

    def _classify(self, state: FetchState) -> FetchStep:
        response = state.response
        if response.is_success:
            return FetchStep.SUCCESS
        attempts_remain = state.attempt < self.retry_policy.max_retries
        if not attempts_remain or not self.retry_policy.is_retryable(response.status_code):
            return FetchStep.FAIL

        failures = self.pool.record_failure()
        self.logger.warning(
            "request_not_ok",
            status=response.status_code,
            attempt=state.attempt,
            consecutive_failures=failures,
            **_rate_limit_details(response),
        )
        if (
            failures >= self.retry_policy.max_consecutive_rate_limit
            and self.pool.can_rotate
            and state.rotations_this_attempt < len(self.pool) - 1
        ):
            return FetchStep.ROTATE
        return FetchStep.BACKOFF

    def _rotate(self, state: FetchState, label: str) -> None:
        previous = self.pool.active_index
        current = self.pool.rotate_to_next()
        state.rotations_this_attempt += 1
        self.logger.info(
            "credential_rotated",
            context=label,
            previous_index=previous,
            active_index=current,
            pool_size=len(self.pool),
        )
        self.tracker.emit(
            ProgressKind.ROTATION,
            f"Switching to API key {current + 1}/{len(self.pool)} after repeated rate limiting.",
        )

    def _backoff(self, state: FetchState, label: str) -> None:
        wait_ms = self.retry_policy.base_retry_delay_ms * state.attempt
        self.tracker.emit(
            ProgressKind.RETRY_WAIT,
            f"{label} rate limited. Retrying in {round(wait_ms / 100) / 10}s...",
        )
        self.logger.info("retry_backoff", context=label, attempt=state.attempt, wait_ms=wait_ms)
        self._sleep(wait_ms / 1000)

    def _fail(self, state: FetchState, label: str) -> None:
        response = state.response
        body = response.text
        self.pool.reset_failures()
        self.logger.error(
            "request_failed",
            context=label,
            status=response.status_code,
            attempt=state.attempt,
            **_rate_limit_details(response),
        )
        raise UpstreamError(response.status_code, body, label)


def _rate_limit_details(response: httpx.Response) -> Dict[str, str]:
    details: Dict[str, str] = {}
    for name in RATE_LIMIT_HEADERS:
        value = response.headers.get(name)
        if value:
            details[name.replace("-", "_")] = value
    return details


__all__ = ["FetchState", "FetchStep", "RATE_LIMIT_HEADERS", "RetryingFetcher"]
