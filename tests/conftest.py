"""Shared fixtures: an isolated home directory and an in-memory catalog API."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from catalog_crawler.config import ApiConfig, ConfigLocator, ConfigRepository, RetryPolicy
from catalog_crawler.engine import CredentialPool, ProgressTracker, RecordingSink, RetryingFetcher

_UNSET = object()


def make_type(
    type_id: Any,
    title: str | None = None,
    issuer_code: str | None = None,
    issuer_name: str | None = None,
    min_year: int | None = None,
    max_year: int | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build an upstream ``type`` object the way the search endpoint returns it."""

    payload: dict[str, Any] = {"id": type_id, "title": title or f"Type {type_id}"}
    if issuer_code or issuer_name:
        payload["issuer"] = {"code": issuer_code, "name": issuer_name}
    if min_year is not None:
        payload["min_year"] = min_year
    if max_year is not None:
        payload["max_year"] = max_year
    payload.update(extra)
    return payload


class FakeCatalogApi:
    """MockTransport handler serving ``/types`` and ``/issuers``.

    ``scripted`` entries are consumed first, one per request: an int answers
    with that status, a ready ``httpx.Response`` is returned as is, and an
    exception instance is raised as a transport failure.
    """

    def __init__(
        self,
        types: Iterable[dict[str, Any]] | None = None,
        *,
        by_issuer: dict[str, list[dict[str, Any]]] | None = None,
        issuers: list[dict[str, Any]] | None = None,
        declared: Any = _UNSET,
        scripted: Iterable[Any] = (),
    ) -> None:
        self.by_issuer: dict[str | None, list[dict[str, Any]]] = dict(by_issuer or {})
        self.by_issuer[None] = list(types or [])
        self.issuers = issuers or []
        self.declared = declared
        self.scripted = list(scripted)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.scripted:
            outcome = self.scripted.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, httpx.Response):
                return outcome
            return httpx.Response(outcome, json={"error_message": f"status {outcome}"})
        if request.url.path.endswith("/issuers"):
            return httpx.Response(200, json={"count": len(self.issuers), "issuers": self.issuers})

        params = request.url.params
        records = self.by_issuer.get(params.get("issuer"), [])
        page = int(params["page"])
        size = int(params["count"])
        body: dict[str, Any] = {"page": page, "types": records[(page - 1) * size : page * size]}
        if self.declared is _UNSET:
            body["count"] = len(records)
        elif self.declared is not None:
            body["count"] = self.declared
        return httpx.Response(200, json=body)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def keys_used(self, header: str = "Numista-API-Key") -> list[str]:
        return [request.headers[header] for request in self.requests]

    def params_of(self, index: int) -> dict[str, str]:
        return dict(self.requests[index].url.params)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CATALOG_CRAWLER_HOME", str(tmp_path))
    monkeypatch.delenv("CATALOG_API_KEYS", raising=False)
    monkeypatch.delenv("NUMISTA_API_KEY", raising=False)
    return tmp_path


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_fetcher(sleeps: list[float], sink: RecordingSink) -> Callable[..., RetryingFetcher]:
    def _builder(
        api: FakeCatalogApi,
        keys: Iterable[str] = ("key-1",),
        **policy: Any,
    ) -> RetryingFetcher:
        pool = CredentialPool(keys)
        return RetryingFetcher(
            pool,
            api_config=ApiConfig(),
            retry_policy=RetryPolicy(**policy),
            tracker=ProgressTracker(pool, sink),
            client=api.client(),
            sleep=sleeps.append,
        )

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def type_factory() -> Callable[..., dict[str, Any]]:
    return make_type


@pytest.fixture
def fake_api() -> type[FakeCatalogApi]:
    return FakeCatalogApi
