"""Value types flowing through a crawl: pages, normalized records, results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Hashable, List


@dataclass(frozen=True, slots=True)
class NormalizedRecord:
    """Flat projection of one upstream catalog type."""

    id: Hashable
    title: str
    issuer_code: str | None = None
    issuer_name: str | None = None
    min_year: int | None = None
    max_year: int | None = None
    front_thumb_url: str | None = None
    back_thumb_url: str | None = None
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase interchange form, omitting absent fields."""

        payload: dict[str, Any] = {"id": self.id, "title": self.title}
        optional = (
            ("issuerCode", self.issuer_code),
            ("issuerName", self.issuer_name),
            ("minYear", self.min_year),
            ("maxYear", self.max_year),
            ("frontThumbUrl", self.front_thumb_url),
            ("backThumbUrl", self.back_thumb_url),
            ("category", self.category),
        )
        for key, value in optional:
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True, slots=True)
class PageResult:
    """One successful page fetch, kept verbatim for the raw export."""

    page_number: int
    query_string: str
    raw_payload: dict[str, Any] = field(repr=False)
    total_count: int
    records_on_page: int
    issuer_code: str | None = None
    issuer_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "page": self.page_number,
            "query": self.query_string,
            "payload": self.raw_payload,
        }
        if self.issuer_code is not None:
            payload["context"] = {
                "issuerCode": self.issuer_code,
                "issuerName": self.issuer_name,
            }
        return payload


@dataclass(slots=True)
class WalkResult:
    """Outcome of paginating a single query to completion."""

    normalized_records: Dict[Hashable, NormalizedRecord] = field(default_factory=dict)
    raw_pages: List[PageResult] = field(default_factory=list)
    total_declared_count: int = 0


@dataclass(slots=True)
class CrawlResult:
    """Everything one crawl invocation produced; never shared between crawls."""

    normalized_records: Dict[Hashable, NormalizedRecord] = field(default_factory=dict)
    raw_pages: List[PageResult] = field(default_factory=list)
    total_declared_count: int = 0
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    issuer_count: int | None = None
    status_message: str = ""

    @property
    def unique_count(self) -> int:
        return len(self.normalized_records)

    def ordered_records(self) -> list[NormalizedRecord]:
        from .aggregator import Aggregator

        return Aggregator.finalize(self.normalized_records.values())


__all__ = ["CrawlResult", "NormalizedRecord", "PageResult", "WalkResult"]
