"""Filter and paginate a previously exported catalog dataset in memory."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

PAGE_SIZE_FALLBACK = 12
MAX_PAGE_SIZE = 100
ALL = "ALL"

# (code, display name, record category value)
CATEGORY_TABLE: tuple[tuple[str, str, str], ...] = (
    ("coins", "Coins", "coin"),
    ("banknotes", "Banknotes", "banknote"),
    ("exonumia", "Exonumia", "exonumia"),
)


@dataclass(slots=True)
class DatasetPage:
    items: list[dict[str, Any]]
    total: int
    page: int
    page_size: int
    total_pages: int
    issuers: list[dict[str, str]]
    categories: list[dict[str, str]]
    raw: list[dict[str, Any]] | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "items": self.items,
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
            "totalPages": self.total_pages,
            "issuers": self.issuers,
            "categories": self.categories,
        }
        if self.raw is not None:
            payload["raw"] = self.raw
        return payload


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class CatalogDataset:
    """Static list of normalized records, newest ``maxYear`` first."""

    def __init__(self, records: Iterable[dict[str, Any]]) -> None:
        normalized = []
        for record in records:
            if not isinstance(record, dict):
                continue
            title = record.get("title")
            normalized.append({**record, "title": title if isinstance(title, str) else ""})
        self.records = sorted(normalized, key=lambda item: _year_or(item, "maxYear", 0), reverse=True)
        self.issuers = self._derive_issuers(self.records)
        self.categories = [
            {"code": code, "name": name}
            for code, name, value in CATEGORY_TABLE
            if any(record.get("category") == value for record in self.records)
        ]

    @classmethod
    def load(cls, path: Path) -> "CatalogDataset":
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls(data if isinstance(data, list) else [])

    @staticmethod
    def _derive_issuers(records: list[dict[str, Any]]) -> list[dict[str, str]]:
        seen: dict[str, str] = {}
        for record in records:
            code = record.get("issuerCode")
            if not code or code in seen:
                continue
            name = record.get("issuerName")
            seen[code] = name if isinstance(name, str) and name.strip() else str(code)
        return [{"code": code, "name": name} for code, name in seen.items()]

    def filter(
        self,
        search: str | None = None,
        issuer: str | None = None,
        issued_after: int | None = None,
        issued_before: int | None = None,
        category: str | None = None,
    ) -> list[dict[str, Any]]:
        needle = (search or "").strip().lower()
        issuer_filter = issuer if issuer and issuer != ALL else None
        category_filter = category.lower() if category and category != ALL else None

        def matches(record: dict[str, Any]) -> bool:
            if needle and needle not in record["title"].lower():
                return False
            if issuer_filter and record.get("issuerCode") != issuer_filter:
                return False
            if issued_after is not None and _year_or(record, "maxYear", 9999) < issued_after:
                return False
            if issued_before is not None and _year_or(record, "minYear", 0) > issued_before:
                return False
            if category_filter and record.get("category") != category_filter:
                return False
            return True

        return [record for record in self.records if matches(record)]

    def query(
        self,
        search: str | None = None,
        issuer: str | None = None,
        issued_after: Any = None,
        issued_before: Any = None,
        category: str | None = None,
        page: Any = 1,
        page_size: Any = None,
        include_raw: bool = False,
    ) -> DatasetPage:
        page_number = _parse_int(page)
        page_number = page_number if page_number and page_number > 0 else 1
        size = _parse_int(page_size)
        size = min(max(size, 1), MAX_PAGE_SIZE) if size is not None else PAGE_SIZE_FALLBACK

        filtered = self.filter(
            search=search,
            issuer=issuer,
            issued_after=_parse_int(issued_after),
            issued_before=_parse_int(issued_before),
            category=category,
        )
        total = len(filtered)
        total_pages = -(-total // size) if total else 0
        safe_page = min(page_number, total_pages) if total_pages else 1
        start = (safe_page - 1) * size
        items = filtered[start : start + size] if total else []
        return DatasetPage(
            items=items,
            total=total,
            page=safe_page,
            page_size=size,
            total_pages=total_pages,
            issuers=self.issuers,
            categories=self.categories,
            raw=filtered if include_raw else None,
        )


def _year_or(record: dict[str, Any], key: str, default: int) -> int:
    value = record.get(key)
    return value if isinstance(value, int) else default


__all__ = ["CatalogDataset", "DatasetPage", "MAX_PAGE_SIZE", "PAGE_SIZE_FALLBACK"]
