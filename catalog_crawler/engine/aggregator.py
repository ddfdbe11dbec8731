"""Normalization, first-seen-wins deduplication and stable ordering of records."""

from __future__ import annotations

import sys
from typing import Any, Dict, Hashable, Iterable, MutableMapping

import structlog

from .models import NormalizedRecord

logger = structlog.get_logger("catalog_crawler.aggregator")

MISSING_YEAR = sys.maxsize


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _year(value: Any) -> int | None:
    # bool is an int subclass; upstream never sends it for years
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def normalize_record(raw: Dict[str, Any]) -> NormalizedRecord | None:
    """Project an upstream ``type`` object onto a NormalizedRecord.

    Optional fields are only populated when the source provided them. Records
    without an ``id`` cannot be deduplicated and are dropped.
    """

    record_id = raw.get("id") if isinstance(raw, dict) else None
    if record_id is None:
        logger.debug("record_without_id_dropped", keys=sorted(raw) if isinstance(raw, dict) else None)
        return None
    issuer = raw.get("issuer") if isinstance(raw.get("issuer"), dict) else {}
    title = raw.get("title")
    return NormalizedRecord(
        id=record_id,
        title=title if isinstance(title, str) else "",
        issuer_code=_text(issuer.get("code")),
        issuer_name=_text(issuer.get("name")),
        min_year=_year(raw.get("min_year")),
        max_year=_year(raw.get("max_year")),
        front_thumb_url=_text(raw.get("obverse_thumbnail")),
        back_thumb_url=_text(raw.get("reverse_thumbnail")),
        category=_text(raw.get("category")),
    )


def _id_key(record_id: Hashable) -> tuple[int, Any]:
    if isinstance(record_id, int) and not isinstance(record_id, bool):
        return (0, record_id)
    return (1, str(record_id))


class Aggregator:
    """Merge records by id and derive the export order."""

    @staticmethod
    def merge(
        target: MutableMapping[Hashable, NormalizedRecord],
        records: Iterable[NormalizedRecord],
    ) -> int:
        """Insert records whose id is unseen; return how many were added."""

        added = 0
        for record in records:
            if record.id not in target:
                target[record.id] = record
                added += 1
        return added

    @staticmethod
    def merge_raw(
        target: MutableMapping[Hashable, NormalizedRecord],
        raw_records: Iterable[Dict[str, Any]],
    ) -> int:
        added = 0
        for raw in raw_records:
            record_id = raw.get("id") if isinstance(raw, dict) else None
            # check before normalizing so a later duplicate is never even built
            if record_id is None or record_id in target:
                continue
            record = normalize_record(raw)
            if record is not None:
                target[record.id] = record
                added += 1
        return added

    @staticmethod
    def sort_key(record: NormalizedRecord) -> tuple:
        return (
            record.issuer_name or "",
            record.min_year if record.min_year is not None else MISSING_YEAR,
            record.title,
            _id_key(record.id),
        )

    @classmethod
    def finalize(cls, records: Iterable[NormalizedRecord]) -> list[NormalizedRecord]:
        """Order by issuer name, then earliest year (missing last), then title.

        The id breaks remaining ties so the result depends only on the record
        set, never on arrival order.
        """

        return sorted(records, key=cls.sort_key)


__all__ = ["Aggregator", "MISSING_YEAR", "normalize_record"]
