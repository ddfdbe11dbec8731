"""Sequential page-by-page walk of one search query."""

from __future__ import annotations

import math
import threading
from typing import Any, Dict, Iterator
from urllib.parse import urlencode

import structlog

from ..config import SearchQuery
from ..exceptions import CrawlCancelledError
from .aggregator import Aggregator
from .events import ProgressKind, ProgressTracker
from .fetcher import RetryingFetcher
from .models import PageResult, WalkResult

TYPES_PATH = "types"


def total_pages_for(total_count: int, page_size: int) -> int:
    return max(1, math.ceil(total_count / page_size))


class PaginationWalker:
    """Fetch page 1, derive the page count, then fetch the remaining pages.

    Pages are produced lazily by :meth:`iter_pages`, so at most one request is
    in flight at any time. :meth:`walk` drains the sequence and either returns
    a complete :class:`WalkResult` or propagates the first failure.
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        tracker: ProgressTracker | None = None,
        page_size: int | None = None,
        cancel_event: threading.Event | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.tracker = tracker or fetcher.tracker
        self.page_size = page_size or fetcher.api_config.page_size
        self.cancel_event = cancel_event
        self.logger = logger or structlog.get_logger("catalog_crawler.pagination")

    def walk(
        self,
        query: SearchQuery,
        issuer_code: str | None = None,
        issuer_name: str | None = None,
    ) -> WalkResult:
        result = WalkResult()
        for page in self.iter_pages(query, issuer_code=issuer_code, issuer_name=issuer_name):
            if page.page_number == 1:
                result.total_declared_count = page.total_count
            result.raw_pages.append(page)
            Aggregator.merge_raw(result.normalized_records, _types_of(page.raw_payload))
        self.logger.info(
            "walk_completed",
            issuer=issuer_code,
            pages=len(result.raw_pages),
            declared=result.total_declared_count,
            unique=len(result.normalized_records),
        )
        return result

    def iter_pages(
        self,
        query: SearchQuery,
        issuer_code: str | None = None,
        issuer_name: str | None = None,
    ) -> Iterator[PageResult]:
        """Yield PageResults in ascending page order; restartable per call."""

        first = self._fetch_page(query, 1, issuer_code, issuer_name, total_count=None)
        total_pages = total_pages_for(first.total_count, self.page_size)
        self.tracker.set_pages(1, total_pages)
        self.tracker.emit(
            ProgressKind.PAGE,
            self._page_message(1, total_pages, first.total_count),
        )
        yield first

        for page_number in range(2, total_pages + 1):
            self._check_cancelled()
            page = self._fetch_page(
                query, page_number, issuer_code, issuer_name, total_count=first.total_count
            )
            self.tracker.set_pages(page_number, total_pages)
            self.tracker.emit(
                ProgressKind.PAGE,
                self._page_message(page_number, total_pages, first.total_count),
            )
            yield page

    # ------------------------------------------------------------------
    def _fetch_page(
        self,
        query: SearchQuery,
        page_number: int,
        issuer_code: str | None,
        issuer_name: str | None,
        total_count: int | None,
    ) -> PageResult:
        query_string = urlencode(query.to_params(page_number, self.page_size))
        url = f"{self.fetcher.url_for(TYPES_PATH)}?{query_string}"
        payload = self.fetcher.fetch(url, f"Page {page_number}")
        if not isinstance(payload, dict):
            payload = {}
        records = _types_of(payload)
        if total_count is None:
            count = payload.get("count")
            total_count = count if isinstance(count, int) else len(records)
        return PageResult(
            page_number=page_number,
            query_string=query_string,
            raw_payload=payload,
            total_count=total_count,
            records_on_page=len(records),
            issuer_code=issuer_code,
            issuer_name=issuer_name,
        )

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise CrawlCancelledError("Crawl cancelled by caller.")

    def _page_message(self, page_number: int, total_pages: int, total_count: int) -> str:
        issuer_index = self.tracker.current_issuer_index
        if issuer_index is not None:
            label = self.tracker.issuer_name or ""
            return (
                f"Processing issuer {issuer_index + 1}/{self.tracker.total_issuers}: "
                f"{label} (page {page_number}/{total_pages})"
            )
        if page_number == 1:
            return f"Fetched page 1 of {total_pages}. {total_count} total results."
        return f"Fetched page {page_number} of {total_pages}."


def _types_of(payload: Dict[str, Any]) -> list[Dict[str, Any]]:
    types = payload.get("types")
    return types if isinstance(types, list) else []


__all__ = ["PaginationWalker", "TYPES_PATH", "total_pages_for"]
