"""Per-issuer crawl: list issuers once, then paginate each issuer in turn."""

from __future__ import annotations

from typing import Any, Dict, List
from urllib.parse import urlencode

import structlog

from ..config import SearchQuery
from .aggregator import Aggregator
from .events import ProgressKind, ProgressTracker
from .models import CrawlResult
from .pagination import PaginationWalker

ISSUERS_PATH = "issuers"
EMPTY_DIRECTORY_MESSAGE = "No issuers returned by the API."


class IssuerFanoutOrchestrator:
    """Run an independent PaginationWalker for every issuer in the directory."""

    def __init__(
        self,
        walker: PaginationWalker,
        tracker: ProgressTracker | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.walker = walker
        self.fetcher = walker.fetcher
        self.tracker = tracker or walker.tracker
        self.logger = logger or structlog.get_logger("catalog_crawler.fanout")

    def fetch_issuers(self, query_template: SearchQuery) -> List[Dict[str, Any]]:
        params = [("lang", query_template.lang)] if query_template.lang else []
        url = self.fetcher.url_for(ISSUERS_PATH)
        if params:
            url = f"{url}?{urlencode(params)}"
        payload = self.fetcher.fetch(url, "Issuer list")
        issuers = payload.get("issuers") if isinstance(payload, dict) else None
        return [issuer for issuer in issuers or [] if isinstance(issuer, dict)]

    def walk_all_issuers(self, query_template: SearchQuery) -> CrawlResult:
        issuers = self.fetch_issuers(query_template)
        result = CrawlResult(issuer_count=len(issuers))
        if not issuers:
            self.logger.info("issuer_directory_empty")
            result.status_message = EMPTY_DIRECTORY_MESSAGE
            return result

        total = len(issuers)
        for index, issuer in enumerate(issuers):
            code = issuer.get("code")
            if not code:
                self.logger.warning("issuer_without_code_skipped", index=index)
                continue
            name = issuer.get("name")
            label = name or code
            self.tracker.set_issuer(index, total, label)
            self.tracker.emit(
                ProgressKind.ISSUER,
                f"Processing issuer {index + 1}/{total}: {label}",
            )
            walk = self.walker.walk(
                query_template.with_issuer(code), issuer_code=code, issuer_name=name
            )
            result.raw_pages.extend(walk.raw_pages)
            added = Aggregator.merge(result.normalized_records, walk.normalized_records.values())
            # Plain sum across issuers; overlapping ids are still counted once per issuer.
            result.total_declared_count += walk.total_declared_count
            self.logger.info(
                "issuer_completed",
                issuer=code,
                declared=walk.total_declared_count,
                added=added,
                unique_total=len(result.normalized_records),
            )

        result.status_message = (
            f"Completed issuer crawl across {total} issuers. "
            f"Collected {len(result.normalized_records)} unique types."
        )
        return result


__all__ = ["EMPTY_DIRECTORY_MESSAGE", "ISSUERS_PATH", "IssuerFanoutOrchestrator"]
