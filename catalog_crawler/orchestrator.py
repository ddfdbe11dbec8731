"""Crawl service wiring credentials, fetcher, walkers, export and progress."""

from __future__ import annotations

import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

import httpx
import structlog

from .config import GlobalConfig, SearchQuery
from .engine import (
    CredentialPool,
    CrawlResult,
    IssuerFanoutOrchestrator,
    PaginationWalker,
    ProgressKind,
    ProgressSink,
    ProgressTracker,
    RetryingFetcher,
)
from .engine.exporter import BaseExporter, FileExporter, SQLiteExporter
from .exceptions import CrawlError, UpstreamError
from .logging_conf import crawl_logger

ISSUER_LIST_LABEL = "Issuer list"


def describe_failure(error: Exception, by_issuer: bool) -> str:
    """Human readable last message naming the failed stage and status."""

    label = getattr(error, "context_label", None)
    if label == ISSUER_LIST_LABEL:
        stage = "issuer listing"
    elif label:
        stage = f"page fetch ({label})"
    else:
        stage = "page fetch"
    scope = "issuer crawl" if by_issuer else "fetch"
    message = f"Failed to complete the {scope} during {stage}"
    if isinstance(error, UpstreamError):
        message += f" (HTTP {error.status})"
    return f"{message}: {error}"


class CrawlService:
    """Run one crawl per call; every call owns a fresh credential pool.

    Nothing is cached between calls and nothing partial is returned: a crawl
    either yields a complete :class:`CrawlResult` or raises a ``CrawlError``.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        client_factory: Callable[[], httpx.Client] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or GlobalConfig()
        self.client_factory = client_factory
        self.sleep = sleep

    def crawl(
        self,
        credentials: str | Iterable[str],
        query: SearchQuery | None = None,
        *,
        by_issuer: bool = False,
        sink: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
        label: str | None = None,
    ) -> CrawlResult:
        query = query or SearchQuery()
        if isinstance(credentials, str):
            pool = CredentialPool.from_raw(credentials)
        else:
            pool = CredentialPool(credentials)

        crawl_label = label or ("issuers" if by_issuer else "types")
        logger = crawl_logger(crawl_label)
        tracker = ProgressTracker(pool, sink)
        tracker.emit(
            ProgressKind.START,
            "Preparing issuer crawl..." if by_issuer else "Preparing request...",
        )
        logger.info(
            "crawl_started",
            mode="issuers" if by_issuer else "flat",
            credential_count=len(pool),
            filters=dict(query.filters()),
        )

        client = self.client_factory() if self.client_factory else None
        fetcher = RetryingFetcher(
            pool,
            api_config=self.config.api,
            retry_policy=self.config.retry,
            tracker=tracker,
            client=client,
            sleep=self.sleep,
            logger=logger,
        )
        walker = PaginationWalker(fetcher, tracker, cancel_event=cancel_event, logger=logger)
        try:
            with fetcher:
                if by_issuer:
                    result = IssuerFanoutOrchestrator(walker, tracker, logger).walk_all_issuers(query)
                else:
                    result = self._walk_flat(walker, query)
        except CrawlError as exc:
            message = describe_failure(exc, by_issuer)
            tracker.emit(ProgressKind.FAILED, message)
            logger.error("crawl_failed", error=str(exc), error_type=type(exc).__name__)
            raise
        finally:
            if client is not None:
                client.close()

        result.completed_at = datetime.now(timezone.utc)
        tracker.emit(ProgressKind.COMPLETED, result.status_message)
        logger.info(
            "crawl_completed",
            pages=len(result.raw_pages),
            declared=result.total_declared_count,
            unique=result.unique_count,
            active_credential_index=pool.active_index,
        )
        return result

    @staticmethod
    def _walk_flat(walker: PaginationWalker, query: SearchQuery) -> CrawlResult:
        walk = walker.walk(query)
        return CrawlResult(
            normalized_records=walk.normalized_records,
            raw_pages=walk.raw_pages,
            total_declared_count=walk.total_declared_count,
            status_message=f"Completed fetching {len(walk.normalized_records)} unique types.",
        )

    # ------------------------------------------------------------------
    def create_exporter(self, path: Path, fmt: str | None = None) -> BaseExporter:
        fmt = fmt or self.config.export.format
        if fmt == "sqlite":
            return SQLiteExporter(path)
        return FileExporter(path.parent, path.stem, fmt, path=path)

    def export(self, result: CrawlResult, path: Path, fmt: str | None = None) -> int:
        """Write the ordered normalized records; return how many were written."""

        exporter = self.create_exporter(path, fmt)
        try:
            written = exporter.export_records(result.ordered_records())
            exporter.flush()
        finally:
            exporter.close()
        return written

    @staticmethod
    def export_raw(result: CrawlResult, path: Path) -> int:
        path.parent.mkdir(parents=True, exist_ok=True)
        pages = [page.to_dict() for page in result.raw_pages]
        path.write_text(json.dumps(pages, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
        return len(pages)


__all__ = ["CrawlService", "ISSUER_LIST_LABEL", "describe_failure"]
