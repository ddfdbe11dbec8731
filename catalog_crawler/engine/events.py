"""Progress events emitted by the crawl engine and the sink contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from .credentials import CredentialPool


class ProgressKind(str, Enum):
    START = "start"
    PAGE = "page"
    RETRY_WAIT = "retry_wait"
    ROTATION = "rotation"
    ISSUER = "issuer"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CrawlProgress:
    """Snapshot of where a crawl stands; emitted, never persisted."""

    kind: ProgressKind
    current_page: int
    total_pages: int
    active_credential_index: int
    status_message: str
    current_issuer_index: int | None = None
    total_issuers: int | None = None
    issuer_name: str | None = None


class ProgressSink(Protocol):
    """Anything able to receive progress events (terminal, queue, test list)."""

    def emit(self, progress: CrawlProgress) -> None:
        """Handle a single progress event."""


class CallbackSink:
    """Adapt a plain callable into a ProgressSink."""

    def __init__(self, callback: Callable[[CrawlProgress], None]) -> None:
        self._callback = callback

    def emit(self, progress: CrawlProgress) -> None:
        self._callback(progress)


class NullSink:
    def emit(self, progress: CrawlProgress) -> None:
        return


class RecordingSink:
    """Keep every event in memory; handy for programmatic callers and tests."""

    def __init__(self) -> None:
        self.events: list[CrawlProgress] = []

    def emit(self, progress: CrawlProgress) -> None:
        self.events.append(progress)

    def kinds(self) -> list[ProgressKind]:
        return [event.kind for event in self.events]

    @property
    def last_message(self) -> str | None:
        return self.events[-1].status_message if self.events else None


class ProgressTracker:
    """Hold the crawl position so every component can emit complete events.

    The walker updates page counters, the fanout orchestrator updates issuer
    counters, and the fetcher emits retry/rotation events; the tracker fills
    in whatever the emitting component does not know.
    """

    def __init__(self, pool: CredentialPool, sink: ProgressSink | None = None) -> None:
        self.pool = pool
        self.sink: ProgressSink = sink or NullSink()
        self.current_page = 0
        self.total_pages = 0
        self.current_issuer_index: int | None = None
        self.total_issuers: int | None = None
        self.issuer_name: str | None = None
        self.last_event: CrawlProgress | None = None

    def set_pages(self, current_page: int, total_pages: int) -> None:
        self.current_page = current_page
        self.total_pages = total_pages

    def set_issuer(self, index: int, total: int, name: str | None) -> None:
        self.current_issuer_index = index
        self.total_issuers = total
        self.issuer_name = name
        self.set_pages(0, 0)

    def emit(self, kind: ProgressKind, message: str) -> CrawlProgress:
        event = CrawlProgress(
            kind=kind,
            current_page=self.current_page,
            total_pages=self.total_pages,
            active_credential_index=self.pool.active_index,
            status_message=message,
            current_issuer_index=self.current_issuer_index,
            total_issuers=self.total_issuers,
            issuer_name=self.issuer_name,
        )
        self.last_event = event
        self.sink.emit(event)
        return event


__all__ = [
    "CallbackSink",
    "CrawlProgress",
    "NullSink",
    "ProgressKind",
    "ProgressSink",
    "ProgressTracker",
    "RecordingSink",
]
