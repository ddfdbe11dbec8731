"""Error taxonomy shared by the crawl engine, service and CLI."""

from __future__ import annotations


class CrawlError(Exception):
    """Base class for every failure that aborts a crawl."""


class ValidationError(CrawlError):
    """Raised before any network activity when caller input is unusable."""


class TransportError(CrawlError):
    """Raised when no HTTP response could be obtained at all."""

    def __init__(self, url: str, original: Exception) -> None:
        self.url = url
        self.original = original
        super().__init__(f"Network failure while requesting {url}: {original}")


class UpstreamError(CrawlError):
    """A non-success response that survived retry exhaustion."""

    def __init__(self, status: int, body: str, context_label: str | None = None) -> None:
        self.status = status
        self.body = body
        self.context_label = context_label
        message = f"Request failed with status {status}. {body or ''}".strip()
        if context_label:
            message = f"{context_label}: {message}"
        super().__init__(message)


class ExhaustionError(CrawlError):
    """Retries and credential rotations ran out without a classified outcome."""

    def __init__(self, context_label: str | None = None) -> None:
        self.context_label = context_label
        suffix = f" ({context_label})" if context_label else ""
        super().__init__(f"Request failed after exhausting retries and API keys{suffix}.")


class CrawlCancelledError(CrawlError):
    """Raised when a caller-supplied cancel event is set between pages."""


__all__ = [
    "CrawlCancelledError",
    "CrawlError",
    "ExhaustionError",
    "TransportError",
    "UpstreamError",
    "ValidationError",
]
