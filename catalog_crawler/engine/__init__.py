"""Engine components orchestrating fetch → paginate → merge → order."""

from .aggregator import Aggregator, normalize_record
from .credentials import CredentialPool, parse_credentials
from .events import (
    CallbackSink,
    CrawlProgress,
    NullSink,
    ProgressKind,
    ProgressSink,
    ProgressTracker,
    RecordingSink,
)
from .fanout import IssuerFanoutOrchestrator
from .fetcher import RetryingFetcher
from .models import CrawlResult, NormalizedRecord, PageResult, WalkResult
from .pagination import PaginationWalker

__all__ = [
    "Aggregator",
    "CallbackSink",
    "CrawlProgress",
    "CrawlResult",
    "CredentialPool",
    "IssuerFanoutOrchestrator",
    "NormalizedRecord",
    "NullSink",
    "PageResult",
    "PaginationWalker",
    "ProgressKind",
    "ProgressSink",
    "ProgressTracker",
    "RecordingSink",
    "RetryingFetcher",
    "WalkResult",
    "normalize_record",
    "parse_credentials",
]
