"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    ApiConfig,
    ExportConfig,
    GlobalConfig,
    RetryPolicy,
    SearchQuery,
)

__all__ = [
    "ApiConfig",
    "ConfigLocator",
    "ConfigRepository",
    "ExportConfig",
    "GlobalConfig",
    "RetryPolicy",
    "SearchQuery",
]
