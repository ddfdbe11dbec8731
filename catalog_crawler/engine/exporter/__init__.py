"""Writers for finalized crawl output."""

from .base import BaseExporter
from .file_exporter import CSV_FIELDS, FileExporter
from .sqlite_exporter import SQLiteExporter

__all__ = ["BaseExporter", "CSV_FIELDS", "FileExporter", "SQLiteExporter"]
