"""Common contract for writers of crawl output."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping

from ..models import NormalizedRecord


class BaseExporter(ABC):
    """Sink for finalized records; writes happen in the order given."""

    @abstractmethod
    def export(self, record: Mapping[str, Any]) -> None:
        """Write one record in its camelCase interchange form."""

    def export_many(self, records: Iterable[Mapping[str, Any]]) -> int:
        written = 0
        for record in records:
            self.export(record)
            written += 1
        return written

    def export_records(self, records: Iterable[NormalizedRecord]) -> int:
        return self.export_many(record.to_dict() for record in records)

    @abstractmethod
    def flush(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "BaseExporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["BaseExporter"]
