"""File based exporter supporting JSON/JSONL/CSV."""

from __future__ import annotations

import csv
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .base import BaseExporter

# Column order of the CSV export follows the normalized interchange shape.
CSV_FIELDS = (
    "id",
    "title",
    "issuerCode",
    "issuerName",
    "minYear",
    "maxYear",
    "frontThumbUrl",
    "backThumbUrl",
    "category",
)


class FileExporter(BaseExporter):
    """Write records to a local file.

    ``json`` buffers records and writes a single array on flush so the file is
    directly loadable as a flat list; ``jsonl`` and ``csv`` stream.
    """

    def __init__(
        self,
        output_dir: Path,
        name: str,
        fmt: str,
        run_tag: str | None = None,
        path: Path | None = None,
    ) -> None:
        if fmt not in ("json", "jsonl", "csv"):
            raise ValueError(f"Unsupported export format: {fmt}")
        self.format = fmt
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        if path is None:
            slug = re.sub(r"[^0-9A-Za-z_-]+", "_", name.strip()) or "crawl"
            path = output_dir / f"{slug}-{self.run_tag}.{fmt}"
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("w", encoding="utf-8", newline="")
        self._csv_writer: Optional[csv.DictWriter] = None
        self._buffer: list[dict] = []
        self.count = 0

    def export(self, record: dict) -> None:
        self.count += 1
        if self.format == "json":
            self._buffer.append(record)
        elif self.format == "jsonl":
            json.dump(record, self._file, ensure_ascii=False)
            self._file.write("\n")
        else:
            if not self._csv_writer:
                extra = sorted(key for key in record if key not in CSV_FIELDS)
                self._csv_writer = csv.DictWriter(
                    self._file, fieldnames=[*CSV_FIELDS, *extra], extrasaction="ignore"
                )
                self._csv_writer.writeheader()
            self._csv_writer.writerow(record)

    def flush(self) -> None:
        if self.format == "json":
            self._file.seek(0)
            self._file.truncate()
            json.dump(self._buffer, self._file, ensure_ascii=False, indent=2)
            self._file.write("\n")
        self._file.flush()

    def close(self) -> None:
        if self._file.closed:
            return
        self.flush()
        self._file.close()


__all__ = ["CSV_FIELDS", "FileExporter"]
