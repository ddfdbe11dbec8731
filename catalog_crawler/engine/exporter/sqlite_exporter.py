"""SQLite output: one row per catalog type, keyed by export position."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Mapping

from .base import BaseExporter


class SQLiteExporter(BaseExporter):
    """Write records into ``table``, replacing whatever a previous run left.

    ``record_id`` holds the id as text and is not unique: ids of different
    types (``1`` and ``"1"``) are distinct records but render identically.
    The searchable columns duplicate fields of the JSON ``payload`` so the
    table can be filtered by issuer or year without decoding every row.
    """

    def __init__(self, path: Path, table: str = "records") -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table}")
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                position INTEGER PRIMARY KEY,
                record_id TEXT NOT NULL,
                issuer_code TEXT,
                min_year INTEGER,
                title TEXT NOT NULL,
                payload TEXT NOT NULL
            )
            """
        )
        self.conn.execute(f"DELETE FROM {table}")
        self._position = 0

    def export(self, record: Mapping[str, Any]) -> None:
        self.conn.execute(
            f"INSERT INTO {self.table}"
            "(record_id, position, issuer_code, min_year, title, payload) VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(record["id"]),
                self._position,
                record.get("issuerCode"),
                record.get("minYear"),
                record.get("title", ""),
                json.dumps(dict(record), ensure_ascii=False),
            ),
        )
        self._position += 1

    def flush(self) -> None:
        self.conn.commit()

    def close(self) -> None:
        try:
            self.conn.commit()
        finally:
            self.conn.close()


__all__ = ["SQLiteExporter"]
