"""SQLiteStore — local file-based baseline store.

The default backend: no extra dependencies and no network. Works on a
single build agent, or across agents when the database file lives on a
shared path.

Schema:
  master_coverage — one row per key; re-recording a key overwrites its row.
"""

from __future__ import annotations

import sqlite3

from bbcoverage_store.base import BaseStore
from bbcoverage_store.models import CoverageRecord

_SCHEMA = """
CREATE TABLE IF NOT EXISTS master_coverage (
    key          TEXT PRIMARY KEY,
    coverage     REAL NOT NULL,
    recorded_at  TEXT NOT NULL
);
"""


class SQLiteStore(BaseStore):
    """Stores master coverage in a local SQLite database file.

    The database file path defaults to `.bbcoverage.db` in the current working
    directory. Configure via .bbcoverage.yml: `store_path: /path/to/file.db`.
    """

    def __init__(self, db_path: str = ".bbcoverage.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get(self, key: str) -> float | None:
        row = self._conn.execute("SELECT coverage FROM master_coverage WHERE key=?", (key,)).fetchone()
        return row["coverage"] if row is not None else None

    def set(self, key: str, coverage: float) -> None:
        record = CoverageRecord(key=key, coverage=coverage)
        self._conn.execute(
            """
            INSERT INTO master_coverage (key, coverage, recorded_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
              coverage=excluded.coverage,
              recorded_at=excluded.recorded_at
            """,
            (record.key, record.coverage, record.recorded_at),
        )
        self._conn.commit()

    def list_records(self) -> list[CoverageRecord]:
        rows = self._conn.execute("SELECT * FROM master_coverage ORDER BY key").fetchall()
        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CoverageRecord:
        return CoverageRecord(key=row["key"], coverage=row["coverage"], recorded_at=row["recorded_at"] or "")
