"""In-process store. Nothing survives the interpreter.

Useful for dry runs and tests: the CLI can compare against a baseline
recorded earlier in the same process without touching disk or the network.
"""

from __future__ import annotations

from bbcoverage_store.base import BaseStore
from bbcoverage_store.models import CoverageRecord


class MemoryStore(BaseStore):
    def __init__(self):
        self._records: dict[str, CoverageRecord] = {}

    def get(self, key: str) -> float | None:
        record = self._records.get(key)
        return record.coverage if record is not None else None

    def set(self, key: str, coverage: float) -> None:
        self._records[key] = CoverageRecord(key=key, coverage=coverage)

    def list_records(self) -> list[CoverageRecord]:
        return [self._records[k] for k in sorted(self._records)]
