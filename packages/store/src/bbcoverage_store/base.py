"""Abstract store interface for master coverage baselines.

Each backend (SQLite, Gist, in-memory) implements this interface. The
reporter and the CLI depend on BaseStore only, so backends are swappable
without touching either.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bbcoverage_store.models import CoverageRecord


class BaseStore(ABC):
    """Keyed store mapping ``<git url>#<branch>`` to a coverage fraction.

    Writes overwrite: the last recorded value for a key wins. Concurrent
    baseline builds on the same key are not coordinated.
    """

    @abstractmethod
    def get(self, key: str) -> float | None:
        """Return the stored coverage fraction for ``key``, or None if absent."""

    @abstractmethod
    def set(self, key: str, coverage: float) -> None:
        """Record ``coverage`` for ``key``, replacing any previous value."""

    @abstractmethod
    def list_records(self) -> list[CoverageRecord]:
        """Return every stored record, ordered by key.

        Returns an empty list if nothing has been recorded; never raises.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
