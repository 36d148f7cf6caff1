"""GistStore — shared master coverage via a GitHub Gist.

Build agents often run on throwaway machines, so a local SQLite file does not
survive between the baseline build and the pull request build. A private
Gist gives every agent the same table with no infrastructure to run.

Data format: a single JSON file named `bbcoverage_master.json` inside the
Gist, holding an object keyed by ``<git url>#<branch>``:

    {"https://bitbucket.org/o/r#main": {"coverage": 0.875, "recorded_at": "..."}}
"""

from __future__ import annotations

import json
import logging

from bbcoverage_store.base import BaseStore
from bbcoverage_store.models import CoverageRecord

logger = logging.getLogger(__name__)

_GIST_FILENAME = "bbcoverage_master.json"


class GistStore(BaseStore):
    """Stores master coverage in a GitHub Gist as one JSON object.

    Every set() is a read-modify-write of the whole file; two builds writing
    at the same moment can lose one update, which is accepted (last writer
    wins).
    """

    def __init__(self, gist_id: str, token: str):
        try:
            from github import Github
        except ImportError:
            raise ImportError("PyGithub is required for GistStore. Install bbcoverage with its default dependencies.")
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def get(self, key: str) -> float | None:
        try:
            records = self._read_records(self._get_gist())
        except Exception as e:
            logger.warning("GistStore.get() failed: %s", e)
            return None
        entry = records.get(key)
        if not isinstance(entry, dict) or entry.get("coverage") is None:
            return None
        try:
            return float(entry["coverage"])
        except (TypeError, ValueError):
            logger.warning("GistStore.get(): unreadable coverage %r for %s", entry["coverage"], key)
            return None

    def set(self, key: str, coverage: float) -> None:
        """Write one key into the Gist JSON file."""
        try:
            gist = self._get_gist()
            records = self._read_records(gist)
            records[key] = self._to_dict(CoverageRecord(key=key, coverage=coverage))
            gist.edit(files={_GIST_FILENAME: {"content": json.dumps(records, indent=2, sort_keys=True)}})
        except Exception as e:
            # The baseline build itself succeeded; losing the record only
            # means the next PR build has nothing to compare against.
            logger.warning("GistStore.set() failed (%s): %s", type(e).__name__, e)
            print(f"Warning: could not persist master coverage to Gist ({type(e).__name__}: {e})")

    def list_records(self) -> list[CoverageRecord]:
        try:
            records = self._read_records(self._get_gist())
        except Exception as e:
            logger.warning("GistStore.list_records() failed: %s", e)
            return []
        result = []
        for k in sorted(records):
            if not isinstance(records[k], dict):
                continue
            try:
                result.append(self._from_dict(k, records[k]))
            except (TypeError, ValueError):
                logger.warning("GistStore.list_records(): skipping unreadable entry %s", k)
        return result

    def _read_records(self, gist) -> dict:
        """Read the current JSON object from the Gist file, or return {}."""
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return {}
        try:
            data = json.loads(file_obj.content) or {}
        except (json.JSONDecodeError, AttributeError, TypeError):
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _to_dict(record: CoverageRecord) -> dict:
        return {"coverage": record.coverage, "recorded_at": record.recorded_at}

    @staticmethod
    def _from_dict(key: str, d: dict) -> CoverageRecord:
        return CoverageRecord(
            key=key,
            coverage=float(d.get("coverage", 0.0)),
            recorded_at=d.get("recorded_at", ""),
        )
