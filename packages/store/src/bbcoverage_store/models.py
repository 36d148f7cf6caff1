"""Master coverage data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CoverageRecord:
    """Baseline coverage recorded for one repository + branch."""

    key: str  # "<git url>#<branch>"
    coverage: float  # fraction in [0, 1]
    recorded_at: str = field(default_factory=_now)  # ISO-8601 UTC timestamp
