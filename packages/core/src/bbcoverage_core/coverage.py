"""Master-coverage bookkeeping and pull request coverage reports.

Two kinds of builds drive this module:

* a baseline build on the main branch calls ``record_master_coverage`` to
  store the coverage fraction for ``<git url>#<branch>``;
* a pull request build calls ``compare_coverage`` (or ``report_coverage``
  directly) to compare its coverage against that baseline and publish a
  single status comment, replacing the one posted by the previous build.

Network problems are logged and swallowed by the client. Data problems, such
as a missing coverage number or no baseline to compare against, raise
``CoverageError`` so the build step fails visibly.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

from bbcoverage_core.bitbucket.client import BADGE_URL_MARKER

if TYPE_CHECKING:
    from bbcoverage_core.bitbucket.client import ApiClient
    from bbcoverage_core.bitbucket.models import Comment
    from bbcoverage_store.base import BaseStore

logger = logging.getLogger(__name__)

COVERAGE_ENV_KEY = "lineCoverage"
SUCCESS = "SUCCESS"

# A drop of at most this many percentage points is shown as a warning, not a failure colour.
_TOLERANCE_POINTS = 1.0


class CoverageError(Exception):
    """Coverage data is missing or unusable; the build step must fail."""


class MissingBaselineError(CoverageError):
    """No master coverage has been recorded for the target branch."""


# ---------------------------------------------------------------------------
# Parsing and keys
# ---------------------------------------------------------------------------


def parse_coverage(env: dict, key: str = COVERAGE_ENV_KEY) -> float:
    """Read a percentage string such as "87.5" from ``env`` and return 0.875."""
    raw = env.get(key)
    if raw is None or not str(raw).strip():
        raise CoverageError(f"Coverage value is missing: environment variable {key!r} is not set.")
    text = str(raw).strip().rstrip("%").strip()
    try:
        percent = float(text)
    except ValueError:
        raise CoverageError(f"Coverage value {raw!r} in {key!r} is not a number.")
    if math.isnan(percent) or not 0.0 <= percent <= 100.0:
        raise CoverageError(f"Coverage value {raw!r} in {key!r} is not a percentage between 0 and 100.")
    return percent / 100


def git_url_with_branch(git_url: str, branch: str) -> str:
    """Build the store key for a repository + branch pair.

    Clone URLs and branch names arrive in slightly different spellings
    depending on the build host, e.g. ``https://host/o/r.git`` vs
    ``https://host/o/r`` and ``origin/main`` vs ``main``; all of them map to
    the same key.
    """
    url = (git_url or "").strip().rstrip("/").removesuffix(".git")
    name = (branch or "").strip()
    for prefix in ("refs/heads/", "origin/"):
        name = name.removeprefix(prefix)
    if not url or not name:
        raise CoverageError(f"Cannot build a coverage key from git url {git_url!r} and branch {branch!r}.")
    return f"{url}#{name}"


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------


def record_master_coverage(
    result: str,
    env: dict,
    git_url: str,
    branch: str,
    store: BaseStore,
    key: str = COVERAGE_ENV_KEY,
) -> float | None:
    """Store this build's coverage as the baseline for ``git_url``/``branch``.

    Only successful builds are recorded; for any other result the store is
    left untouched and None is returned.
    """
    if (result or "").upper() != SUCCESS:
        logger.info("Build result is %s; master coverage not recorded.", result)
        return None

    coverage = parse_coverage(env, key)
    store_key = git_url_with_branch(git_url, branch)
    store.set(store_key, coverage)
    logger.info("Master coverage %s for %s", format_percent(coverage), store_key)
    return coverage


def read_master_coverage(store: BaseStore, git_url: str, branch: str) -> float:
    store_key = git_url_with_branch(git_url, branch)
    coverage = store.get(store_key)
    if coverage is None:
        raise MissingBaselineError(
            f"No master coverage recorded for {store_key}. Run a baseline build on {branch!r} first."
        )
    return coverage


# ---------------------------------------------------------------------------
# Comparison and message
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CoverageComparison:
    master: float
    current: float

    @property
    def delta(self) -> float:
        return self.current - self.master

    @property
    def passed(self) -> bool:
        return self.current >= self.master

    @property
    def color(self) -> str:
        if self.passed:
            return "brightgreen"
        # Compared in rounded points so that 80 -> 79 counts as exactly one point.
        if round((self.master - self.current) * 100, 2) <= _TOLERANCE_POINTS:
            return "yellow"
        return "red"

    def summary(self) -> str:
        return f"{format_percent(self.current)} ({format_delta(self.delta)}) vs master {format_percent(self.master)}"


def format_percent(fraction: float) -> str:
    """0.875 -> "87.5%", 0.8 -> "80%"."""
    text = f"{round(fraction * 100, 2):.2f}".rstrip("0").rstrip(".")
    return f"{text}%"


def format_delta(fraction: float) -> str:
    text = format_percent(abs(fraction))
    return f"-{text}" if round(fraction * 100, 2) < 0 else f"+{text}"


def badge_url(comparison: CoverageComparison) -> str:
    # shields.io static badge: dashes and underscores in the message are escaped by doubling.
    message = comparison.summary().replace("-", "--").replace("_", "__")
    return f"{BADGE_URL_MARKER}{quote(message, safe='()+')}-{comparison.color}.svg"


def build_message(comparison: CoverageComparison, build_url: str | None = None) -> str:
    """Compose the markdown body of the coverage status comment."""
    badge = f"![coverage]({badge_url(comparison)})"
    if build_url:
        badge = f"[{badge}]({build_url})"
    verdict = "Coverage did not decrease." if comparison.passed else "Coverage decreased."
    return (
        f"{badge}\n\n"
        f"**Coverage {format_percent(comparison.current)}** "
        f"({format_delta(comparison.delta)}) vs master {format_percent(comparison.master)}. "
        f"{verdict}"
    )


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def report_coverage(
    client: ApiClient,
    pull_request_id: int | str,
    master: float,
    current: float,
    build_url: str | None = None,
) -> Comment | None:
    """Replace the pull request's coverage comment with a fresh one.

    Previous reports are deleted before the new one is posted; the API has no
    usable comment edit, so the update is a delete + recreate pair. Failures
    at any step are logged by the client and do not undo earlier steps.
    """
    comparison = CoverageComparison(master=master, current=current)
    message = build_message(comparison, build_url)

    own_comments = client.find_own_comments(pull_request_id)
    deleted = client.delete_previous_global_report_comments(pull_request_id, own_comments)
    if deleted:
        logger.info("Removed %d previous coverage comment(s) from #%s", len(deleted), pull_request_id)

    posted = client.post_comment(pull_request_id, message)
    if posted is not None:
        logger.info("Posted coverage comment %s on #%s: %s", posted.id, pull_request_id, comparison.summary())
    else:
        logger.warning("Coverage comment for #%s was not posted.", pull_request_id)
    return posted


def compare_coverage(
    client: ApiClient,
    store: BaseStore,
    pull_request_id: int | str,
    env: dict,
    git_url: str,
    target_branch: str | None = None,
    build_url: str | None = None,
    key: str = COVERAGE_ENV_KEY,
) -> CoverageComparison:
    """Run a full comparison build for one pull request.

    The target branch defaults to the pull request's destination branch as
    reported by Bitbucket.
    """
    current = parse_coverage(env, key)

    if not target_branch:
        pr = client.find_pull_request(pull_request_id)
        if pr is None or not pr.destination.branch:
            raise CoverageError(
                f"Could not determine the target branch of pull request #{pull_request_id}: it was not listed "
                "or Bitbucket could not be reached. Pass the target branch explicitly."
            )
        target_branch = pr.destination.branch

    master = read_master_coverage(store, git_url, target_branch)
    report_coverage(client, pull_request_id, master, current, build_url)
    return CoverageComparison(master=master, current=current)
