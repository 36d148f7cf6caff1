"""Bitbucket credential resolution and API client construction.

Resolution order for credentials (stops at first success):
  1. bitbucket_username + bitbucket_password from the loaded config, which
     load_config fills from BITBUCKET_USERNAME + BITBUCKET_APP_PASSWORD
     (or BITBUCKET_PASSWORD)
  2. `git credential fill` for host bitbucket.org, which reuses whatever helper
     the agent's git is configured with (store, cache, osxkeychain, ...)
"""

from __future__ import annotations

import logging
import os
import subprocess

from bbcoverage_core.bitbucket.client import ApiClient
from bbcoverage_core.config import proxy_from_config

logger = logging.getLogger(__name__)

BITBUCKET_HOST = "bitbucket.org"


def resolve_bitbucket_credentials(config: dict) -> tuple[str, str] | None:
    """Return (username, app password) or None if no source is available.

    Never raises. Callers should check for None and emit a UsageError.
    """
    username = config.get("bitbucket_username")
    password = config.get("bitbucket_password")
    if username and password:
        return username, password

    try:
        result = subprocess.run(
            ["git", "credential", "fill"],
            input=f"protocol=https\nhost={BITBUCKET_HOST}\n\n",
            capture_output=True,
            text=True,
            timeout=5,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
        if result.returncode == 0:
            fields = dict(line.split("=", 1) for line in result.stdout.splitlines() if "=" in line)
            if fields.get("username") and fields.get("password"):
                logger.debug("Resolved Bitbucket credentials via git credential helper.")
                return fields["username"], fields["password"]
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # git missing or the helper hung.
        pass

    return None


def repo_from_git_url(git_url: str | None) -> tuple[str, str] | None:
    """Extract (owner, repository) from a Bitbucket clone URL.

    https://bitbucket.org/owner/repo.git      →  (owner, repo)
    git@bitbucket.org:owner/repo.git          →  (owner, repo)
    https://user@bitbucket.org/owner/repo     →  (owner, repo)
    """
    if not git_url or BITBUCKET_HOST not in git_url:
        return None
    slug = git_url.split(BITBUCKET_HOST)[-1].lstrip("/:").strip().rstrip("/").removesuffix(".git")
    parts = slug.split("/")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


def build_api_client(config: dict, credentials: tuple[str, str], owner: str, repository: str) -> ApiClient:
    username, password = credentials
    return ApiClient(
        username=username,
        password=password,
        owner=owner,
        repository_name=repository,
        name=config.get("client_name") or "bbcoverage",
        proxy=proxy_from_config(config),
    )
