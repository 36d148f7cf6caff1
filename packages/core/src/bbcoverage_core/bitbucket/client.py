"""Bitbucket Cloud API client used by the coverage reporter.

The client resolves the authenticated account once, at construction, and
uses that UUID to tell its own comments apart from everyone else's. If the
lookup fails the UUID is left empty and own-comment filtering matches
nothing, so the reporter posts without cleaning up.
"""

from __future__ import annotations

import logging

from bbcoverage_core.bitbucket.codec import DecodeError, deserialize, serialize
from bbcoverage_core.bitbucket.models import Author, Comment, PullRequest
from bbcoverage_core.bitbucket.paginator import fetch_all
from bbcoverage_core.bitbucket.transport import (
    HttpRequest,
    ProxyConfig,
    RequestsTransport,
    Transport,
    TransportFactory,
)

logger = logging.getLogger(__name__)

API_URL = "https://api.bitbucket.org/2.0"
REPOSITORIES_URL = f"{API_URL}/repositories"

PULL_REQUEST_PAGE_LEN = 50
COMMENT_PAGE_LEN = 100

# Every coverage comment embeds a shields.io badge; its URL prefix is how we
# recognise our own reports among the PR's global comments.
BADGE_URL_MARKER = "https://img.shields.io/badge/coverage-"


class ApiClient:
    def __init__(
        self,
        username: str,
        password: str,
        owner: str,
        repository_name: str,
        name: str,
        transport_factory: TransportFactory | None = None,
        proxy: ProxyConfig | None = None,
    ):
        self.owner = owner
        self.repository_name = repository_name
        self._name = name
        factory = transport_factory if transport_factory is not None else RequestsTransport
        self._transport: Transport = factory(username, password, proxy)
        self.own_uuid = self.resolve_own_identity()

    @property
    def name(self) -> str:
        return self._name

    # ------------------------------------------------------------------ #
    # Identity                                                            #
    # ------------------------------------------------------------------ #

    def resolve_own_identity(self) -> str:
        """Return the authenticated account's UUID, or "" if it cannot be resolved."""
        body = self._get(f"{API_URL}/user")
        logger.debug("User response: %s", body)
        try:
            return deserialize(body, Author).uuid
        except DecodeError as e:
            logger.warning("Invalid user info response: %s", e)
        return ""

    # ------------------------------------------------------------------ #
    # Pull requests                                                       #
    # ------------------------------------------------------------------ #

    def list_pull_requests(self) -> list[PullRequest]:
        return fetch_all(self._transport, self._repo_url("/pullrequests/"), PULL_REQUEST_PAGE_LEN, PullRequest)

    def find_pull_request(self, pull_request_id: int | str) -> PullRequest | None:
        """Look up an open pull request by id; None if it is not listed."""
        wanted = int(pull_request_id)
        pulls = self.list_pull_requests()
        if not pulls:
            logger.warning(
                "Pull request listing for %s/%s returned no data; the request may have failed.",
                self.owner,
                self.repository_name,
            )
            return None
        for pr in pulls:
            if pr.id == wanted:
                return pr
        return None

    # ------------------------------------------------------------------ #
    # Comments                                                            #
    # ------------------------------------------------------------------ #

    def list_comments(self, pull_request_id: int | str) -> list[Comment]:
        return fetch_all(
            self._transport,
            self._repo_url(f"/pullrequests/{pull_request_id}/comments"),
            COMMENT_PAGE_LEN,
            Comment,
        )

    def find_own_comments(self, pull_request_id: int | str) -> list[Comment]:
        """Return the comments on a pull request authored by this account."""
        if not self.own_uuid:
            return []
        own = self.own_uuid.lower()
        return [
            c
            for c in self.list_comments(pull_request_id)
            if c.author is not None and c.author.uuid and c.author.uuid.lower() == own
        ]

    def delete_previous_global_report_comments(
        self, pull_request_id: int | str, own_comments: list[Comment]
    ) -> list[int]:
        """Delete earlier coverage reports among ``own_comments``.

        Only global comments (no inline anchor) that carry the badge marker are
        removed; inline review comments and unrelated global comments by the
        same account are left alone. Returns the ids a delete was issued for.
        """
        deleted = []
        for comment in own_comments:
            if not comment.is_global or BADGE_URL_MARKER not in comment.text:
                continue
            if comment.id is None:
                continue
            self.delete_comment(pull_request_id, comment.id)
            deleted.append(comment.id)
        return deleted

    def post_comment(self, pull_request_id: int | str, content: str) -> Comment | None:
        """Post a global comment; returns the created comment or None on failure."""
        payload = serialize(Comment.from_text(content))
        logger.debug("Sending:\n%s", payload)
        body = self._transport.execute(
            HttpRequest("POST", self._repo_url(f"/pullrequests/{pull_request_id}/comments"), payload)
        )
        logger.debug("Post comment response: %s", body)
        try:
            return deserialize(body, Comment)
        except DecodeError as e:
            logger.warning("Invalid pull request comment response: %s", e)
        return None

    def delete_comment(self, pull_request_id: int | str, comment_id: int | str) -> bool:
        """Issue a DELETE for one comment. Failures are logged, not retried."""
        url = self._repo_url(f"/pullrequests/{pull_request_id}/comments/{comment_id}")
        ok = self._transport.execute(HttpRequest("DELETE", url)) is not None
        if ok:
            logger.info("Deleted comment %s on pull request #%s", comment_id, pull_request_id)
        else:
            logger.warning("Could not delete comment %s on pull request #%s", comment_id, pull_request_id)
        return ok

    # ------------------------------------------------------------------ #
    # Helpers                                                             #
    # ------------------------------------------------------------------ #

    def _repo_url(self, path: str) -> str:
        return f"{REPOSITORIES_URL}/{self.owner}/{self.repository_name}{path}"

    def _get(self, url: str) -> str | None:
        return self._transport.execute(HttpRequest("GET", url))
