"""Shared fixtures: an in-memory Bitbucket that speaks the Transport interface."""

from __future__ import annotations

import json
import re
from urllib.parse import parse_qs, urlencode, urlsplit

import pytest

from bbcoverage_core.bitbucket.client import ApiClient
from bbcoverage_core.bitbucket.transport import HttpRequest, Transport

OWN_UUID = "{1b7a2c3d-0000-4000-8000-00000000aaaa}"

_USER_RE = re.compile(r"^/2\.0/user$")
_PULLS_RE = re.compile(r"^/2\.0/repositories/([^/]+)/([^/]+)/pullrequests/?$")
_COMMENTS_RE = re.compile(r"^/2\.0/repositories/([^/]+)/([^/]+)/pullrequests/(\d+)/comments/?$")
_COMMENT_RE = re.compile(r"^/2\.0/repositories/([^/]+)/([^/]+)/pullrequests/(\d+)/comments/(\d+)$")


class FakeBitbucket(Transport):
    """Stateful fake of the handful of endpoints the client uses."""

    def __init__(self, user_uuid: str = OWN_UUID):
        self.user_uuid = user_uuid
        self.requests: list[HttpRequest] = []
        self.pulls: list[dict] = []
        self.comments: dict[int, list[dict]] = {}
        self._next_id = 1
        self.fail_user = False
        self.user_response: str | None = None
        self.fail_pulls = False
        self.fail_post = False
        self.fail_delete = False

    # -- test setup helpers ------------------------------------------------

    def add_pull(self, pr_id: int, source: str = "feature", destination: str = "main", title: str = "PR"):
        self.pulls.append(
            {
                "id": pr_id,
                "title": title,
                "state": "OPEN",
                "source": {"branch": {"name": source}, "commit": {"hash": "a" * 12}},
                "destination": {"branch": {"name": destination}, "commit": {"hash": "b" * 12}},
            }
        )

    def add_comment(self, pr_id: int, raw: str, uuid: str | None = OWN_UUID, inline: dict | None = None) -> int:
        comment_id = self._next_id
        self._next_id += 1
        comment = {"id": comment_id, "content": {"raw": raw, "markup": "markdown"}}
        if uuid is not None:
            comment["user"] = {"uuid": uuid, "display_name": "someone"}
        if inline is not None:
            comment["inline"] = inline
        self.comments.setdefault(pr_id, []).append(comment)
        return comment_id

    def raw_comments(self, pr_id: int) -> list[str]:
        return [c["content"]["raw"] for c in self.comments.get(pr_id, [])]

    # -- Transport ---------------------------------------------------------

    def execute(self, request: HttpRequest) -> str | None:
        self.requests.append(request)
        parts = urlsplit(request.url)
        path = parts.path
        query = {k: v[0] for k, v in parse_qs(parts.query).items()}

        if request.method == "GET" and _USER_RE.match(path):
            if self.fail_user:
                return None
            if self.user_response is not None:
                return self.user_response
            return json.dumps({"uuid": self.user_uuid, "display_name": "CI Bot", "type": "user"})

        if request.method == "GET" and _PULLS_RE.match(path):
            if self.fail_pulls:
                return None
            return self._page(request.url, self.pulls, query)

        match = _COMMENTS_RE.match(path)
        if match and request.method == "GET":
            return self._page(request.url, self.comments.get(int(match.group(3)), []), query)
        if match and request.method == "POST":
            if self.fail_post:
                return None
            body = json.loads(request.body)
            comment_id = self.add_comment(int(match.group(3)), body["content"]["raw"], uuid=self.user_uuid)
            return json.dumps(self.comments[int(match.group(3))][-1] | {"id": comment_id})

        match = _COMMENT_RE.match(path)
        if match and request.method == "DELETE":
            if self.fail_delete:
                return None
            pr_id, comment_id = int(match.group(3)), int(match.group(4))
            self.comments[pr_id] = [c for c in self.comments.get(pr_id, []) if c["id"] != comment_id]
            return ""

        return None

    @staticmethod
    def _page(url: str, items: list[dict], query: dict) -> str:
        page_len = int(query.get("pagelen", 10))
        page = int(query.get("page", 1))
        start = (page - 1) * page_len
        envelope = {
            "values": items[start : start + page_len],
            "page": page,
            "pagelen": page_len,
            "size": len(items),
        }
        if start + page_len < len(items):
            base = url.split("?")[0]
            envelope["next"] = f"{base}?{urlencode({'pagelen': page_len, 'page': page + 1})}"
        return json.dumps(envelope)

    def count(self, method: str) -> int:
        return sum(1 for r in self.requests if r.method == method)


@pytest.fixture
def bitbucket():
    return FakeBitbucket()


@pytest.fixture
def make_client():
    def _make(transport):
        return ApiClient(
            "ci-bot",
            "app-password",
            "owner",
            "repo",
            "test-client",
            transport_factory=lambda username, password, proxy: transport,
        )

    return _make


@pytest.fixture
def client(bitbucket, make_client):
    return make_client(bitbucket)
