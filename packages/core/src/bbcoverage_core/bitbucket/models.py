"""Bitbucket Cloud 2.0 domain objects.

Only the fields the coverage reporter reads or writes are modelled. Unknown
keys in API responses are dropped by the codec, so the server can grow new
fields without breaking decoding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class BranchRef:
    """One side (source or destination) of a pull request."""

    branch: str
    commit: str | None = None


@dataclass(frozen=True)
class PullRequest:
    id: int
    title: str
    source: BranchRef
    destination: BranchRef
    state: str | None = None


@dataclass
class Author:
    """A Bitbucket account as embedded in comments and returned by /user."""

    uuid: str
    display_name: str | None = None
    nickname: str | None = None


@dataclass
class Inline:
    """File/line anchor of a review comment.

    Global (pull-request level) comments have no inline object at all;
    file-level comments have a path but no line numbers.
    """

    path: str
    from_line: int | None = None  # "from" on the wire
    to_line: int | None = None  # "to" on the wire


@dataclass
class Content:
    raw: str
    markup: str | None = None
    html: str | None = None


@dataclass
class Comment:
    content: Content
    id: int | None = None
    author: Author | None = None
    inline: Inline | None = None

    @classmethod
    def from_text(cls, text: str) -> Comment:
        """Build an unsent comment carrying only raw content."""
        return cls(content=Content(raw=text))

    @property
    def is_global(self) -> bool:
        return self.inline is None

    @property
    def text(self) -> str:
        return self.content.raw if self.content is not None else ""


@dataclass
class Page(Generic[T]):
    """One page of a paginated collection.

    ``next`` holds the absolute URL of the following page, or None on the
    last page.
    """

    values: list[T] = field(default_factory=list)
    next: str | None = None
    page: int | None = None
    pagelen: int | None = None
    size: int | None = None
