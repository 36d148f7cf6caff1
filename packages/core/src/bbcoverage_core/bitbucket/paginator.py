"""Follow Bitbucket's ``next`` links until a collection is exhausted."""

from __future__ import annotations

import logging
from typing import TypeVar

from bbcoverage_core.bitbucket.codec import DecodeError, deserialize_page
from bbcoverage_core.bitbucket.transport import HttpRequest, Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upper bound on pages per sweep.
MAX_PAGES = 1000


def with_page_len(url: str, page_len: int) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}pagelen={page_len}"


def fetch_all(
    transport: Transport,
    root_url: str,
    page_len: int,
    item_cls: type[T],
    max_pages: int = MAX_PAGES,
) -> list[T]:
    """Return every item of a paginated collection, in server order.

    Best-effort: if a page cannot be fetched or decoded, traversal stops and
    the items gathered so far are returned (an empty list when the first page
    fails). Never raises for transport or decode problems.
    """
    values: list[T] = []
    visited: set[str] = set()
    url: str | None = with_page_len(root_url, page_len)

    while url:
        if url in visited:
            logger.warning("Pagination loop detected at %s; stopping.", url)
            break
        if len(visited) >= max_pages:
            logger.warning("Stopped paginating %s after %d pages.", root_url, max_pages)
            break
        visited.add(url)

        body = transport.execute(HttpRequest("GET", url))
        if body is None:
            break
        logger.debug("Received page %s:\n%s", url, body)
        try:
            page = deserialize_page(body, item_cls)
        except DecodeError as e:
            logger.warning("Invalid page response from %s: %s", url, e)
            break
        values.extend(page.values)
        url = page.next

    return values
