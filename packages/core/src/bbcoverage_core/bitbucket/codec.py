"""JSON encoding and decoding for Bitbucket API payloads.

Outgoing bodies are serialized with a non-null inclusion policy: any field
whose value is None is left out entirely, so optional fields (an unset
``inline`` anchor, a missing comment id) are never sent as explicit nulls.

Incoming bodies are decoded into the dataclasses in ``models``. Decoding is
explicit per type rather than reflective, mirroring how the store layer maps
records to and from dicts.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Callable, TypeVar

from bbcoverage_core.bitbucket.models import (
    Author,
    BranchRef,
    Comment,
    Content,
    Inline,
    Page,
    PullRequest,
)

T = TypeVar("T")

# Python field name -> wire name, where they differ.
_WIRE_NAMES = {
    "from_line": "from",
    "to_line": "to",
    "author": "user",
}


class DecodeError(ValueError):
    """Raised when a response body cannot be decoded into the expected shape."""


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize(obj: Any) -> str:
    """Serialize a model, dict or list to JSON, omitting null fields."""
    return json.dumps(_to_wire(obj))


def _to_wire(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        result = {}
        for f in dataclasses.fields(obj):
            value = getattr(obj, f.name)
            if value is None:
                continue
            result[_WIRE_NAMES.get(f.name, f.name)] = _to_wire(value)
        return result
    if isinstance(obj, dict):
        return {k: _to_wire(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, (list, tuple)):
        return [_to_wire(v) for v in obj]
    return obj


# ---------------------------------------------------------------------------
# Deserialization
# ---------------------------------------------------------------------------


def deserialize(body: str | None, cls: type[T]) -> T:
    """Decode a single JSON object into an instance of ``cls``."""
    return _decode(_load(body), cls)


def deserialize_page(body: str | None, item_cls: type[T]) -> Page[T]:
    """Decode a paginated envelope whose ``values`` are instances of ``item_cls``."""
    data = _load(body)
    values = data.get("values", [])
    if not isinstance(values, list):
        raise DecodeError(f"Expected 'values' to be a list, got {type(values).__name__}")
    return Page(
        values=[_decode(v, item_cls) for v in values],
        next=data.get("next"),
        page=data.get("page"),
        pagelen=data.get("pagelen"),
        size=data.get("size"),
    )


def _load(body: str | None) -> dict:
    if body is None:
        raise DecodeError("No response body to decode")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _decode(data: Any, cls: type[T]) -> T:
    decoder = _DECODERS.get(cls)
    if decoder is None:
        raise TypeError(f"No decoder registered for {cls.__name__}")
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}")
    try:
        return decoder(data)
    except DecodeError:
        raise
    except KeyError as e:
        raise DecodeError(f"{cls.__name__} is missing required field {e}") from e
    except (TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"Malformed {cls.__name__}: {e}") from e


def _author_from_dict(d: dict) -> Author:
    return Author(
        uuid=d["uuid"],
        display_name=d.get("display_name"),
        nickname=d.get("nickname"),
    )


def _inline_from_dict(d: dict) -> Inline:
    return Inline(path=d["path"], from_line=d.get("from"), to_line=d.get("to"))


def _content_from_dict(d: dict) -> Content:
    return Content(raw=d.get("raw") or "", markup=d.get("markup"), html=d.get("html"))


def _comment_from_dict(d: dict) -> Comment:
    # Deleted accounts come back as a user object without a uuid.
    user = d.get("user") or d.get("author")
    inline = d.get("inline")
    comment_id = d.get("id")
    return Comment(
        id=int(comment_id) if comment_id is not None else None,
        content=_content_from_dict(d.get("content") or {}),
        author=_author_from_dict(user) if isinstance(user, dict) and user.get("uuid") else None,
        inline=_inline_from_dict(inline) if isinstance(inline, dict) else None,
    )


def _branch_ref_from_dict(d: dict) -> BranchRef:
    branch = d.get("branch") or {}
    commit = d.get("commit") or {}
    return BranchRef(branch=branch.get("name", ""), commit=commit.get("hash"))


def _pull_request_from_dict(d: dict) -> PullRequest:
    return PullRequest(
        id=int(d["id"]),
        title=d.get("title") or "",
        source=_branch_ref_from_dict(d.get("source") or {}),
        destination=_branch_ref_from_dict(d.get("destination") or {}),
        state=d.get("state"),
    )


_DECODERS: dict[type, Callable[[dict], Any]] = {
    Author: _author_from_dict,
    Inline: _inline_from_dict,
    Content: _content_from_dict,
    Comment: _comment_from_dict,
    PullRequest: _pull_request_from_dict,
}
