"""Request option structures and query parameter encoding.

Option structures are dataclasses whose fields map to query parameters.
A field's query name defaults to its attribute name and can be overridden
with ``metadata={"query": "name"}``; list values are repeated unless the
field sets ``metadata={"comma": True}``. Empty values (``None``, ``""``,
``0``, ``False``, empty sequences) are left out so the server default
applies.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .constants import MEDIA_TYPES

QueryPairs = List[Tuple[str, str]]


@dataclass
class ListOptions:
    """Offset pagination parameters accepted by most list endpoints."""

    page: int = 0
    per_page: int = 0


@dataclass
class ListCursorOptions:
    """Cursor pagination parameters for endpoints addressed by opaque tokens.

    ``page_token`` is sent as ``page`` for endpoints whose page values are
    opaque strings rather than numbers.
    """

    per_page: int = 0
    page_token: str = field(default="", metadata={"query": "page"})
    after: str = ""
    before: str = ""
    cursor: str = ""


class MediaTypes:
    """Ordered set of media-type tokens composed into an ``Accept`` header.

    Tokens keep the order in which they were declared; duplicates are
    dropped. The order is part of the request and is never sorted.
    """

    __slots__ = ("_tokens",)

    def __init__(self, *tokens: str) -> None:
        ordered: dict[str, None] = {}
        for token in tokens:
            token = token.strip()
            if token:
                ordered.setdefault(token, None)
        self._tokens: Tuple[str, ...] = tuple(ordered)

    @classmethod
    def coerce(cls, value: Union["MediaTypes", Sequence[str], str, None]) -> "MediaTypes":
        if value is None:
            return cls()
        if isinstance(value, MediaTypes):
            return value
        if isinstance(value, str):
            return cls(value)
        return cls(*value)

    def header_value(self, default: str = MEDIA_TYPES['default']) -> str:
        """Render the ``Accept`` value, falling back to ``default`` when empty."""
        return ", ".join(self._tokens) if self._tokens else default

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MediaTypes):
            return self._tokens == other._tokens
        return NotImplemented

    def __repr__(self) -> str:
        return f"MediaTypes{self._tokens!r}"


@dataclass
class RequestConfig:
    """Per-request options for :class:`~github_rest.request_builder.RequestBuilder`.

    Attributes:
        query: Query parameters as a mapping, an option dataclass, or a
            list/tuple mixing both.
        media_types: Media-type tokens for the ``Accept`` header, in order.
        etag: Previously observed ``ETag``, sent as ``If-None-Match``.
        last_modified: Previously observed ``Last-Modified`` value (string or
            datetime), sent as ``If-Modified-Since``.
        headers: Extra headers applied last.
    """

    query: Any = None
    media_types: Union[MediaTypes, Sequence[str], str, None] = None
    etag: Optional[str] = None
    last_modified: Union[str, datetime, None] = None
    headers: Mapping[str, str] = field(default_factory=dict)


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, dict)):
        return len(value) == 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _encode_pair(name: str, value: Any, comma: bool) -> QueryPairs:
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_format_value(item) for item in value]
        if comma:
            return [(name, ",".join(items))]
        return [(name, item) for item in items]
    return [(name, _format_value(value))]


def _encode_source(source: Any) -> QueryPairs:
    pairs: QueryPairs = []
    if source is None:
        return pairs
    if dataclasses.is_dataclass(source) and not isinstance(source, type):
        for f in dataclasses.fields(source):
            value = getattr(source, f.name)
            if _is_empty(value):
                continue
            name = f.metadata.get("query", f.name)
            pairs.extend(_encode_pair(name, value, bool(f.metadata.get("comma"))))
        return pairs
    if isinstance(source, Mapping):
        for name, value in source.items():
            if _is_empty(value):
                continue
            pairs.extend(_encode_pair(str(name), value, False))
        return pairs
    raise TypeError(f"cannot encode {type(source).__name__} as query parameters")


def to_query(*sources: Any) -> QueryPairs:
    """Encode option structures and mappings into ordered query pairs.

    Examples:
        >>> to_query(ListOptions(page=2))
        [('page', '2')]

        >>> to_query({"state": "open", "labels": ["a", "b"]}, ListOptions(per_page=50))
        [('state', 'open'), ('labels', 'a'), ('labels', 'b'), ('per_page', '50')]
    """
    pairs: QueryPairs = []
    for source in _flatten(sources):
        pairs.extend(_encode_source(source))
    return pairs


def _flatten(sources: Iterable[Any]) -> Iterator[Any]:
    for source in sources:
        if isinstance(source, (list, tuple)):
            yield from _flatten(source)
        else:
            yield source
