"""Parsing of GitHub ``Link`` headers into page cursors.

GitHub API docs: https://docs.github.com/rest/using-the-rest-api/using-pagination-in-the-rest-api
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

from requests.utils import parse_header_links

_RELS = ("next", "prev", "first", "last")


@dataclass(frozen=True)
class PageLinks:
    """Page cursors extracted from a ``Link`` header.

    Integer fields are 0 and string fields are empty when not applicable.
    ``next_page == 0`` together with an empty ``next_page_token``,
    ``after`` and ``cursor`` means there are no more pages.
    """

    next_page: int = 0
    prev_page: int = 0
    first_page: int = 0
    last_page: int = 0
    next_page_token: str = ""
    cursor: str = ""
    before: str = ""
    after: str = ""

    @property
    def has_next(self) -> bool:
        return bool(self.next_page or self.next_page_token or self.after or self.cursor)


def _atoi(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _first(query: dict, name: str) -> str:
    values = query.get(name)
    return values[0] if values else ""


def _rels(link: dict) -> list[str]:
    rels: list[str] = []
    for key, value in link.items():
        if key.lower() != "rel":
            continue
        # rel may hold several space-separated relation types
        rels.extend(token.strip("\"',; ") for token in value.split())
    return [rel for rel in rels if rel in _RELS]


def parse_link_header(link_header: Optional[str]) -> PageLinks:
    """Parse a ``Link`` header into :class:`PageLinks`.

    Parsing is best effort: malformed entries are skipped and never raise.
    An absent header means a single page.

    Examples:
        >>> parse_link_header('<https://api.github.com/orgs/o/repos?page=3>; rel="next"').next_page
        3
        >>> parse_link_header(None).next_page
        0
    """
    if not link_header:
        return PageLinks()

    found: dict[str, object] = {}

    for link in parse_header_links(link_header):
        target = link.get("url", "")
        if not target:
            continue

        try:
            query = parse_qs(urlparse(target).query)
        except ValueError:
            continue

        rels = _rels(link)
        if not rels:
            continue

        cursor = _first(query, "cursor")
        if cursor:
            if "next" in rels:
                found["cursor"] = cursor
            continue

        page = _first(query, "page")
        since = _first(query, "since")
        before = _first(query, "before")
        after = _first(query, "after")
        if not (page or since or before or after):
            continue
        if since and not page:
            page = since

        for rel in rels:
            if rel == "next":
                number = _atoi(page)
                found["next_page"] = number or 0
                if number is None and page:
                    found["next_page_token"] = page
                if after:
                    found["after"] = after
            elif rel == "prev":
                found["prev_page"] = _atoi(page) or 0
                if before:
                    found["before"] = before
            elif rel == "first":
                found["first_page"] = _atoi(page) or 0
            elif rel == "last":
                found["last_page"] = _atoi(page) or 0

    return PageLinks(**found)  # type: ignore[arg-type]
