"""Response envelope returned by every executed request."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

import requests
from requests.structures import CaseInsensitiveDict

from .constants import HEADERS, HTTP_STATUS
from .pagination import PageLinks
from .rate_limit import Rate
from .utils import sanitize_url

T = TypeVar("T")


@dataclass(frozen=True)
class Response(Generic[T]):
    """Wraps a ``requests.Response`` with pagination and rate limit data.

    Built once per executed request and never mutated afterwards. ``data``
    holds the decoded body when a destination type was given and decoding
    succeeded; it is ``None`` otherwise.
    """

    http_response: requests.Response = field(repr=False)
    pages: PageLinks = field(default_factory=PageLinks)
    rate: Rate = field(default_factory=Rate)
    data: Optional[T] = None

    @property
    def status_code(self) -> int:
        return self.http_response.status_code

    @property
    def headers(self) -> CaseInsensitiveDict:
        return self.http_response.headers

    @property
    def content(self) -> bytes:
        return self.http_response.content

    @property
    def url(self) -> str:
        return self.http_response.url or ""

    @property
    def method(self) -> str:
        request = self.http_response.request
        return (request.method if request is not None else None) or "GET"

    @property
    def sanitized_url(self) -> str:
        request = self.http_response.request
        return sanitize_url((request.url if request is not None else None) or self.url)

    @property
    def next_page(self) -> int:
        return self.pages.next_page

    @property
    def prev_page(self) -> int:
        return self.pages.prev_page

    @property
    def first_page(self) -> int:
        return self.pages.first_page

    @property
    def last_page(self) -> int:
        return self.pages.last_page

    @property
    def next_page_token(self) -> str:
        return self.pages.next_page_token

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get(HEADERS['etag'])

    @property
    def last_modified(self) -> Optional[str]:
        return self.headers.get(HEADERS['last_modified'])

    @property
    def not_modified(self) -> bool:
        """True for a 304; the caller should reuse its cached body."""
        return self.status_code == HTTP_STATUS['not_modified']

    def __repr__(self) -> str:
        return (
            f"<Response [{self.status_code}] {self.method} {self.sanitized_url} "
            f"next={self.pages.next_page} rate={self.rate.remaining}/{self.rate.limit}>"
        )
