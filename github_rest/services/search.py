"""Search endpoints.

Search has its own, much smaller, rate limit category.

GitHub API docs: https://docs.github.com/rest/search
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..api.types import GitHubRepositorySearchResult
from ..constants import MEDIA_TYPES
from ..options import ListOptions
from ..response import Response
from .base import BaseService


@dataclass
class SearchOptions(ListOptions):
    """Sorting and highlighting for search queries."""

    sort: str = ""
    order: str = ""
    text_match: bool = False


class SearchService(BaseService):
    """Wrappers for the search API."""

    def repositories(
        self,
        query: str,
        options: Optional[SearchOptions] = None,
        etag: Optional[str] = None,
    ) -> Response[GitHubRepositorySearchResult]:
        """Search repositories.

        Passing the ``etag`` of an earlier response makes the request
        conditional; an unchanged result comes back as a 304 with no data.
        """
        options = options or SearchOptions()
        media_types = [MEDIA_TYPES['default']]
        if options.text_match:
            media_types.append(MEDIA_TYPES['text_match'])

        query_options = ListOptions(page=options.page, per_page=options.per_page)
        return self.client.request(
            "GET",
            "search/repositories",
            dest=GitHubRepositorySearchResult,
            query=[{"q": query, "sort": options.sort, "order": options.order}, query_options],
            media_types=media_types,
            etag=etag,
        )
