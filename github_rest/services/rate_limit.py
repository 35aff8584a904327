"""The rate limit endpoint.

GitHub API docs: https://docs.github.com/rest/rate-limit
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict

from ..api.types import GitHubRateLimits
from ..rate_limit import Rate
from ..response import Response
from .base import BaseService


class RateLimitService(BaseService):
    """Reads every rate limit category at once."""

    def get(self) -> Response[GitHubRateLimits]:
        """Fetch all rate limits and store each category in the client's limiter.

        This endpoint does not count against the primary limit and is never
        refused by the client's pre-flight check.
        """
        response = self.client.request("GET", "rate_limit", dest=GitHubRateLimits)
        if response.data is not None:
            for rate in rates_from(response.data).values():
                self.client.rate_limiter.store(rate)
        return response


def rates_from(data: GitHubRateLimits) -> Dict[str, Rate]:
    """Convert a ``GET /rate_limit`` body into :class:`Rate` values by category."""
    return {
        name: Rate(
            limit=values["limit"],
            remaining=values["remaining"],
            used=values.get("used", 0),
            reset=datetime.fromtimestamp(values["reset"], tz=timezone.utc),
            resource=name,
        )
        for name, values in data["resources"].items()
    }
