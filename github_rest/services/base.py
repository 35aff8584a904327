"""Base class for endpoint wrappers."""

from __future__ import annotations

from ..api_client import GitHubApiClient


class BaseService:
    """Thin wrapper over a shared :class:`GitHubApiClient`."""

    def __init__(self, client: GitHubApiClient):
        """Initialize service.

        Args:
            client: Client shared by all services
        """
        self.client = client
