"""Git database endpoints.

GitHub API docs: https://docs.github.com/rest/git
"""

from __future__ import annotations

from ..api.types import GitHubReference
from ..response import Response
from ..transport import RedirectPolicy
from ..utils import escape_path
from .base import BaseService


class GitService(BaseService):
    """Wrappers for the git database API."""

    def get_ref(self, owner: str, repo: str, ref: str) -> Response[GitHubReference]:
        """Get a single reference such as ``heads/main`` or ``tags/v1.0``.

        The ``refs/`` prefix is optional. Multi-segment refs keep their
        slashes; each segment is escaped on its own. Ref lookups never follow
        redirects.
        """
        ref = ref.removeprefix("refs/")
        return self.client.request(
            "GET",
            f"repos/{escape_path(owner)}/{escape_path(repo)}/git/ref/{escape_path(ref)}",
            dest=GitHubReference,
            redirect=RedirectPolicy.NO_REDIRECT,
        )
