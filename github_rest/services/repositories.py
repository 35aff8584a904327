"""Repository, branch and branch protection endpoints.

GitHub API docs: https://docs.github.com/rest/repos
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from ..api.types import GitHubBranch, GitHubBranchProtection, GitHubContributorStats, GitHubRepository
from ..options import ListOptions
from ..response import Response
from ..transport import RedirectPolicy
from ..utils import escape_path
from .base import BaseService


@dataclass
class RepositoryListByOrgOptions(ListOptions):
    """Filters for listing an organization's repositories."""

    type: str = ""
    sort: str = ""
    direction: str = ""


class RepositoriesService(BaseService):
    """Wrappers for the repositories API."""

    def list_by_org(
        self, org: str, options: Optional[RepositoryListByOrgOptions] = None
    ) -> Response[List[GitHubRepository]]:
        """List repositories of an organization, one page per call."""
        return self.client.request(
            "GET",
            f"orgs/{escape_path(org)}/repos",
            dest=List[GitHubRepository],
            query=options,
        )

    def get_branch(
        self, owner: str, repo: str, branch: str, follow_redirects: bool = True
    ) -> Response[GitHubBranch]:
        """Get a branch.

        A renamed branch answers with 301 to its new name; by default that
        single redirect is followed.
        """
        policy = RedirectPolicy.FOLLOW_ONCE if follow_redirects else RedirectPolicy.NO_REDIRECT
        return self.client.request(
            "GET",
            _branch_path(owner, repo, branch),
            dest=GitHubBranch,
            redirect=policy,
        )

    def get_branch_protection(
        self, owner: str, repo: str, branch: str
    ) -> Response[GitHubBranchProtection]:
        """Get branch protection.

        Raises:
            PreconditionNotMetError: With kind BRANCH_NOT_PROTECTED when the
                branch has no protection
        """
        return self.client.request(
            "GET",
            f"{_branch_path(owner, repo, branch)}/protection",
            dest=GitHubBranchProtection,
        )

    def update_branch_protection(
        self, owner: str, repo: str, branch: str, protection: Mapping[str, Any]
    ) -> Response[GitHubBranchProtection]:
        """Replace branch protection settings.

        Raises:
            PreconditionNotMetError: With kind BRANCH_NOT_PROTECTED when
                GitHub reports the branch as unprotected
        """
        return self.client.request(
            "PUT",
            f"{_branch_path(owner, repo, branch)}/protection",
            body=dict(protection),
            dest=GitHubBranchProtection,
        )

    def remove_branch_protection(self, owner: str, repo: str, branch: str) -> Response[None]:
        """Remove branch protection (204 No Content on success)."""
        return self.client.request("DELETE", f"{_branch_path(owner, repo, branch)}/protection")

    def list_contributors_stats(
        self, owner: str, repo: str
    ) -> Response[List[GitHubContributorStats]]:
        """Contributor statistics, computed by GitHub in the background.

        Raises:
            AcceptedError: While GitHub is still computing; poll again later
        """
        return self.client.request(
            "GET",
            f"repos/{escape_path(owner)}/{escape_path(repo)}/stats/contributors",
            dest=List[GitHubContributorStats],
            accept_async=True,
        )


def _branch_path(owner: str, repo: str, branch: str) -> str:
    return f"repos/{escape_path(owner)}/{escape_path(repo)}/branches/{escape_path(branch)}"
