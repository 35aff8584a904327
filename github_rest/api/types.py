"""Type definitions for GitHub API responses.

TypedDicts give endpoint wrappers a typed result while staying tolerant of
the many optional fields GitHub returns. They come from
``typing_extensions`` so pydantic can validate them on every supported
Python version.
"""

from typing import Dict, List, Optional

from typing_extensions import NotRequired, TypedDict


class GitHubUser(TypedDict):
    """GitHub user object."""

    login: str
    id: int
    node_id: NotRequired[str]
    avatar_url: NotRequired[str]
    type: NotRequired[str]
    site_admin: NotRequired[bool]


class GitHubRepository(TypedDict):
    """GitHub repository object."""

    id: int
    name: str
    full_name: str
    private: bool
    node_id: NotRequired[str]
    owner: NotRequired[GitHubUser]
    html_url: NotRequired[str]
    description: NotRequired[Optional[str]]
    fork: NotRequired[bool]
    url: NotRequired[str]
    default_branch: NotRequired[str]
    language: NotRequired[Optional[str]]
    stargazers_count: NotRequired[int]
    forks_count: NotRequired[int]
    open_issues_count: NotRequired[int]
    archived: NotRequired[bool]


class GitHubCommitRef(TypedDict):
    """Commit reference embedded in branches."""

    sha: str
    url: NotRequired[str]


class GitHubBranch(TypedDict):
    """GitHub branch object."""

    name: str
    commit: GitHubCommitRef
    protected: NotRequired[bool]


class GitHubRequiredStatusChecks(TypedDict):
    strict: bool
    contexts: List[str]


class GitHubRequiredReviews(TypedDict):
    dismiss_stale_reviews: NotRequired[bool]
    require_code_owner_reviews: NotRequired[bool]
    required_approving_review_count: NotRequired[int]


class GitHubEnforcement(TypedDict):
    enabled: bool


class GitHubBranchProtection(TypedDict):
    """Branch protection settings."""

    url: NotRequired[str]
    required_status_checks: NotRequired[Optional[GitHubRequiredStatusChecks]]
    required_pull_request_reviews: NotRequired[Optional[GitHubRequiredReviews]]
    enforce_admins: NotRequired[GitHubEnforcement]
    allow_force_pushes: NotRequired[GitHubEnforcement]
    allow_deletions: NotRequired[GitHubEnforcement]


class GitHubGitObject(TypedDict):
    type: str
    sha: str
    url: NotRequired[str]


class GitHubReference(TypedDict):
    """Git reference (``refs/heads/...``, ``refs/tags/...``)."""

    ref: str
    object: GitHubGitObject
    node_id: NotRequired[str]
    url: NotRequired[str]


class GitHubWeeklyStats(TypedDict):
    w: int
    a: int
    d: int
    c: int


class GitHubContributorStats(TypedDict):
    """Contributor activity computed asynchronously by GitHub."""

    total: int
    weeks: List[GitHubWeeklyStats]
    author: NotRequired[Optional[GitHubUser]]


class GitHubRepositorySearchResult(TypedDict):
    """Result of a repository search."""

    total_count: int
    incomplete_results: bool
    items: List[GitHubRepository]


class GitHubRate(TypedDict):
    limit: int
    remaining: int
    reset: int
    used: NotRequired[int]


class GitHubRateLimits(TypedDict):
    """Body of ``GET /rate_limit``."""

    resources: Dict[str, GitHubRate]
    rate: NotRequired[GitHubRate]
