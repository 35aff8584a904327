"""Endpoint wrappers built on the shared transport core."""

from .git import GitService
from .rate_limit import RateLimitService
from .repositories import RepositoriesService, RepositoryListByOrgOptions
from .search import SearchOptions, SearchService

__all__ = [
    "GitService",
    "RateLimitService",
    "RepositoriesService",
    "RepositoryListByOrgOptions",
    "SearchOptions",
    "SearchService",
]
