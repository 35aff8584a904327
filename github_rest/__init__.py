"""Shared transport core for GitHub REST API clients.

Example usage:
    ```python
    from github_rest import GitHubApiClient, ListOptions
    from github_rest.services import RepositoriesService

    with GitHubApiClient(token="ghp_...") as client:
        repos = RepositoriesService(client)
        response = repos.list_by_org("github")
        print(len(response.data), response.next_page, client.rate_limit("core"))
    ```
"""

from .api_client import GitHubApiClient
from .classifier import ErrorClassifier
from .config import APIConfig, CacheConfig, Config, ServerConfig
from .constants import LIBRARY_VERSION
from .exceptions import (
    AbuseRateLimitError,
    AcceptedError,
    ApiError,
    ConfigurationError,
    DecodeError,
    ErrorBlock,
    ErrorResponse,
    FieldError,
    GitHubRestError,
    InvalidArgumentError,
    PreconditionKind,
    PreconditionNotMetError,
    RateLimitError,
    RedirectionError,
    RequestEncodingError,
    TwoFactorAuthError,
)
from .options import ListCursorOptions, ListOptions, MediaTypes, RequestConfig, to_query
from .pagination import PageLinks, parse_link_header
from .rate_limit import Rate, RateLimiter, SecondaryRateLimit, category_for
from .request_builder import RequestBuilder
from .response import Response
from .transport import RedirectPolicy, TransportExecutor
from .utils import escape_path, sanitize_url

__version__ = LIBRARY_VERSION

__all__ = [
    "APIConfig",
    "AbuseRateLimitError",
    "AcceptedError",
    "ApiError",
    "CacheConfig",
    "Config",
    "ConfigurationError",
    "DecodeError",
    "ErrorBlock",
    "ErrorClassifier",
    "ErrorResponse",
    "FieldError",
    "GitHubApiClient",
    "GitHubRestError",
    "InvalidArgumentError",
    "ListCursorOptions",
    "ListOptions",
    "MediaTypes",
    "PageLinks",
    "PreconditionKind",
    "PreconditionNotMetError",
    "Rate",
    "RateLimitError",
    "RateLimiter",
    "RedirectPolicy",
    "RedirectionError",
    "RequestBuilder",
    "RequestConfig",
    "RequestEncodingError",
    "Response",
    "SecondaryRateLimit",
    "ServerConfig",
    "TransportExecutor",
    "TwoFactorAuthError",
    "category_for",
    "escape_path",
    "parse_link_header",
    "sanitize_url",
    "to_query",
]
