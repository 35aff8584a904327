"""Constants and configuration values for the GitHub REST client core.

- api_config: defaults, media types, header names, status codes, rate
  limit categories and documented error messages
"""

from __future__ import annotations

from github_rest.constants.api_config import (
    API_PAGINATION,
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_UPLOAD_URL,
    DEFAULT_USER_AGENT,
    DEFAULT_WEB_URL,
    HEADERS,
    HTTP_STATUS,
    JSON_CONTENT_TYPE,
    LIBRARY_VERSION,
    MEDIA_TYPES,
    RATE_CATEGORIES,
    SECONDARY_RATE_LIMIT_DOC_MARKERS,
    SENSITIVE_QUERY_PARAMS,
    SENTINEL_MESSAGES,
)

__all__ = [
    "API_PAGINATION",
    "DEFAULT_API_VERSION",
    "DEFAULT_BASE_URL",
    "DEFAULT_UPLOAD_URL",
    "DEFAULT_USER_AGENT",
    "DEFAULT_WEB_URL",
    "HEADERS",
    "HTTP_STATUS",
    "JSON_CONTENT_TYPE",
    "LIBRARY_VERSION",
    "MEDIA_TYPES",
    "RATE_CATEGORIES",
    "SECONDARY_RATE_LIMIT_DOC_MARKERS",
    "SENSITIVE_QUERY_PARAMS",
    "SENTINEL_MESSAGES",
]
