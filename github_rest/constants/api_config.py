"""API, HTTP, and header configuration constants."""

from __future__ import annotations

# =============================================================================
# API Defaults
# =============================================================================

DEFAULT_BASE_URL = "https://api.github.com/"
DEFAULT_UPLOAD_URL = "https://uploads.github.com/"
DEFAULT_WEB_URL = "https://github.com"
DEFAULT_API_VERSION = "2022-11-28"
LIBRARY_VERSION = "0.1.0"
DEFAULT_USER_AGENT = f"github-rest-core/{LIBRARY_VERSION}"

# GitHub API pagination defaults
API_PAGINATION = {
    'default_per_page': 100,
    'max_per_page': 100,
    'min_per_page': 1,
    'max_pages': 100,
}

# =============================================================================
# Media Types
# =============================================================================

MEDIA_TYPES = {
    'default': 'application/vnd.github+json',
    'text_match': 'application/vnd.github.text-match+json',
}

JSON_CONTENT_TYPE = "application/json"

# =============================================================================
# Headers
# =============================================================================

HEADERS = {
    'api_version': 'X-GitHub-Api-Version',
    'rate_limit': 'X-RateLimit-Limit',
    'rate_remaining': 'X-RateLimit-Remaining',
    'rate_used': 'X-RateLimit-Used',
    'rate_reset': 'X-RateLimit-Reset',
    'rate_resource': 'X-RateLimit-Resource',
    'retry_after': 'Retry-After',
    'otp': 'X-GitHub-OTP',
    'link': 'Link',
    'etag': 'ETag',
    'last_modified': 'Last-Modified',
    'if_none_match': 'If-None-Match',
    'if_modified_since': 'If-Modified-Since',
    'location': 'Location',
}

# =============================================================================
# HTTP Status Codes
# =============================================================================

HTTP_STATUS = {
    'no_content': 204,
    'accepted': 202,
    'not_modified': 304,
    'bad_request': 400,
    'unauthorized': 401,
    'forbidden': 403,
    'not_found': 404,
    'too_many_requests': 429,
    'redirects': (301, 302, 307, 308),
    'rate_limited': (403, 429),
    'no_body': (204, 304),
}

# =============================================================================
# Rate Limit Categories
# =============================================================================

RATE_CATEGORIES = (
    'core',
    'search',
    'graphql',
    'integration_manifest',
    'source_import',
    'code_scanning_upload',
    'actions_runner_registration',
    'scim',
    'dependency_snapshots',
    'code_search',
    'audit_log',
)

# =============================================================================
# Error Messages
# =============================================================================

# Documented messages that map to structured "precondition not met" errors
SENTINEL_MESSAGES = {
    'Branch not protected': 'branch_not_protected',
}

# Secondary limits: documentation URL ending in "suffix" or containing "contains"
SECONDARY_RATE_LIMIT_DOC_MARKERS = {
    'suffix': '#abuse-rate-limits',
    'contains': 'secondary-rate-limits',
}

# Query parameters whose values must never reach logs or error messages
SENSITIVE_QUERY_PARAMS = ('client_secret', 'access_token')
