"""Shared utility helpers for the GitHub REST client core."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, quote, urlencode, urlparse, urlunparse

from .constants import SENSITIVE_QUERY_PARAMS
from .exceptions import InvalidArgumentError

__all__ = [
    "ensure_no_control_chars",
    "escape_path",
    "sanitize_url",
    "validate_pat_format",
    "validate_url",
]

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def ensure_no_control_chars(value: str, name: str = "path") -> None:
    """Reject values carrying control characters such as a newline.

    Args:
        value: The raw value to check.
        name: Name of the value for error messages.

    Raises:
        InvalidArgumentError: If a control character is present.
    """
    match = _CONTROL_CHARS.search(value)
    if match:
        raise InvalidArgumentError(
            f"{name} contains control character {match.group()!r} at index {match.start()}"
        )


def escape_path(value: str) -> str:
    """Percent-escape a user-controlled path value segment by segment.

    The value is split on ``/`` and every segment is escaped on its own, so
    ``heads/feature/x`` stays a multi-segment ref while characters such as
    ``?``, ``#`` or ``%`` inside a segment cannot change the URL structure.

    Examples:
        >>> escape_path("heads/foo/bar")
        'heads/foo/bar'
        >>> escape_path("release#1")
        'release%231'

    Raises:
        InvalidArgumentError: If the value contains control characters.
    """
    ensure_no_control_chars(value, "path segment")
    return "/".join(quote(segment, safe="") for segment in value.split("/"))


def sanitize_url(url: str) -> str:
    """Redact secret query values before a URL is logged or shown."""
    if not url:
        return url
    parsed = urlparse(url)
    if not parsed.query:
        return url
    pairs = parse_qsl(parsed.query, keep_blank_values=True)
    if not any(key in SENSITIVE_QUERY_PARAMS for key, _ in pairs):
        return url
    redacted = [
        (key, "REDACTED" if key in SENSITIVE_QUERY_PARAMS else value)
        for key, value in pairs
    ]
    return urlunparse(parsed._replace(query=urlencode(redacted)))


def validate_pat_format(pat: str) -> None:
    """Validate GitHub Personal Access Token format.

    Args:
        pat: The token to validate.

    Raises:
        ValueError: If the token format is invalid.
    """
    if not pat or not pat.strip():
        raise ValueError("PAT cannot be empty")

    # Classic tokens start with 'ghp_', fine-grained with 'github_pat_',
    # app tokens with 'ghs_'; OAuth tokens have no prefix
    pat = pat.strip()

    if len(pat) < 20:
        raise ValueError("PAT appears too short to be valid")

    if pat.startswith(("***", "xxx", "...")):
        raise ValueError("PAT appears to be a placeholder, not a real token")

    if not re.match(r'^[a-zA-Z0-9_]+$', pat):
        raise ValueError("PAT contains invalid characters")


def validate_url(url: str, name: str = "URL") -> None:
    """Validate URL format.

    Args:
        url: The URL to validate.
        name: Name of the URL field for error messages.

    Raises:
        ValueError: If the URL format is invalid.
    """
    if not url or not url.strip():
        raise ValueError(f"{name} cannot be empty")

    result = urlparse(url.strip())
    if not result.scheme:
        raise ValueError(f"{name} must include a scheme (http:// or https://)")
    if result.scheme not in ("http", "https"):
        raise ValueError(f"{name} must use http or https scheme")
    if not result.netloc:
        raise ValueError(f"{name} must include a hostname")
