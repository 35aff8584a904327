"""Custom exceptions for the GitHub REST client core."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from .rate_limit import Rate
    from .response import Response


class GitHubRestError(Exception):
    """Base exception for all GitHub REST client errors."""
    pass


# =============================================================================
# Local Errors
# =============================================================================


class ConfigurationError(GitHubRestError, ValueError):
    """Raised when there's a configuration problem."""
    pass


class InvalidArgumentError(GitHubRestError, ValueError):
    """Raised when a request cannot be built from the given arguments."""
    pass


class RequestEncodingError(GitHubRestError):
    """Raised when a request body cannot be encoded as JSON."""
    pass


# =============================================================================
# Response Errors
# =============================================================================


class ApiError(GitHubRestError):
    """Base exception for errors derived from an API response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Optional["Response[Any]"] = None,
    ):
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code if available
            response: Response envelope, populated with rate and page data
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class DecodeError(ApiError):
    """Raised when a successful response body is not valid for the destination."""
    pass


class AcceptedError(ApiError):
    """Raised for a 202 response on an endpoint with asynchronous semantics.

    GitHub returns 202 while it schedules a background job. The body is kept
    verbatim in ``raw`` so the caller can decode it into whatever shape it
    expects once the job finishes. This is informational, not a failure.
    """

    def __init__(self, raw: bytes, response: Optional["Response[Any]"] = None):
        super().__init__("job scheduled on GitHub side; try again later", 202, response)
        self.raw = raw


class RedirectionError(ApiError):
    """Raised when a redirect was not followed."""

    def __init__(
        self,
        status_code: int,
        location: str | None,
        response: Optional["Response[Any]"] = None,
    ):
        super().__init__(
            f"unexpected redirection response {status_code} to {location or '<no location>'}",
            status_code,
            response,
        )
        self.location = location


@dataclass(frozen=True)
class FieldError:
    """More detail on an individual error in an :class:`ErrorResponse`.

    GitHub API docs: https://docs.github.com/rest/#client-errors
    """

    resource: str = ""
    field: str = ""
    code: str = ""
    message: str = ""

    def __str__(self) -> str:
        if self.message and not (self.resource or self.field or self.code):
            return self.message
        return f"{self.code} error caused by {self.field} field on {self.resource} resource"


@dataclass(frozen=True)
class ErrorBlock:
    """Reason a resource was blocked (451 responses)."""

    reason: str = ""
    created_at: datetime | None = None
    html_url: str = ""


class ErrorResponse(ApiError):
    """Reports one or more errors caused by an API request.

    GitHub API docs: https://docs.github.com/rest/#client-errors
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: List[FieldError] | None = None,
        documentation_url: str = "",
        block: ErrorBlock | None = None,
        response: Optional["Response[Any]"] = None,
    ):
        super().__init__(message, status_code, response)
        self.errors = list(errors or [])
        self.documentation_url = documentation_url
        self.block = block

    def __str__(self) -> str:
        if self.response is not None:
            text = (
                f"{self.response.method} {self.response.sanitized_url}: "
                f"{self.status_code} {self.message} {[str(e) for e in self.errors]}"
            )
        else:
            text = f"{self.status_code} {self.message} {[str(e) for e in self.errors]}"
        if self.documentation_url:
            text += f" [{self.documentation_url}]"
        return text


class RateLimitError(ErrorResponse):
    """Raised when the primary rate limit is exhausted.

    Callers should wait until ``rate.reset`` before retrying.
    """

    def __init__(self, rate: "Rate", message: str = "API rate limit exceeded", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.rate = rate

    def __str__(self) -> str:
        return f"{super().__str__()} [rate reset in {self.rate.reset_in()}]"


class AbuseRateLimitError(ErrorResponse):
    """Raised when a secondary (abuse) rate limit is hit.

    ``retry_after`` is how long the caller should wait before retrying, when
    GitHub said so.
    """

    def __init__(
        self,
        message: str = "secondary rate limit exceeded",
        retry_after: timedelta | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class TwoFactorAuthError(ErrorResponse):
    """Raised when the request requires a two-factor OTP code."""
    pass


class PreconditionKind(str, Enum):
    """Documented "expected absence" conditions reported through error bodies."""

    BRANCH_NOT_PROTECTED = "branch_not_protected"


class PreconditionNotMetError(ErrorResponse):
    """Raised when GitHub reports a documented precondition is not met.

    This is an expected, structured absence (e.g. a branch without
    protection), not a generic failure.
    """

    def __init__(self, kind: PreconditionKind, message: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.kind = kind
