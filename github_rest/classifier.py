"""Turns failed HTTP responses into typed errors.

Classification is by precedence, first match wins:

1. 202 on an async-aware call -> :class:`AcceptedError`
2. 403/429 with ``Retry-After`` or a secondary-limit documentation URL
   -> :class:`AbuseRateLimitError`
3. 403/429 with ``X-RateLimit-Remaining: 0`` and a reset time
   -> :class:`RateLimitError`
4. 400/404 whose message is a documented sentinel
   -> :class:`PreconditionNotMetError`
5. 401 asking for an OTP code -> :class:`TwoFactorAuthError`
6. anything else -> :class:`ErrorResponse`

Successful statuses are never classified.
"""

from __future__ import annotations

import logging
from datetime import datetime
from http import HTTPStatus
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .constants import (
    HEADERS,
    HTTP_STATUS,
    SECONDARY_RATE_LIMIT_DOC_MARKERS,
    SENTINEL_MESSAGES,
)
from .exceptions import (
    AbuseRateLimitError,
    AcceptedError,
    ApiError,
    ErrorBlock,
    ErrorResponse,
    FieldError,
    PreconditionKind,
    PreconditionNotMetError,
    RateLimitError,
    TwoFactorAuthError,
)
from .rate_limit import category_for, parse_rate, parse_retry_after

logger = logging.getLogger(__name__)


class _FieldErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resource: str = ""
    field: str = ""
    code: str = ""
    message: str = ""

    @field_validator("resource", "field", "code", "message", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class _BlockBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: str = ""
    created_at: Optional[datetime] = None
    html_url: str = ""

    @field_validator("reason", "html_url", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class _ErrorBody(BaseModel):
    """Shape of GitHub's JSON error documents."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""
    errors: List[Union[_FieldErrorBody, str]] = []
    documentation_url: str = ""
    block: Optional[_BlockBody] = None

    @field_validator("message", "documentation_url", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("errors", mode="before")
    @classmethod
    def _drop_null_errors(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value


class ErrorClassifier:
    """Pure, stateless classification of failed responses."""

    def classify(
        self,
        status_code: int,
        body: bytes,
        headers: Mapping[str, str],
        *,
        accept_async: bool = False,
        reason: Optional[str] = None,
        response: Any = None,
        now: Optional[datetime] = None,
    ) -> Optional[ApiError]:
        """Classify a response into an error.

        Args:
            status_code: HTTP status code
            body: Raw response body
            headers: Response headers (case-insensitive mapping)
            accept_async: Whether the call treats 202 as "job scheduled"
            reason: HTTP reason phrase, used when the body is not JSON
            response: Response envelope attached to the error
            now: Reference time for retry computations

        Returns:
            The classified error, or None for a successful status
        """
        if status_code == HTTP_STATUS['accepted'] and accept_async:
            return AcceptedError(raw=bytes(body or b""), response=response)
        if 200 <= status_code <= 299 or status_code == HTTP_STATUS['not_modified']:
            return None

        parsed = self._parse_body(body)
        message = parsed.message if parsed else ""
        if not message:
            message = reason or _status_text(status_code)
        common: dict[str, Any] = {
            "status_code": status_code,
            "errors": self._field_errors(parsed),
            "documentation_url": parsed.documentation_url if parsed else "",
            "block": self._block(parsed),
            "response": response,
        }

        if status_code in HTTP_STATUS['rate_limited']:
            if self.is_secondary_rate_limit(headers, common["documentation_url"]):
                retry_after = parse_retry_after(headers, now)
                logger.warning(f"Secondary rate limit hit (status {status_code}, retry after {retry_after})")
                return AbuseRateLimitError(message, retry_after=retry_after, **common)

            if self.is_primary_rate_limit(headers):
                rate = parse_rate(headers, self._resource(response))
                logger.warning(f"Primary rate limit for {rate.resource} exhausted until {rate.reset}")
                return RateLimitError(rate, message, **common)

        if status_code in (HTTP_STATUS['bad_request'], HTTP_STATUS['not_found']) and parsed:
            kind = SENTINEL_MESSAGES.get(parsed.message)
            if kind is not None:
                return PreconditionNotMetError(PreconditionKind(kind), message, **common)

        if status_code == HTTP_STATUS['unauthorized']:
            otp = headers.get(HEADERS['otp']) or ""
            if otp.startswith("required"):
                return TwoFactorAuthError(message, **common)

        return ErrorResponse(message, **common)

    @staticmethod
    def is_secondary_rate_limit(headers: Mapping[str, str], documentation_url: str = "") -> bool:
        if headers.get(HEADERS['retry_after']):
            return True
        markers = SECONDARY_RATE_LIMIT_DOC_MARKERS
        return documentation_url.endswith(markers['suffix']) or markers['contains'] in documentation_url

    @staticmethod
    def is_primary_rate_limit(headers: Mapping[str, str]) -> bool:
        return (
            (headers.get(HEADERS['rate_remaining']) or "").strip() == "0"
            and bool(headers.get(HEADERS['rate_reset']))
        )

    @staticmethod
    def _parse_body(body: bytes) -> Optional[_ErrorBody]:
        if not body:
            return None
        try:
            return _ErrorBody.model_validate_json(body)
        except ValidationError:
            return None

    @staticmethod
    def _field_errors(parsed: Optional[_ErrorBody]) -> List[FieldError]:
        if parsed is None:
            return []
        return [
            FieldError(message=item) if isinstance(item, str)
            else FieldError(resource=item.resource, field=item.field, code=item.code, message=item.message)
            for item in parsed.errors
        ]

    @staticmethod
    def _block(parsed: Optional[_ErrorBody]) -> Optional[ErrorBlock]:
        if parsed is None or parsed.block is None:
            return None
        block = parsed.block
        return ErrorBlock(reason=block.reason, created_at=block.created_at, html_url=block.html_url)

    @staticmethod
    def _resource(response: Any) -> str:
        http_response = getattr(response, "http_response", None)
        request = getattr(http_response, "request", None)
        if request is not None and request.url:
            return category_for(request.method or "GET", request.url)
        return "core"


def _status_text(status_code: int) -> str:
    try:
        return f"{status_code} {HTTPStatus(status_code).phrase}"
    except ValueError:
        return str(status_code)
