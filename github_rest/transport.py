"""Request execution: send, follow at most one redirect, decode or classify."""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Any, Optional, Union

import requests
from pydantic import TypeAdapter, ValidationError

from .classifier import ErrorClassifier
from .constants import HEADERS, HTTP_STATUS
from .exceptions import AbuseRateLimitError, DecodeError, RedirectionError
from .pagination import parse_link_header
from .rate_limit import RateLimiter
from .request_builder import RequestBuilder
from .response import Response
from .utils import sanitize_url

logger = logging.getLogger(__name__)

Timeout = Union[float, tuple, None]


class RedirectPolicy(Enum):
    """Whether a call may follow a redirect.

    ``FOLLOW_ONCE`` re-issues the request against ``Location`` a single time;
    a second redirect is an error.
    """

    NO_REDIRECT = "no_redirect"
    FOLLOW_ONCE = "follow_once"


@lru_cache(maxsize=256)
def _adapter(dest: Any) -> TypeAdapter:
    return TypeAdapter(dest)


def decode_body(content: bytes, dest: Any) -> Any:
    """Decode ``content`` into ``dest``.

    ``bytes`` and ``str`` destinations receive the raw body; any other type is
    validated from JSON by pydantic (models, TypedDicts, ``list[...]``,
    ``dict``).

    Raises:
        ValidationError: If the body is not valid JSON for ``dest``
    """
    if dest is bytes:
        return content
    if dest is str:
        return content.decode("utf-8", errors="replace")
    return _adapter(dest).validate_json(content)


class TransportExecutor:
    """Sends prepared requests and turns the outcome into a :class:`Response`.

    The executor never retries on its own. Transport failures
    (``requests.RequestException``) propagate unchanged.
    """

    def __init__(
        self,
        session: requests.Session,
        rate_limiter: RateLimiter,
        builder: RequestBuilder,
        classifier: Optional[ErrorClassifier] = None,
        timeout: Timeout = 30,
    ):
        """Initialize transport executor.

        Args:
            session: Underlying transport (plain or cached requests session)
            rate_limiter: Limiter updated from every response
            builder: Used to re-target requests on a followed redirect
            classifier: Error classifier for failed responses
            timeout: Default per-request timeout in seconds
        """
        self.session = session
        self.rate_limiter = rate_limiter
        self.builder = builder
        self.classifier = classifier or ErrorClassifier()
        self.timeout = timeout

    def execute(
        self,
        request: requests.PreparedRequest,
        dest: Any = None,
        *,
        redirect: RedirectPolicy = RedirectPolicy.NO_REDIRECT,
        accept_async: bool = False,
        timeout: Timeout = None,
    ) -> Response[Any]:
        """Send ``request`` and build the response envelope.

        Args:
            request: Prepared request from :class:`RequestBuilder`
            dest: Type to decode a successful body into, or None
            redirect: Redirect policy for this call
            accept_async: Treat 202 as "job scheduled" and raise AcceptedError
            timeout: Deadline for this call; overrides the executor default

        Returns:
            Response envelope with pages, rate and decoded data

        Raises:
            requests.RequestException: On transport failure, unchanged
            AcceptedError: On 202 when accept_async is set
            RedirectionError: On a redirect that is not followed
            DecodeError: When a successful body does not decode into dest
            ErrorResponse: Or one of its subclasses, on 4xx/5xx
        """
        timeout = self.timeout if timeout is None else timeout
        http_response = self._send(request, timeout)

        if http_response.status_code in HTTP_STATUS['redirects']:
            location = http_response.headers.get(HEADERS['location'])
            if redirect is not RedirectPolicy.FOLLOW_ONCE or not location:
                raise RedirectionError(
                    http_response.status_code, location, self._envelope(http_response)
                )

            logger.info(
                f"Following {http_response.status_code} redirect from "
                f"{sanitize_url(request.url or '')} to {sanitize_url(location)}"
            )
            self._envelope(http_response)
            http_response = self._send(self.builder.build_redirect(request, location), timeout)

            if http_response.status_code in HTTP_STATUS['redirects']:
                raise RedirectionError(
                    http_response.status_code,
                    http_response.headers.get(HEADERS['location']),
                    self._envelope(http_response),
                )

        envelope = self._envelope(http_response)
        status = http_response.status_code

        error = self.classifier.classify(
            status,
            http_response.content,
            http_response.headers,
            accept_async=accept_async,
            reason=http_response.reason,
            response=envelope,
        )
        if error is not None:
            if isinstance(error, AbuseRateLimitError):
                self.rate_limiter.record_secondary(error.retry_after)
            raise error

        if dest is None or status in HTTP_STATUS['no_body'] or not http_response.content:
            return envelope

        try:
            data = decode_body(http_response.content, dest)
        except (ValidationError, UnicodeDecodeError) as exc:
            logger.error(
                f"Failed to decode response from {envelope.sanitized_url}. "
                f"Status: {status}, "
                f"Content-Type: {http_response.headers.get('content-type', 'unknown')}, "
                f"Content length: {len(http_response.content)}"
            )
            raise DecodeError(
                f"Invalid response body from {envelope.sanitized_url}: {exc}", status, envelope
            ) from exc

        return Response(
            http_response=http_response, pages=envelope.pages, rate=envelope.rate, data=data
        )

    def _send(self, request: requests.PreparedRequest, timeout: Timeout) -> requests.Response:
        logger.debug(f"Sending {request.method} {sanitize_url(request.url or '')}")
        http_response = self.session.send(request, timeout=timeout, allow_redirects=False)
        logger.debug(
            f"Received {http_response.status_code} for {request.method} "
            f"{sanitize_url(request.url or '')}"
        )
        return http_response

    def _envelope(self, http_response: requests.Response) -> Response[Any]:
        rate = self.rate_limiter.update(http_response)
        pages = parse_link_header(http_response.headers.get(HEADERS['link']))
        return Response(http_response=http_response, pages=pages, rate=rate)
