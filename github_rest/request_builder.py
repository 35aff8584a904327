"""Outbound request construction for the GitHub REST API."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin, urlparse

import requests
from pydantic_core import PydanticSerializationError, to_jsonable_python

from .constants import (
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_USER_AGENT,
    HEADERS,
    JSON_CONTENT_TYPE,
)
from .exceptions import InvalidArgumentError, RequestEncodingError
from .options import MediaTypes, RequestConfig, to_query
from .utils import ensure_no_control_chars, sanitize_url

logger = logging.getLogger(__name__)


class RequestBuilder:
    """Turns a method, relative path, body and options into a prepared request.

    Relative paths are resolved against ``base_url``. Absolute URLs (for
    example a ``Link`` target) are used as given.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        api_version: str = DEFAULT_API_VERSION,
    ):
        """Initialize request builder.

        Args:
            base_url: API root; a trailing slash is added when missing
            token: Token sent as a Bearer ``Authorization`` header
            user_agent: ``User-Agent`` header value
            api_version: ``X-GitHub-Api-Version`` header value

        Raises:
            InvalidArgumentError: If base_url is not an absolute http(s) URL
        """
        parsed = urlparse(base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidArgumentError(f"base URL must be an absolute http(s) URL, got {base_url!r}")
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.token = token
        self.user_agent = user_agent
        self.api_version = api_version

    @property
    def api_host(self) -> str:
        return urlparse(self.base_url).netloc

    def resolve_url(self, path: str) -> str:
        """Resolve ``path`` against the base URL.

        Raises:
            InvalidArgumentError: If path is empty or carries control characters
        """
        if not path or not path.strip():
            raise InvalidArgumentError("API path cannot be empty")
        ensure_no_control_chars(path)

        if urlparse(path).scheme:
            return path
        return self.base_url + path.lstrip("/")

    def build(
        self,
        method: str,
        path: str,
        body: Any = None,
        config: Optional[RequestConfig] = None,
    ) -> requests.PreparedRequest:
        """Build a fully-formed request.

        Args:
            method: HTTP method
            path: Path relative to the base URL, or an absolute URL
            body: Value to JSON-encode as the request body, if not None
            config: Query, media types, conditional and extra headers

        Returns:
            Prepared request ready for the transport

        Raises:
            InvalidArgumentError: If the path, query or a header value is invalid
            RequestEncodingError: If body cannot be encoded as JSON
        """
        config = config or RequestConfig()
        url = self.resolve_url(path)

        try:
            params = to_query(config.query)
        except TypeError as exc:
            raise InvalidArgumentError(str(exc)) from exc

        headers = self._headers(config, has_body=body is not None)
        data = self.encode_body(body) if body is not None else None

        try:
            prepared = requests.Request(
                method=method.upper(),
                url=url,
                headers=headers,
                params=params,
                data=data,
            ).prepare()
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema) as exc:
            raise InvalidArgumentError(f"Invalid request URL {sanitize_url(url)}: {exc}") from exc

        logger.debug(f"Built {prepared.method} {sanitize_url(prepared.url or url)}")
        return prepared

    def build_redirect(
        self, original: requests.PreparedRequest, location: str
    ) -> requests.PreparedRequest:
        """Re-target ``original`` at ``location`` for a single redirect hop.

        The ``Authorization`` header is kept only when the new location is on
        the API host.

        Raises:
            InvalidArgumentError: If location carries control characters
        """
        ensure_no_control_chars(location, "redirect location")
        target = urljoin(original.url or self.base_url, location)

        redirected = original.copy()
        redirected.prepare_url(target, None)
        if urlparse(target).netloc != self.api_host:
            redirected.headers.pop("Authorization", None)
        return redirected

    @staticmethod
    def encode_body(body: Any) -> bytes:
        """JSON-encode a request body.

        Dataclasses and pydantic models leave out ``None`` fields. Mappings keep
        explicit ``None`` values, which some endpoints require as JSON ``null``.

        Raises:
            RequestEncodingError: If body is not JSON serialisable
        """
        try:
            payload = to_jsonable_python(body, exclude_none=not isinstance(body, Mapping))
            return json.dumps(payload).encode("utf-8")
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            raise RequestEncodingError(
                f"Cannot encode {type(body).__name__} request body as JSON: {exc}"
            ) from exc

    def _headers(self, config: RequestConfig, has_body: bool) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Accept": MediaTypes.coerce(config.media_types).header_value(),
            "User-Agent": self.user_agent,
            HEADERS['api_version']: self.api_version,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if has_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE

        if config.etag:
            headers[HEADERS['if_none_match']] = config.etag
        if config.last_modified:
            headers[HEADERS['if_modified_since']] = _http_date(config.last_modified)

        headers.update(config.headers)

        for name, value in headers.items():
            ensure_no_control_chars(value, f"{name} header")
        return headers


def _http_date(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return format_datetime(value.astimezone(timezone.utc), usegmt=True)
    return str(value)
