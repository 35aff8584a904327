"""GitHub REST API client: the shared transport core for endpoint wrappers."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterator, Optional

import requests
import requests_cache

from .config import CACHE_DIR, Config
from .options import ListCursorOptions, ListOptions, RequestConfig
from .rate_limit import Rate, RateLimiter, category_for
from .request_builder import RequestBuilder
from .response import Response
from .transport import RedirectPolicy, Timeout, TransportExecutor
from .utils import sanitize_url

logger = logging.getLogger(__name__)

CACHE_NAME = "api_cache"


class GitHubApiClient:
    """Client owning the transport, the request builder and the rate limiter.

    Every endpoint wrapper goes through three operations: :meth:`new_request`
    builds a request, :meth:`execute` sends it, and :meth:`rate_limit` reads
    the latest rate limit snapshot. One instance may be shared by many
    threads; only the rate limiter holds mutable shared state.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """Initialize GitHub API client.

        Args:
            config: Configuration object; defaults are used when omitted
            token: Token to authenticate with; read from the keyring when omitted
            session: Optional requests session (e.g. for connection pooling)
            rate_limiter: Optional limiter, for sharing state or isolated tests
        """
        self.config = config or Config()
        if token is None and self.config.has_pat():
            token = self.config.get_pat()

        self.session = session
        self.rate_limiter = rate_limiter or RateLimiter()
        self.builder = RequestBuilder(
            base_url=self.config.server.api_url,
            token=token,
            user_agent=self.config.api.user_agent,
            api_version=self.config.api.api_version,
        )
        self.executor = TransportExecutor(
            session=self._get_session(),
            rate_limiter=self.rate_limiter,
            builder=self.builder,
            timeout=self.config.api.timeout,
        )

    def _get_session(self) -> requests.Session:
        """Get or create the requests session.

        With caching enabled this is a ``CachedSession`` that revalidates
        every request with the server, so bodies are only reused after a
        304 Not Modified.
        """
        if self.session is None:
            if self.config.cache.enabled:
                CACHE_DIR.mkdir(parents=True, exist_ok=True)
                self.session = requests_cache.CachedSession(
                    cache_name=str(CACHE_DIR / CACHE_NAME),
                    backend="sqlite",
                    expire_after=self.config.cache.expire_after,
                    always_revalidate=True,
                    allowable_codes=[200],
                    allowable_methods=["GET", "HEAD"],
                )
                logger.debug(
                    f"Initialized cached session (expire_after={self.config.cache.expire_after}s)"
                )
            else:
                self.session = requests.Session()
                logger.debug("Initialized regular session (caching disabled)")
        return self.session

    def new_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        config: Optional[RequestConfig] = None,
        **options: Any,
    ) -> requests.PreparedRequest:
        """Build a request; keyword options populate a :class:`RequestConfig`.

        Raises:
            InvalidArgumentError: If the path or an option is invalid
            RequestEncodingError: If body cannot be encoded as JSON
        """
        if options:
            config = replace(config, **options) if config else RequestConfig(**options)
        return self.builder.build(method, path, body, config)

    def execute(
        self,
        request: requests.PreparedRequest,
        dest: Any = None,
        *,
        redirect: RedirectPolicy = RedirectPolicy.NO_REDIRECT,
        accept_async: bool = False,
        timeout: Timeout = None,
    ) -> Response[Any]:
        """Send a built request; see :meth:`TransportExecutor.execute`.

        When ``api.check_rate_limit`` is on, a request whose category is known
        to be exhausted (or made while a secondary limit is active) fails
        with the matching error before anything is sent.
        """
        if self.config.api.check_rate_limit and not _is_rate_limit_endpoint(request):
            self.rate_limiter.check(category_for(request.method or "GET", request.url or ""))
        return self.executor.execute(
            request, dest, redirect=redirect, accept_async=accept_async, timeout=timeout
        )

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        dest: Any = None,
        *,
        redirect: RedirectPolicy = RedirectPolicy.NO_REDIRECT,
        accept_async: bool = False,
        timeout: Timeout = None,
        **options: Any,
    ) -> Response[Any]:
        """Build and execute in one call."""
        request = self.new_request(method, path, body, **options)
        return self.execute(
            request, dest, redirect=redirect, accept_async=accept_async, timeout=timeout
        )

    def rate_limit(self, resource: str = "core") -> Rate:
        """Latest rate limit observed for ``resource``."""
        return self.rate_limiter.snapshot(resource)

    def iter_pages(
        self,
        path: str,
        dest: Any = None,
        options: ListOptions | ListCursorOptions | None = None,
        max_pages: Optional[int] = None,
        **request_options: Any,
    ) -> Iterator[Response[Any]]:
        """Yield one response per page of a list endpoint.

        Follows ``next_page`` for offset pagination and ``after``/``cursor``
        for cursor pagination. Stops when there is no next page, after
        ``max_pages`` pages, or when the next page would repeat one already
        fetched.

        Args:
            path: API endpoint path
            dest: Type to decode each page into
            options: Starting pagination options; per_page defaults to config
            max_pages: Page cap (default: ``api.max_pages``)
            **request_options: Extra :class:`RequestConfig` fields

        Raises:
            ValueError: If max_pages is not positive
        """
        max_pages = self.config.api.max_pages if max_pages is None else max_pages
        if max_pages <= 0:
            raise ValueError(f"max_pages must be positive, got {max_pages}")

        options = options if options is not None else ListOptions()
        if not options.per_page:
            options = replace(options, per_page=self.config.api.per_page)

        extra_query = request_options.pop("query", None)
        seen: set[tuple] = set()
        for _ in range(max_pages):
            key = _page_key(options)
            if key in seen:
                logger.warning(f"Pagination loop detected for {sanitize_url(path)} at {key}; stopping")
                return
            seen.add(key)

            query = [extra_query, options] if extra_query is not None else options
            response = self.request("GET", path, dest=dest, query=query, **request_options)
            yield response

            next_options = _next_options(options, response)
            if next_options is None:
                return
            options = next_options

        logger.warning(f"Stopped paginating {sanitize_url(path)} after {max_pages} pages; more pages remain")

    def close(self) -> None:
        """Close the requests session and release resources."""
        if self.session is not None:
            self.session.close()

    def __enter__(self) -> "GitHubApiClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close session."""
        self.close()

    @staticmethod
    def clear_cache() -> bool:
        """Delete the conditional-request cache file.

        Returns:
            True if a cache file was removed, False if none existed
        """
        cache_path: Path = CACHE_DIR / f"{CACHE_NAME}.sqlite"
        if not cache_path.exists():
            return False
        cache_path.unlink()
        logger.info(f"Cleared API cache: {cache_path}")
        return True


def _is_rate_limit_endpoint(request: requests.PreparedRequest) -> bool:
    path = (request.path_url or "").split("?", 1)[0]
    return path.rstrip("/").endswith("/rate_limit")


def _page_key(options: ListOptions | ListCursorOptions) -> tuple:
    if isinstance(options, ListCursorOptions):
        return ("cursor", options.page_token, options.after, options.cursor, options.before)
    return ("page", options.page)


def _next_options(
    options: ListOptions | ListCursorOptions, response: Response[Any]
) -> ListOptions | ListCursorOptions | None:
    pages = response.pages
    if isinstance(options, ListCursorOptions):
        if pages.next_page_token:
            return replace(options, page_token=pages.next_page_token)
        if pages.after:
            return replace(options, after=pages.after, cursor="", before="")
        if pages.cursor:
            return replace(options, cursor=pages.cursor, after="", before="")
        return None
    if pages.next_page:
        return replace(options, page=pages.next_page)
    return None
