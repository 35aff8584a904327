"""Rate limit bookkeeping for the primary and secondary GitHub limits.

GitHub reports limits on every response rather than per request, so the
latest observed values are kept per resource category on a
:class:`RateLimiter` owned by a client instance. Under concurrency the
stored value is whichever response was processed last.

GitHub API docs: https://docs.github.com/rest/using-the-rest-api/rate-limits-for-the-rest-api
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests

from .constants import HEADERS
from .exceptions import AbuseRateLimitError, RateLimitError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Rate:
    """Rate limit state for one resource category."""

    limit: int = 0
    remaining: int = 0
    used: int = 0
    reset: Optional[datetime] = None
    resource: str = ""

    def reset_in(self, now: Optional[datetime] = None) -> timedelta:
        """Time left until the limit resets, never negative."""
        if self.reset is None:
            return timedelta(0)
        return max(self.reset - (now or _utcnow()), timedelta(0))

    def is_exhausted(self, now: Optional[datetime] = None) -> bool:
        """True when no requests remain and the reset lies in the future."""
        return (
            self.limit > 0
            and self.remaining == 0
            and self.reset is not None
            and self.reset > (now or _utcnow())
        )


@dataclass(frozen=True)
class SecondaryRateLimit:
    """An active secondary (abuse) limit."""

    retry_after: timedelta


def category_for(method: str, url: str) -> str:
    """Derive the rate limit category of a request from its method and path.

    Used when a response does not name its resource in
    ``X-RateLimit-Resource`` and for pre-flight checks.
    """
    path = urlparse(url).path or "/"
    if not path.startswith("/"):
        path = "/" + path
    # GitHub Enterprise Server mounts the API under /api/v3
    if path.startswith("/api/v3/"):
        path = path[len("/api/v3"):]
    method = method.upper()

    if path.startswith("/search/code") and method == "GET":
        return "code_search"
    if path.startswith("/search/"):
        return "search"
    if path.rstrip("/") in ("/graphql", "/api/graphql"):
        return "graphql"
    if path.startswith("/app-manifests/") and path.endswith("/conversions") and method == "POST":
        return "integration_manifest"
    if path.startswith("/repos/") and path.endswith("/import") and method == "PUT":
        return "source_import"
    if path.endswith("/code-scanning/sarifs"):
        return "code_scanning_upload"
    if path.startswith("/scim/"):
        return "scim"
    if path.startswith("/repos/") and path.endswith("/dependency-graph/snapshots") and method == "POST":
        return "dependency_snapshots"
    if path.startswith(("/orgs/", "/enterprises/")) and path.endswith("/audit-log"):
        return "audit_log"
    if path.endswith("/actions/runners/registration-token") and method == "POST":
        return "actions_runner_registration"
    return "core"


def _header_int(headers: Mapping[str, str], name: str) -> int:
    try:
        return int(headers.get(name, "") or 0)
    except (TypeError, ValueError):
        return 0


def parse_rate(headers: Mapping[str, str], resource: str = "core") -> Rate:
    """Build a :class:`Rate` from ``X-RateLimit-*`` headers.

    Missing or malformed values are left at zero. The resource named by
    ``X-RateLimit-Resource`` wins over ``resource``.
    """
    reset: Optional[datetime] = None
    epoch = _header_int(headers, HEADERS['rate_reset'])
    if epoch:
        reset = datetime.fromtimestamp(epoch, tz=timezone.utc)

    return Rate(
        limit=_header_int(headers, HEADERS['rate_limit']),
        remaining=_header_int(headers, HEADERS['rate_remaining']),
        used=_header_int(headers, HEADERS['rate_used']),
        reset=reset,
        resource=(headers.get(HEADERS['rate_resource']) or resource).strip(),
    )


def parse_retry_after(headers: Mapping[str, str], now: Optional[datetime] = None) -> Optional[timedelta]:
    """Work out how long a secondary limit asks the caller to wait.

    ``Retry-After`` is either delta seconds or an HTTP-date. Without it, an
    exhausted ``X-RateLimit-Reset`` is used. Returns ``None`` when GitHub
    gave no hint.
    """
    now = now or _utcnow()
    value = (headers.get(HEADERS['retry_after']) or "").strip()
    if value:
        if value.isdigit():
            return timedelta(seconds=int(value))
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            when = None
        if when is not None:
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            return max(when - now, timedelta(0))

    if headers.get(HEADERS['rate_remaining']) == "0":
        epoch = _header_int(headers, HEADERS['rate_reset'])
        if epoch:
            return max(datetime.fromtimestamp(epoch, tz=timezone.utc) - now, timedelta(0))
    return None


class RateLimiter:
    """Thread-safe store of the latest rate limits seen by one client.

    ``update`` and ``snapshot`` may be called concurrently from any number of
    in-flight requests. Each category is last-write-wins with no history.
    """

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._rates: Dict[str, Rate] = {}
        self._secondary_until: Optional[datetime] = None

    def update(self, response: requests.Response) -> Rate:
        """Record the rate limit reported by ``response`` and return it.

        Responses without ``X-RateLimit-Limit`` leave the stored state alone.
        """
        request = response.request
        resource = "core"
        if request is not None and request.url:
            resource = category_for(request.method or "GET", request.url)

        rate = parse_rate(response.headers, resource)
        if rate.limit:
            with self._lock:
                self._rates[rate.resource] = rate
        return rate

    def store(self, rate: Rate) -> None:
        """Record a rate obtained out of band (e.g. from ``GET /rate_limit``)."""
        with self._lock:
            self._rates[rate.resource] = rate

    def snapshot(self, resource: str = "core") -> Rate:
        """Latest known rate for ``resource``; a zero :class:`Rate` if unseen."""
        with self._lock:
            return self._rates.get(resource) or Rate(resource=resource)

    def snapshot_all(self) -> Dict[str, Rate]:
        with self._lock:
            return dict(self._rates)

    def record_secondary(self, retry_after: Optional[timedelta]) -> None:
        """Remember an active secondary limit for ``retry_after``."""
        if retry_after is None:
            return
        until = self._clock() + retry_after
        with self._lock:
            if self._secondary_until is None or until > self._secondary_until:
                self._secondary_until = until

    def secondary_limit(self) -> Optional[SecondaryRateLimit]:
        """The secondary limit still in force, if any."""
        now = self._clock()
        with self._lock:
            until = self._secondary_until
            if until is not None and until <= now:
                self._secondary_until = until = None
        if until is None:
            return None
        return SecondaryRateLimit(retry_after=until - now)

    def check(self, resource: str) -> None:
        """Refuse to send when a limit is known to be in force.

        Raises:
            AbuseRateLimitError: While a secondary limit is active.
            RateLimitError: When ``resource`` is exhausted until a future reset.
        """
        secondary = self.secondary_limit()
        if secondary is not None:
            logger.warning(f"Secondary rate limit active for another {secondary.retry_after}")
            raise AbuseRateLimitError(
                f"API secondary rate limit exceeded, retry after {secondary.retry_after}; "
                "not making remote request.",
                retry_after=secondary.retry_after,
            )

        rate = self.snapshot(resource)
        now = self._clock()
        if rate.is_exhausted(now):
            logger.warning(f"Rate limit for {resource} exhausted until {rate.reset}")
            raise RateLimitError(
                rate,
                f"API rate limit of {rate.limit} still exceeded until {rate.reset}, "
                "not making remote request.",
            )
