"""Tests for rate limit parsing and the shared rate limiter."""

import threading
from datetime import datetime, timedelta, timezone

import pytest
import requests

from conftest import make_response
from github_rest.exceptions import AbuseRateLimitError, RateLimitError
from github_rest.rate_limit import (
    Rate,
    RateLimiter,
    category_for,
    parse_rate,
    parse_retry_after,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _rate_headers(remaining, reset, limit=5000, resource=None):
    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Used": str(limit - remaining),
        "X-RateLimit-Reset": str(int(reset.timestamp())),
    }
    if resource:
        headers["X-RateLimit-Resource"] = resource
    return headers


def _response_for(url, headers, method="GET"):
    response = make_response(200, b"{}", headers)
    response.request = requests.Request(method, url).prepare()
    return response


def test_parse_rate_reads_all_headers():
    reset = NOW + timedelta(minutes=30)
    rate = parse_rate(_rate_headers(4990, reset, resource="core"))

    assert rate == Rate(limit=5000, remaining=4990, used=10, reset=reset, resource="core")


def test_parse_rate_tolerates_missing_and_malformed_headers():
    rate = parse_rate({"X-RateLimit-Limit": "abc"}, resource="search")

    assert rate == Rate(resource="search")


@pytest.mark.parametrize(
    "method, url, expected",
    [
        ("GET", "https://api.github.com/repos/o/r", "core"),
        ("GET", "https://api.github.com/search/repositories?q=x", "search"),
        ("GET", "https://api.github.com/search/code?q=x", "code_search"),
        ("POST", "https://api.github.com/graphql", "graphql"),
        ("POST", "https://api.github.com/app-manifests/abc/conversions", "integration_manifest"),
        ("PUT", "https://api.github.com/repos/o/r/import", "source_import"),
        ("POST", "https://api.github.com/repos/o/r/code-scanning/sarifs", "code_scanning_upload"),
        ("GET", "https://api.github.com/scim/v2/organizations/o/Users", "scim"),
        ("POST", "https://api.github.com/repos/o/r/dependency-graph/snapshots", "dependency_snapshots"),
        ("GET", "https://api.github.com/orgs/o/audit-log", "audit_log"),
        ("POST", "https://api.github.com/orgs/o/actions/runners/registration-token", "actions_runner_registration"),
        ("GET", "https://ghe.example.com/api/v3/search/issues?q=x", "search"),
        ("GET", "search/users", "search"),
    ],
)
def test_category_for(method, url, expected):
    assert category_for(method, url) == expected


def test_update_uses_resource_header():
    limiter = RateLimiter()
    reset = NOW + timedelta(minutes=1)

    rate = limiter.update(
        _response_for("https://api.github.com/repos/o/r", _rate_headers(29, reset, 30, "search"))
    )

    assert rate.resource == "search"
    assert limiter.snapshot("search").remaining == 29
    assert limiter.snapshot("core") == Rate(resource="core")


def test_update_falls_back_to_path_category():
    limiter = RateLimiter()
    reset = NOW + timedelta(minutes=1)

    limiter.update(_response_for("https://api.github.com/search/repositories?q=x", _rate_headers(5, reset, 30)))

    assert limiter.snapshot("search").remaining == 5


def test_update_without_headers_keeps_previous_state():
    limiter = RateLimiter()
    reset = NOW + timedelta(minutes=1)
    limiter.update(_response_for("https://api.github.com/user", _rate_headers(100, reset)))

    limiter.update(_response_for("https://api.github.com/user", {}))

    assert limiter.snapshot("core").remaining == 100


def test_update_is_last_write_wins():
    limiter = RateLimiter()
    reset = NOW + timedelta(minutes=1)
    limiter.update(_response_for("https://api.github.com/user", _rate_headers(100, reset)))
    limiter.update(_response_for("https://api.github.com/user", _rate_headers(200, reset)))

    assert limiter.snapshot("core").remaining == 200


def test_concurrent_updates_to_different_categories_are_independent():
    limiter = RateLimiter()
    reset = NOW + timedelta(hours=1)
    barrier = threading.Barrier(2)

    def update(url, remaining, limit, resource, times=200):
        barrier.wait()
        for index in range(times):
            limiter.update(_response_for(url, _rate_headers(remaining - index % 2, reset, limit, resource)))
        limiter.update(_response_for(url, _rate_headers(remaining, reset, limit, resource)))

    threads = [
        threading.Thread(target=update, args=("https://api.github.com/user", 4000, 5000, "core")),
        threading.Thread(target=update, args=("https://api.github.com/search/code", 25, 30, "search")),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    core = limiter.snapshot("core")
    search = limiter.snapshot("search")
    assert (core.limit, core.remaining) == (5000, 4000)
    assert (search.limit, search.remaining) == (30, 25)


def test_parse_retry_after_seconds():
    assert parse_retry_after({"Retry-After": "60"}, NOW) == timedelta(seconds=60)


def test_parse_retry_after_http_date():
    headers = {"Retry-After": "Thu, 01 Jan 2026 12:02:00 GMT"}

    assert parse_retry_after(headers, NOW) == timedelta(minutes=2)


def test_parse_retry_after_falls_back_to_reset():
    headers = _rate_headers(0, NOW + timedelta(seconds=90))

    assert parse_retry_after(headers, NOW) == timedelta(seconds=90)


def test_parse_retry_after_without_hint():
    assert parse_retry_after({}, NOW) is None


def test_secondary_limit_expires():
    current = [NOW]
    limiter = RateLimiter(clock=lambda: current[0])

    limiter.record_secondary(timedelta(seconds=30))
    assert limiter.secondary_limit().retry_after == timedelta(seconds=30)

    current[0] = NOW + timedelta(seconds=10)
    assert limiter.secondary_limit().retry_after == timedelta(seconds=20)

    current[0] = NOW + timedelta(seconds=31)
    assert limiter.secondary_limit() is None


def test_check_raises_while_secondary_limit_active():
    limiter = RateLimiter(clock=lambda: NOW)
    limiter.record_secondary(timedelta(seconds=5))

    with pytest.raises(AbuseRateLimitError) as excinfo:
        limiter.check("core")

    assert excinfo.value.retry_after == timedelta(seconds=5)


def test_check_raises_for_exhausted_category_only():
    limiter = RateLimiter(clock=lambda: NOW)
    limiter.store(Rate(limit=30, remaining=0, reset=NOW + timedelta(seconds=20), resource="search"))

    with pytest.raises(RateLimitError) as excinfo:
        limiter.check("search")

    assert excinfo.value.rate.resource == "search"
    limiter.check("core")


def test_check_allows_after_reset_passed():
    limiter = RateLimiter(clock=lambda: NOW)
    limiter.store(Rate(limit=30, remaining=0, reset=NOW - timedelta(seconds=1), resource="search"))

    limiter.check("search")
