"""Tests for request execution, redirects and decoding."""

from datetime import datetime, timedelta, timezone
import threading
from typing import List

import pytest
import requests
from pydantic import BaseModel, ValidationError

from conftest import DummySession, make_response
from github_rest.exceptions import (
    AbuseRateLimitError,
    AcceptedError,
    DecodeError,
    ErrorResponse,
    RateLimitError,
    RedirectionError,
)
from github_rest.rate_limit import RateLimiter
from github_rest.request_builder import RequestBuilder
from github_rest.transport import RedirectPolicy, TransportExecutor, decode_body

RESET = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())


class Label(BaseModel):
    name: str
    color: str = ""


def _rate(remaining=4999, limit=5000):
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Used": str(limit - remaining),
        "X-RateLimit-Reset": str(RESET),
    }


@pytest.fixture
def builder():
    return RequestBuilder("https://api.github.com/", token="tok")


@pytest.fixture
def executor(session, builder):
    return TransportExecutor(session, RateLimiter(), builder, timeout=12)


def test_decodes_successful_body(session, builder, executor):
    session.queue(make_response(200, [{"name": "bug", "color": "f00"}], _rate()))

    response = executor.execute(builder.build("GET", "repos/o/r/labels"), List[Label])

    assert response.status_code == 200
    assert response.data == [Label(name="bug", color="f00")]
    assert response.rate.remaining == 4999
    assert response.rate.resource == "core"
    assert executor.rate_limiter.snapshot("core").remaining == 4999


def test_default_and_per_call_timeout(session, builder, executor):
    session.queue(make_response(200, b"{}"), make_response(200, b"{}"))

    executor.execute(builder.build("GET", "user"))
    executor.execute(builder.build("GET", "user"), timeout=(1, 2))

    assert session.send_kwargs[0] == {"timeout": 12, "allow_redirects": False}
    assert session.send_kwargs[1]["timeout"] == (1, 2)


def test_page_links_are_parsed(session, builder, executor):
    link = (
        '<https://api.github.com/orgs/o/repos?page=3>; rel="next", '
        '<https://api.github.com/orgs/o/repos?page=1>; rel="prev"'
    )
    session.queue(make_response(200, b"[]", {"Link": link}))

    response = executor.execute(builder.build("GET", "orgs/o/repos?page=2"), list)

    assert (response.next_page, response.prev_page) == (3, 1)


def test_raw_destinations(session, builder, executor):
    session.queue(make_response(200, b"# README"), make_response(200, b"# README"))

    assert executor.execute(builder.build("GET", "readme"), bytes).data == b"# README"
    assert executor.execute(builder.build("GET", "readme"), str).data == "# README"


def test_no_destination_leaves_data_empty(session, builder, executor):
    session.queue(make_response(200, b'{"a": 1}'))

    response = executor.execute(builder.build("GET", "user"))

    assert response.data is None
    assert response.content == b'{"a": 1}'


@pytest.mark.parametrize("status", [204, 304])
def test_bodyless_statuses_are_not_decoded(session, builder, executor, status):
    session.queue(make_response(status, b"", {"ETag": '"abc"'}))

    response = executor.execute(builder.build("GET", "user"), Label)

    assert response.status_code == status
    assert response.data is None


def test_not_modified(session, builder, executor):
    session.queue(make_response(304, b"", {"ETag": '"abc"'}))

    response = executor.execute(builder.build("GET", "user"), Label)

    assert response.not_modified
    assert response.etag == '"abc"'


def test_decode_failure_carries_response(session, builder, executor):
    session.queue(make_response(200, b'{"unexpected": true}', _rate()))

    with pytest.raises(DecodeError) as excinfo:
        executor.execute(builder.build("GET", "repos/o/r/labels/bug"), Label)

    assert excinfo.value.status_code == 200
    assert excinfo.value.response.rate.remaining == 4999


def test_async_accepted(session, builder, executor):
    session.queue(make_response(202, b"{}", _rate()))

    with pytest.raises(AcceptedError) as excinfo:
        executor.execute(builder.build("GET", "repos/o/r/stats/contributors"), list, accept_async=True)

    assert excinfo.value.raw == b"{}"
    assert excinfo.value.response.data is None
    assert excinfo.value.response.status_code == 202


def test_accepted_without_async_is_decoded(session, builder, executor):
    session.queue(make_response(202, {"name": "queued"}))

    response = executor.execute(builder.build("POST", "repos/o/r/labels"), Label)

    assert response.data == Label(name="queued")


def test_error_carries_envelope(session, builder, executor):
    session.queue(make_response(404, {"message": "Not Found"}, _rate(remaining=10)))

    with pytest.raises(ErrorResponse) as excinfo:
        executor.execute(builder.build("GET", "repos/o/missing"), Label)

    error = excinfo.value
    assert error.status_code == 404
    assert error.response.rate.remaining == 10
    assert str(error).startswith("GET https://api.github.com/repos/o/missing: 404 Not Found")


def test_rate_limit_error_updates_limiter(session, builder, executor):
    session.queue(make_response(403, {"message": "API rate limit exceeded"}, _rate(remaining=0)))

    with pytest.raises(RateLimitError):
        executor.execute(builder.build("GET", "user"))

    assert executor.rate_limiter.snapshot("core").remaining == 0


def test_secondary_limit_is_remembered(session, builder, executor):
    session.queue(make_response(403, {"message": "slow down"}, {"Retry-After": "30"}))

    with pytest.raises(AbuseRateLimitError):
        executor.execute(builder.build("POST", "repos/o/r/issues"))

    assert executor.rate_limiter.secondary_limit() is not None


def test_transport_error_propagates_unchanged(session, builder, executor):
    failure = requests.ConnectionError("connection reset")
    session.queue(failure)

    with pytest.raises(requests.ConnectionError) as excinfo:
        executor.execute(builder.build("GET", "user"))

    assert excinfo.value is failure


def test_timeout_propagates_unchanged(session, builder, executor):
    session.queue(requests.Timeout("deadline exceeded"))

    with pytest.raises(requests.Timeout):
        executor.execute(builder.build("GET", "user"), timeout=0.01)


def test_redirect_not_followed_by_default(session, builder, executor):
    session.queue(make_response(301, b"", {"Location": "https://api.github.com/repos/o/r/branches/new"}))

    with pytest.raises(RedirectionError) as excinfo:
        executor.execute(builder.build("GET", "repos/o/r/branches/old"))

    assert excinfo.value.status_code == 301
    assert excinfo.value.location == "https://api.github.com/repos/o/r/branches/new"
    assert len(session.sent) == 1


def test_redirect_followed_once(session, builder, executor):
    session.queue(
        make_response(301, b"", {"Location": "https://api.github.com/repos/o/r/branches/new"}),
        make_response(200, {"name": "new"}),
    )

    response = executor.execute(
        builder.build("GET", "repos/o/r/branches/old"), Label, redirect=RedirectPolicy.FOLLOW_ONCE
    )

    assert response.data == Label(name="new")
    assert [r.url for r in session.sent] == [
        "https://api.github.com/repos/o/r/branches/old",
        "https://api.github.com/repos/o/r/branches/new",
    ]
    assert session.sent[1].headers["Authorization"] == "Bearer tok"


def test_second_redirect_is_an_error(session, builder, executor):
    session.queue(
        make_response(302, b"", {"Location": "/repos/o/r/branches/b"}),
        make_response(302, b"", {"Location": "/repos/o/r/branches/c"}),
    )

    with pytest.raises(RedirectionError) as excinfo:
        executor.execute(builder.build("GET", "repos/o/r/branches/a"), redirect=RedirectPolicy.FOLLOW_ONCE)

    assert excinfo.value.location == "/repos/o/r/branches/c"
    assert len(session.sent) == 2


def test_redirect_off_host_drops_authorization(session, builder, executor):
    session.queue(
        make_response(302, b"", {"Location": "https://codeload.github.com/o/r/legacy.tar.gz/main"}),
        make_response(200, b"tarball"),
    )

    response = executor.execute(
        builder.build("GET", "repos/o/r/tarball/main"), bytes, redirect=RedirectPolicy.FOLLOW_ONCE
    )

    assert response.data == b"tarball"
    assert "Authorization" not in session.sent[1].headers


def test_redirect_without_location_is_an_error(session, builder, executor):
    session.queue(make_response(307, b""))

    with pytest.raises(RedirectionError) as excinfo:
        executor.execute(builder.build("GET", "repos/o/r"), redirect=RedirectPolicy.FOLLOW_ONCE)

    assert excinfo.value.location is None


def test_concurrent_requests_share_one_executor(builder):
    def handler(request):
        if "/search/" in request.url:
            return make_response(200, b"{}", {**_rate(remaining=20, limit=30), "X-RateLimit-Resource": "search"})
        return make_response(200, b"{}", {**_rate(remaining=4000), "X-RateLimit-Resource": "core"})

    executor = TransportExecutor(DummySession(handler=handler), RateLimiter(), builder)

    def run(path):
        for _ in range(50):
            executor.execute(builder.build("GET", path))

    threads = [threading.Thread(target=run, args=(path,)) for path in ("user", "search/code?q=x")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert executor.rate_limiter.snapshot("core").remaining == 4000
    assert executor.rate_limiter.snapshot("search").remaining == 20


def test_decode_body_validation_error():
    with pytest.raises(ValidationError):
        decode_body(b"not json", Label)
