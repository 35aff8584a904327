"""Tests for error classification of failed responses."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from requests.structures import CaseInsensitiveDict

from github_rest.classifier import ErrorClassifier
from github_rest.exceptions import (
    AbuseRateLimitError,
    AcceptedError,
    ErrorResponse,
    PreconditionKind,
    PreconditionNotMetError,
    RateLimitError,
    TwoFactorAuthError,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
RESET = NOW + timedelta(minutes=10)


@pytest.fixture
def classifier():
    return ErrorClassifier()


def _body(message="", **extra):
    return json.dumps({"message": message, **extra}).encode()


def _headers(**values):
    return CaseInsensitiveDict(values)


def _rate_headers(remaining="0"):
    return {
        "X-RateLimit-Limit": "5000",
        "X-RateLimit-Remaining": remaining,
        "X-RateLimit-Used": "5000",
        "X-RateLimit-Reset": str(int(RESET.timestamp())),
    }


@pytest.mark.parametrize("status", [200, 201, 204, 304])
def test_success_is_not_an_error(classifier, status):
    assert classifier.classify(status, b"", _headers()) is None


def test_accepted_without_async_is_success(classifier):
    assert classifier.classify(202, b'{"id": 1}', _headers()) is None


def test_accepted_with_async_keeps_raw_body(classifier):
    error = classifier.classify(202, b'{"partial": true}', _headers(), accept_async=True)

    assert isinstance(error, AcceptedError)
    assert error.raw == b'{"partial": true}'
    assert error.status_code == 202


def test_retry_after_beats_primary_rate_headers(classifier):
    headers = _headers(**_rate_headers(), **{"Retry-After": "60"})

    error = classifier.classify(
        403, _body("You have exceeded a secondary rate limit"), headers, now=NOW
    )

    assert isinstance(error, AbuseRateLimitError)
    assert error.retry_after == timedelta(seconds=60)
    assert error.message == "You have exceeded a secondary rate limit"


def test_secondary_limit_from_documentation_url(classifier):
    body = _body(
        "You have triggered an abuse detection mechanism.",
        documentation_url="https://docs.github.com/rest/overview/resources-in-the-rest-api#abuse-rate-limits",
    )

    error = classifier.classify(403, body, _headers(), now=NOW)

    assert isinstance(error, AbuseRateLimitError)
    assert error.retry_after is None


def test_secondary_limit_on_429(classifier):
    error = classifier.classify(429, _body("slow down"), _headers(**{"Retry-After": "5"}), now=NOW)

    assert isinstance(error, AbuseRateLimitError)
    assert error.retry_after == timedelta(seconds=5)


def test_primary_rate_limit(classifier):
    error = classifier.classify(403, _body("API rate limit exceeded for user ID 1."),
                                _headers(**_rate_headers()), now=NOW)

    assert isinstance(error, RateLimitError)
    assert error.rate.remaining == 0
    assert error.rate.limit == 5000
    assert error.rate.reset == RESET
    assert error.status_code == 403


def test_forbidden_with_remaining_requests_is_generic(classifier):
    error = classifier.classify(403, _body("Resource not accessible by integration"),
                                _headers(**_rate_headers(remaining="4999")))

    assert type(error) is ErrorResponse
    assert error.message == "Resource not accessible by integration"


@pytest.mark.parametrize("status", [400, 404])
def test_branch_not_protected_sentinel(classifier, status):
    error = classifier.classify(status, _body("Branch not protected"), _headers())

    assert isinstance(error, PreconditionNotMetError)
    assert error.kind is PreconditionKind.BRANCH_NOT_PROTECTED
    assert error.status_code == status


def test_other_bad_request_message_is_generic(classifier):
    error = classifier.classify(400, _body("Problems parsing JSON"), _headers())

    assert type(error) is ErrorResponse
    assert error.message == "Problems parsing JSON"


def test_sentinel_must_match_exactly(classifier):
    error = classifier.classify(404, _body("Branch not protected yet"), _headers())

    assert type(error) is ErrorResponse


def test_two_factor_required(classifier):
    headers = _headers(**{"X-GitHub-OTP": "required; app"})

    error = classifier.classify(401, _body("Must specify two-factor authentication OTP code."), headers)

    assert isinstance(error, TwoFactorAuthError)


def test_plain_unauthorized(classifier):
    error = classifier.classify(401, _body("Bad credentials"), _headers())

    assert type(error) is ErrorResponse
    assert error.status_code == 401


def test_field_errors_and_block(classifier):
    body = _body(
        "Validation Failed",
        errors=[
            {"resource": "Issue", "field": "title", "code": "missing_field"},
            "title is too long",
        ],
        documentation_url="https://docs.github.com/rest/issues",
        block={"reason": "dmca", "created_at": "2024-01-01T00:00:00Z", "html_url": "https://example.com/dmca"},
    )

    error = classifier.classify(422, body, _headers())

    assert [str(e) for e in error.errors] == [
        "missing_field error caused by title field on Issue resource",
        "title is too long",
    ]
    assert error.documentation_url == "https://docs.github.com/rest/issues"
    assert error.block.reason == "dmca"
    assert error.block.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert "[https://docs.github.com/rest/issues]" in str(error)


def test_null_documentation_url_keeps_sentinel(classifier):
    error = classifier.classify(404, _body("Branch not protected", documentation_url=None), _headers())

    assert isinstance(error, PreconditionNotMetError)
    assert error.documentation_url == ""


def test_null_fields_inside_errors_keep_server_message(classifier):
    body = _body(
        "Validation Failed",
        errors=[{"resource": "Issue", "field": None, "code": "missing", "message": None}, None],
    )

    error = classifier.classify(422, body, _headers())

    assert error.message == "Validation Failed"
    assert len(error.errors) == 1
    assert error.errors[0].resource == "Issue"
    assert error.errors[0].field == ""
    assert error.errors[0].code == "missing"


def test_null_errors_list_and_block_fields(classifier):
    body = _body("Repository access blocked", errors=None, block={"reason": None, "html_url": None})

    error = classifier.classify(451, body, _headers())

    assert error.message == "Repository access blocked"
    assert error.errors == []
    assert error.block.reason == ""
    assert error.block.html_url == ""


def test_abuse_marker_must_end_the_documentation_url(classifier):
    body = _body(
        "Forbidden",
        documentation_url="https://docs.github.com/rest/overview#abuse-rate-limits-for-apps",
    )

    error = classifier.classify(403, body, _headers(), now=NOW)

    assert type(error) is ErrorResponse


def test_non_json_body_falls_back_to_status_text(classifier):
    error = classifier.classify(502, b"<html>Bad Gateway</html>", _headers())

    assert type(error) is ErrorResponse
    assert error.message == "502 Bad Gateway"
    assert error.errors == []


def test_non_json_body_uses_reason_phrase(classifier):
    error = classifier.classify(503, b"", _headers(), reason="Service Unavailable")

    assert error.message == "Service Unavailable"


def test_helpers():
    assert ErrorClassifier.is_secondary_rate_limit(_headers(**{"Retry-After": "1"}))
    assert ErrorClassifier.is_secondary_rate_limit(
        _headers(), "https://docs.github.com/rest/using-the-rest-api/rate-limits-for-the-rest-api#about-secondary-rate-limits"
    )
    assert not ErrorClassifier.is_secondary_rate_limit(_headers())
    assert ErrorClassifier.is_primary_rate_limit(_headers(**_rate_headers()))
    assert not ErrorClassifier.is_primary_rate_limit(_headers(**{"X-RateLimit-Remaining": "0"}))
