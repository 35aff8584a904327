from __future__ import annotations

import json
import threading
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from github_rest.api_client import GitHubApiClient
from github_rest.config import Config
from github_rest.rate_limit import RateLimiter


def make_response(
    status_code: int = 200,
    body: Any = b"",
    headers: Optional[Dict[str, str]] = None,
) -> requests.Response:
    """Build a ``requests.Response`` the way the HTTP adapter would."""
    response = requests.Response()
    response.status_code = status_code
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode()
    elif isinstance(body, str):
        body = body.encode()
    response._content = body
    response.headers = CaseInsensitiveDict(headers or {})
    try:
        response.reason = HTTPStatus(status_code).phrase
    except ValueError:
        response.reason = ""
    response.encoding = "utf-8"
    return response


class DummySession:
    """Stands in for ``requests.Session``: records requests, replays responses."""

    def __init__(
        self,
        *responses: Any,
        handler: Optional[Callable[[requests.PreparedRequest], requests.Response]] = None,
    ) -> None:
        self.responses: List[Any] = list(responses)
        self.handler = handler
        self.sent: List[requests.PreparedRequest] = []
        self.send_kwargs: List[Dict[str, Any]] = []
        self.closed = False
        self._lock = threading.Lock()

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        with self._lock:
            self.sent.append(request)
            self.send_kwargs.append(kwargs)
            if self.handler is not None:
                response = self.handler(request)
            elif self.responses:
                response = self.responses.pop(0)
            else:
                raise AssertionError(f"Unexpected request {request.method} {request.url}")

        if isinstance(response, Exception):
            raise response
        response.request = request
        response.url = request.url
        return response

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def session() -> DummySession:
    return DummySession()


@pytest.fixture
def client(session: DummySession) -> GitHubApiClient:
    return GitHubApiClient(
        config=Config(),
        token="test-token",
        session=session,  # type: ignore[arg-type]
        rate_limiter=RateLimiter(),
    )
