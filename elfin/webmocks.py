"""HTTP-mock installer.

A mocks fragment maps names to request templates (a list works too)::

    {
        "token": {"type": "post", "url": "https://auth.example.com/token",
                  "request": {"grant_type": "client_credentials"},
                  "response": {"access_token": "t0k"}},
        "hook": {"type": "post", "url": "https://hooks.example.com/1",
                 "wildcard": "order_id", "code": 204, "response": ""},
    }

``request`` restricts post/put/patch templates to that body, ``wildcard``
to bodies containing the substring. ``response`` is JSON encoded, or called
with the request when it is callable. ``WebMockInstaller`` is the collector
handed to ``Store.score``; requests go through ``responses``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

import responses
from requests import PreparedRequest
from responses import matchers

from elfin.errors import ConfigurationError, StubExpectationError

_logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

Url = Union[str, re.Pattern]


def _text(body: Any) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)


def _encode(response: Any) -> Union[str, bytes]:
    if isinstance(response, bytes):
        return response
    return json.dumps(response)


def _encode_result(result: Any) -> Union[str, bytes]:
    if isinstance(result, (str, bytes)):
        return result
    return json.dumps(result)


def _body_equals(expected: Any) -> Callable[[PreparedRequest], Tuple[bool, str]]:
    expected = _text(expected)

    def match(request: PreparedRequest) -> Tuple[bool, str]:
        body = _text(request.body)
        if body == expected:
            return True, ""
        return False, f"request body {body!r} doesn't match {expected!r}"

    return match


def _body_contains(wildcard: str) -> Callable[[PreparedRequest], Tuple[bool, str]]:
    def match(request: PreparedRequest) -> Tuple[bool, str]:
        body = _text(request.body)
        if wildcard in body:
            return True, ""
        return False, f"request body {body!r} doesn't contain {wildcard!r}"

    return match


def _normalize(url: Url) -> Url:
    if isinstance(url, re.Pattern):
        return url
    prepared = PreparedRequest()
    prepared.prepare_url(url, None)
    return prepared.url


def _method(payload: Mapping[str, Any]) -> str:
    return str(payload.get("type", "get")).upper()


def _templates(fragment: Any) -> Iterable[Mapping[str, Any]]:
    if isinstance(fragment, Mapping):
        if "url" in fragment:
            return [fragment]
        return list(fragment.values())
    return list(fragment)


class WebMockInstaller:
    """Registers request templates on a ``responses`` mock.

    The mock starts with the first template and keeps intercepting
    ``requests`` traffic until ``restore``. Requests no template matches
    fail with a connection error.
    """

    def __init__(self, mock: Optional[responses.RequestsMock] = None):
        self.mock = mock or responses.RequestsMock(assert_all_requests_are_fired=False)
        self._started = False

    def start(self) -> None:
        if not self._started:
            self.mock.start()
            self._started = True

    def __call__(self, fragment: Any) -> None:
        for payload in _templates(fragment):
            self.install(payload)

    def install(self, payload: Mapping[str, Any]) -> None:
        if not isinstance(payload, Mapping) or "url" not in payload:
            raise ConfigurationError(f"request template needs a url: {payload!r}")
        method = _method(payload)

        match: List[Any] = []
        wildcard = payload.get("wildcard")
        if wildcard:
            match.append(_body_contains(wildcard))
        elif payload.get("request") is not None and method in BODY_METHODS:
            request = payload["request"]
            match.append(matchers.header_matcher({"Accept": "*/*"}))
            if isinstance(request, Mapping):
                match.append(matchers.json_params_matcher(request))
            else:
                match.append(_body_equals(request))

        self.start()
        status = payload.get("code") or 200
        response = payload.get("response")
        if callable(response):
            self.mock.add_callback(
                method,
                payload["url"],
                callback=lambda request: (status, {}, _encode_result(response(request))),
                match=match,
            )
        else:
            self.mock.add(method, payload["url"], body=_encode(response), status=status, match=match)
        _logger.debug("Mocked %s %s -> %s", method, payload["url"], status)

    def requested(self, method: str, url: Url, body: Optional[str] = None) -> int:
        """Number of intercepted requests to ``method url`` whose body contains ``body``."""
        method = method.upper()
        expected = _normalize(url)
        count = 0
        for call in self.mock.calls:
            request = call.request
            if request.method != method:
                continue
            if isinstance(expected, re.Pattern):
                if not expected.search(request.url):
                    continue
            elif request.url != expected:
                continue
            if body is not None and body not in _text(request.body):
                continue
            count += 1
        return count

    def assert_expectation(self, payload: Mapping[str, Any]) -> None:
        """Fail unless the template's request happened ``times`` times (default 1)."""
        times = payload.get("times", 1)
        count = self.requested(_method(payload), payload["url"], payload.get("body"))
        if count != times:
            raise StubExpectationError(
                f"{_method(payload)} {payload['url']} expected {times} request(s), got {count}"
            )

    def refute_expectation(self, payload: Mapping[str, Any]) -> None:
        """Fail if the template's request happened at all."""
        count = self.requested(_method(payload), payload["url"], payload.get("body"))
        if count:
            raise StubExpectationError(f"{_method(payload)} {payload['url']} was requested {count} time(s)")

    def clear_expectation(self) -> None:
        """Forget recorded requests; templates stay installed."""
        self.mock.calls.reset()

    def restore(self) -> None:
        """Stop intercepting and drop every template. Safe to call twice."""
        if self._started:
            self.mock.stop(allow_assert=False)
            self._started = False
        self.mock.reset()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.restore()


def run_webmocks() -> WebMockInstaller:
    return WebMockInstaller()
