"""Method-stub installer.

A stubs fragment maps a class or module to the attributes to replace::

    {
        PaymentClient: {
            "charge": {"id": "ch_1"},                              # returns the value
            "refund": {"error": "declined", "exception": CardError},  # raises CardError("declined")
            "status": {"expects": {"response": "ok", "times": 2}},   # checked by verify()
        },
    }

``StubInstaller`` is the collector handed to ``Store.score``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional
from unittest import mock

from elfin.errors import ConfigurationError, StubExpectationError

_logger = logging.getLogger(__name__)


def _error_of(spec: Mapping[str, Any]) -> BaseException:
    error = spec["error"]
    exception = spec.get("exception")
    if exception is not None:
        return exception(error)
    if isinstance(error, BaseException):
        return error
    if isinstance(error, type) and issubclass(error, BaseException):
        return error()
    return RuntimeError(error)


def _label(target: Any, name: str) -> str:
    return f"{getattr(target, '__name__', repr(target))}.{name}"


@dataclass
class _Expectation:
    label: str
    times: Optional[int]
    intercept: Optional[Callable[[Any], Any]] = None
    matched: int = 0
    rejected: List[Any] = field(default_factory=list)

    def __call__(self, *args, **kwargs):
        received = args[0] if len(args) == 1 and not kwargs else args
        if self.intercept is not None and not self.intercept(received):
            self.rejected.append(received)
            raise StubExpectationError(f"unexpected arguments for {self.label}: {received!r}")
        self.matched += 1
        return mock.DEFAULT

    def failures(self) -> List[str]:
        failures = [f"{self.label} called with unexpected arguments {received!r}" for received in self.rejected]
        if isinstance(self.times, int):
            if self.matched != self.times:
                failures.append(f"{self.label} expected {self.times} call(s), got {self.matched}")
        elif self.matched < 1:
            failures.append(f"{self.label} expected at least one call, got none")
        return failures


class StubInstaller:
    """Installs stubs from fragments and undoes them on ``restore``."""

    def __init__(self):
        self._patches: List[Any] = []
        self._expectations: List[_Expectation] = []

    def __call__(self, fragment: Mapping[Any, Mapping[str, Any]]) -> None:
        for target, methods in fragment.items():
            if not isinstance(methods, Mapping):
                raise ConfigurationError(f"stubs for {target!r} must be a mapping of attribute names")
            for name, spec in methods.items():
                self.install(target, name, spec)

    def install(self, target: Any, name: str, spec: Any) -> mock.MagicMock:
        """Replace ``target.name`` according to ``spec`` and return the stub."""
        label = _label(target, name)
        stub = mock.MagicMock(name=label)

        if isinstance(spec, Mapping) and "error" in spec:
            stub.side_effect = _error_of(spec)
        elif isinstance(spec, Mapping) and "expects" in spec:
            expects = spec["expects"] or {}
            times = expects.get("times", expects.get("no_of_times"))
            expectation = _Expectation(label, times, expects.get("intercept"))
            stub.return_value = expects.get("response")
            stub.side_effect = expectation
            self._expectations.append(expectation)
        else:
            stub.return_value = spec

        patcher = mock.patch.object(target, name, stub)
        patcher.start()
        self._patches.append(patcher)
        _logger.debug("Stubbed %s", label)
        return stub

    def verify(self) -> None:
        """Check every ``expects`` stub got the expected matching calls and no others."""
        failures = []
        for expectation in self._expectations:
            failures.extend(expectation.failures())
        if failures:
            raise StubExpectationError("; ".join(failures))

    def restore(self) -> None:
        """Undo all installed stubs, newest first."""
        while self._patches:
            self._patches.pop().stop()
        self._expectations.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.restore()


def run_stubs() -> StubInstaller:
    return StubInstaller()
