"""Exception hierarchy for elfin."""

from __future__ import annotations

from typing import Any


class ElfinError(Exception):
    """Base exception for all elfin errors."""


class ConfigurationError(ElfinError):
    """A reducer registry or config value is invalid."""


class DuplicateSlotError(ConfigurationError):
    """The same slot name was declared by more than one composed registry."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"slot {key!r} is declared more than once")


class KeyNotFound(ElfinError, KeyError):
    """A dispatch targeted a slot with no registered reducer."""

    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"no reducer registered for slot {self.key!r}"


class FragmentTypeError(ElfinError, TypeError):
    """A typed slot's reducer produced a fragment of the wrong type."""

    def __init__(self, key: Any, expected: type, actual: Any) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"reducer for slot {key!r} returned {type(actual).__name__}, "
            f"expected {expected.__name__}"
        )


class ContainerDisposedError(ElfinError):
    """Dispatch was called on a disposed container."""

    def __init__(self, store_id: str | None = None) -> None:
        self.store_id = store_id
        if store_id:
            super().__init__(f"container {store_id} is disposed")
        else:
            super().__init__("container is disposed")


class StubExpectationError(ElfinError, AssertionError):
    """A stub installed with expectations was not called as expected."""
