"""State container and the scored store facade.

What is a store? It has space for storage (``state``), gets stocked with
items when actions are dispatched, and lets callers take the items they
want back out with ``score``. Test code uses the items to install stubs and
HTTP mocks.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Hashable, Iterable, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from elfin.actions import AnyAction
from elfin.errors import ConfigurationError, ContainerDisposedError
from elfin.reducers import CombinedReducer, Reducer, Slot, compose

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateContainer:
    """Owns one mutable name -> fragment dict driven by a combined reducer."""

    def __init__(self, reducer: CombinedReducer):
        self.reducer = reducer
        self.id = uuid.uuid4().hex
        self._state: dict = {}
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispatch(self, action: AnyAction, target_keys: Optional[Iterable[Hashable]] = None) -> None:
        if self._disposed:
            raise ContainerDisposedError(self.id)
        if isinstance(target_keys, (str, bytes)):
            raise ConfigurationError(f"target_keys must be a sequence of slot names, not {target_keys!r}")
        if target_keys is not None:
            target_keys = tuple(target_keys)
        _logger.debug("Store %s dispatch %r targets=%r", self.id, action, target_keys)
        self.reducer(self._state, action, target_keys)

    def snapshot(self) -> dict:
        """Shallow copy of the current state."""
        return dict(self._state)

    def drain(self) -> dict:
        """Return the current state and start over with an empty one."""
        state, self._state = self._state, {}
        _logger.debug("Store %s drained %d slots", self.id, len(state))
        return state

    def select(self, selector: Callable[[dict], T]) -> T:
        return selector(self.snapshot())

    def empty(self, key: Hashable) -> Any:
        return self.reducer.empty(key)

    def dispose(self) -> None:
        """Clear state and refuse further dispatch. Safe to call twice."""
        if self._disposed:
            return
        self._state.clear()
        self._disposed = True
        _logger.debug("Store %s disposed", self.id)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.dispose()

    def __repr__(self) -> str:
        return f"StateContainer(id={self.id!r}, slots={list(self.reducer.keys)!r})"


def create_container(reducer: CombinedReducer) -> StateContainer:
    return StateContainer(reducer)


class Store:
    """Container facade adding ``score``, used to wire stubs and mocks."""

    def __init__(self, container: StateContainer):
        self.container = container

    @property
    def id(self) -> str:
        return self.container.id

    @property
    def disposed(self) -> bool:
        return self.container.disposed

    @property
    def keys(self) -> Tuple[Hashable, ...]:
        return self.container.reducer.keys

    def score(
        self,
        keys: Sequence[Hashable],
        collector: Callable[[Any], Any],
        action: Optional[AnyAction] = None,
        inspect: Optional[Callable[[tuple], Any]] = None,
    ) -> tuple:
        """Optionally dispatch ``action``, then feed each requested fragment to ``collector``.

        Values arrive in ``keys`` order. A slot that was never dispatched
        yields its empty fragment. ``inspect`` sees the whole tuple first.
        """
        if isinstance(keys, (str, bytes)):
            raise ConfigurationError(f"keys must be a sequence of slot names, not {keys!r}")
        if action is not None:
            self.dispatch(action)

        container = self.container
        values = container.select(
            lambda state: tuple(state[key] if key in state else container.empty(key) for key in keys)
        )

        if inspect is not None:
            inspect(values)

        for value in values:
            collector(value)
        return values

    def dispatch(self, action: AnyAction, target_keys: Optional[Iterable[Hashable]] = None) -> None:
        self.container.dispatch(action, target_keys)

    def snapshot(self) -> dict:
        return self.container.snapshot()

    fetch = snapshot

    def drain(self) -> dict:
        return self.container.drain()

    def select(self, selector: Callable[[dict], T]) -> T:
        return self.container.select(selector)

    connect = select

    def dispose(self) -> None:
        self.container.dispose()

    cleanup = dispose

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.dispose()

    def __repr__(self) -> str:
        return f"Store(id={self.id!r}, slots={list(self.keys)!r})"


def score(
    store: Union[Store, StateContainer],
    keys: Sequence[Hashable],
    collector: Callable[[Any], Any],
    action: Optional[AnyAction] = None,
    inspect: Optional[Callable[[tuple], Any]] = None,
) -> tuple:
    if isinstance(store, StateContainer):
        store = Store(store)
    return store.score(keys, collector, action, inspect)


def build_store(*registries: Mapping[Hashable, Union[Slot, Reducer]]) -> Store:
    """Compose ``registries`` and wrap the result in a fresh store."""
    return Store(create_container(compose(*registries)))
