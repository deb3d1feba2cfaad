"""Reducer composition.

A registry maps slot names to reducers. ``compose`` binds one or more
registries into a ``CombinedReducer`` that applies an action to every slot,
or to an ordered subset of them, mutating the state dict in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, Iterable, Mapping, Optional, Union

from elfin.actions import AnyAction
from elfin.errors import ConfigurationError, DuplicateSlotError, FragmentTypeError, KeyNotFound

_logger = logging.getLogger(__name__)

Reducer = Callable[[Any, AnyAction], Any]


@dataclass(frozen=True)
class Slot:
    """A reducer bound to the fragment type of its slot."""

    reducer: Reducer
    fragment_type: Optional[type] = None
    empty: Optional[Callable[[], Any]] = None

    def new_fragment(self) -> Any:
        if self.empty is not None:
            return self.empty()
        if self.fragment_type is not None:
            return self.fragment_type()
        return {}


def _as_slot(key: Hashable, value: Union[Slot, Reducer]) -> Slot:
    if isinstance(value, Slot):
        slot = value
    elif callable(value):
        return Slot(value)
    else:
        raise ConfigurationError(f"reducer for slot {key!r} is not callable: {value!r}")

    if not callable(slot.reducer):
        raise ConfigurationError(f"reducer for slot {key!r} is not callable: {slot.reducer!r}")
    if slot.fragment_type is not None:
        if not isinstance(slot.fragment_type, type):
            raise ConfigurationError(f"fragment_type for slot {key!r} must be a class")
        try:
            fragment = slot.new_fragment()
        except Exception as e:
            raise ConfigurationError(f"cannot build an empty fragment for slot {key!r}") from e
        if not isinstance(fragment, slot.fragment_type):
            raise ConfigurationError(
                f"empty fragment for slot {key!r} is {type(fragment).__name__}, "
                f"expected {slot.fragment_type.__name__}"
            )
    return slot


class CombinedReducer:
    """Applies an action to the slots of a fixed, ordered registry."""

    def __init__(self, slots: Mapping[Hashable, Slot]):
        self._slots: Dict[Hashable, Slot] = dict(slots)
        self.slots = MappingProxyType(self._slots)
        self.keys = tuple(self._slots)

    def __call__(self, state: dict, action: AnyAction, target_keys: Optional[Iterable[Hashable]] = None) -> None:
        keys = self.keys if target_keys is None else target_keys
        for key in keys:
            slot = self._slots.get(key)
            if slot is None:
                raise KeyNotFound(key)
            if key not in state:
                state[key] = slot.new_fragment()
            fragment = state[key]
            produced = slot.reducer(fragment, action)
            if slot.fragment_type is not None and not isinstance(produced, slot.fragment_type):
                raise FragmentTypeError(key, slot.fragment_type, produced)
            if produced is not fragment:
                state[key] = produced

    def empty(self, key: Hashable) -> Any:
        """Fresh empty fragment for ``key``; ``{}`` when the slot is unknown."""
        slot = self._slots.get(key)
        if slot is None:
            return {}
        return slot.new_fragment()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"CombinedReducer({list(self.keys)!r})"


def compose(*registries: Mapping[Hashable, Union[Slot, Reducer]]) -> CombinedReducer:
    """Bind name -> reducer registries into one combined reducer.

    Registration order is preserved across registries. A slot name declared
    by more than one registry raises ``DuplicateSlotError``.
    """
    slots: Dict[Hashable, Slot] = {}
    for registry in registries:
        if not isinstance(registry, Mapping):
            raise ConfigurationError(f"reducer registry must be a mapping, got {type(registry).__name__}")
        for key, value in registry.items():
            if key in slots:
                raise DuplicateSlotError(key)
            slots[key] = _as_slot(key, value)
    _logger.debug("Composed reducer over %d slots: %r", len(slots), list(slots))
    return CombinedReducer(slots)
