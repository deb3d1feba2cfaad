"""Test orchestration helpers built on stores."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Hashable, Mapping, NamedTuple, Optional, Union

from anyio import create_task_group, sleep
from anyio.abc import TaskGroup

from elfin.actions import AnyAction
from elfin.config import ElfinConfig
from elfin.reducers import Reducer, Slot
from elfin.store import build_store
from elfin.stubs import run_stubs
from elfin.webmocks import run_webmocks

_logger = logging.getLogger(__name__)

Registry = Mapping[Hashable, Union[Slot, Reducer]]


class Dependencies(NamedTuple):
    """Collectors that received the fragments, ``None`` when unused."""

    stubs: Optional[Callable[[Any], Any]]
    mocks: Optional[Callable[[Any], Any]]


def load_test_dependencies(
    action: AnyAction,
    *,
    stubs: Optional[Registry] = None,
    stub_collector: Optional[Callable[[Any], Any]] = None,
    mocks: Optional[Registry] = None,
    mock_collector: Optional[Callable[[Any], Any]] = None,
) -> Dependencies:
    """Score every slot of the stubs and mocks registries for ``action``.

    Each registry gets its own short-lived store. Stubs default to a fresh
    ``StubInstaller`` and mocks to a fresh ``WebMockInstaller``; the caller
    restores whatever collectors are returned.
    """
    if stubs is not None:
        if stub_collector is None:
            stub_collector = run_stubs()
        _logger.debug("Loading stubs %r for %r", list(stubs), action)
        build_store(stubs).score(list(stubs), stub_collector, action)
    else:
        stub_collector = None

    if mocks is not None:
        if mock_collector is None:
            mock_collector = run_webmocks()
        _logger.debug("Loading mocks %r for %r", list(mocks), action)
        build_store(mocks).score(list(mocks), mock_collector, action)
    else:
        mock_collector = None

    return Dependencies(stub_collector, mock_collector)


async def run_to_completion(fn: Callable[..., Awaitable[Any]], *args) -> Any:
    """Run ``fn(task_group, *args)`` and wait for it and its background tasks.

    ``fn`` starts its background work on the task group it receives, so
    the store is safe to read once this returns.
    """
    result = None

    async def _run(tg: TaskGroup):
        nonlocal result
        result = await fn(tg, *args)

    async with create_task_group() as tg:
        tg.start_soon(_run, tg)
    return result


async def wait_until(
    fetch: Callable[[], Any],
    conclude: Callable[[Any], Any],
    *,
    retries: Optional[int] = None,
    interval: Optional[float] = None,
    config: Optional[ElfinConfig] = None,
) -> Any:
    """Poll ``fetch`` until ``conclude`` accepts its value or retries run out.

    Returns the last fetched value.
    """
    config = config or ElfinConfig()
    if config.dependencies_only:
        return None
    retries = config.retries if retries is None else retries
    interval = config.retry_interval if interval is None else interval

    value = None
    for attempt in range(1, retries + 1):
        value = fetch()
        if inspect.isawaitable(value):
            value = await value
        if conclude(value):
            return value
        _logger.debug("wait_until attempt %d/%d not concluded", attempt, retries)
        if attempt < retries:
            await sleep(interval)
    return value
