import pytest
import anyio
import requests

from elfin.config import ElfinConfig
from elfin.ops import load_test_dependencies, run_to_completion, wait_until
from elfin.reducers import compose
from elfin.store import create_container
from elfin.stubs import StubInstaller
from elfin.webmocks import WebMockInstaller


class Mailer:
    def send(self, to):
        raise AssertionError("real mail sent")


def mailer_reducer(fragment, action):
    if action["type"] == "COMMON":
        return {Mailer: {"send": True}}
    return fragment


def webhook_reducer(fragment, action):
    if action["type"] == "COMMON":
        return {"type": "post", "url": "https://hooks.example.com/1", "code": 204}
    return fragment


def test_load_test_dependencies(stub_installer):
    mocks = []
    load_test_dependencies(
        {"type": "COMMON"},
        stubs={"mailer": mailer_reducer},
        stub_collector=stub_installer,
        mocks={"webhook": webhook_reducer},
        mock_collector=mocks.append,
    )
    assert Mailer().send("a@example.com") is True
    assert mocks == [{"type": "post", "url": "https://hooks.example.com/1", "code": 204}]


def test_load_test_dependencies_defaults_to_installers():
    dependencies = load_test_dependencies(
        {"type": "COMMON"},
        stubs={"mailer": mailer_reducer},
        mocks={"webhook": webhook_reducer},
    )
    try:
        assert isinstance(dependencies.stubs, StubInstaller)
        assert isinstance(dependencies.mocks, WebMockInstaller)
        assert Mailer().send("a@example.com") is True
        assert requests.post("https://hooks.example.com/1").status_code == 204
        dependencies.mocks.assert_expectation({"type": "post", "url": "https://hooks.example.com/1"})
    finally:
        dependencies.stubs.restore()
        dependencies.mocks.restore()


def test_load_test_dependencies_with_nothing_is_noop():
    assert load_test_dependencies({"type": "COMMON"}) == (None, None)


@pytest.mark.asyncio
async def test_run_to_completion_joins_background_work():
    """Reads after run_to_completion see what background tasks dispatched"""
    container = create_container(compose({"jobs": lambda s, a: {"done": s.get("done", 0) + 1}}))

    async def job(delay):
        await anyio.sleep(delay)
        container.dispatch({"type": "DONE"})

    async def handler(tg, count):
        for i in range(count):
            tg.start_soon(job, 0.01 * i)
        return "accepted"

    result = await run_to_completion(handler, 3)
    assert result == "accepted"
    assert container.snapshot() == {"jobs": {"done": 3}}


@pytest.mark.asyncio
async def test_wait_until_stops_when_concluded():
    values = iter([1, 2, 3, 4])
    calls = []

    def fetch():
        calls.append(1)
        return next(values)

    result = await wait_until(fetch, lambda v: v == 2, interval=0)
    assert result == 2
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_wait_until_gives_up_after_retries():
    calls = []

    async def fetch():
        calls.append(1)
        return len(calls)

    result = await wait_until(fetch, lambda v: False, config=ElfinConfig(retries=3, retry_interval=0))
    assert result == 3
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_wait_until_dependencies_only():
    def fetch():
        raise AssertionError("should not poll")

    assert await wait_until(fetch, bool, config=ElfinConfig(dependencies_only=True)) is None
