"""pytest plugin with store, stub and HTTP-mock fixtures."""

import logging
from typing import List

import pytest

from elfin.config import ElfinConfig
from elfin.store import Store, build_store
from elfin.stubs import StubInstaller
from elfin.webmocks import WebMockInstaller


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"elfin_rep_{report.when}", report)


def _test_passed(request) -> bool:
    report = getattr(request.node, "elfin_rep_call", None)
    return report is not None and report.passed


@pytest.fixture
def elfin_config() -> ElfinConfig:
    config = ElfinConfig.from_env()
    if config.log_level:
        logging.getLogger("elfin").setLevel(config.log_level)
    return config


@pytest.fixture
def store_factory():
    """Build stores from reducer registries; each is disposed at teardown."""
    stores: List[Store] = []

    def factory(*registries) -> Store:
        store = build_store(*registries)
        stores.append(store)
        return store

    yield factory

    for store in stores:
        store.dispose()


@pytest.fixture
def stub_installer(request):
    """Stub collector restored after the test, verified only if the test passed."""
    installer = StubInstaller()
    try:
        yield installer
        if _test_passed(request):
            installer.verify()
    finally:
        installer.restore()


@pytest.fixture
def webmocks():
    """HTTP-mock collector intercepting ``requests`` for the test."""
    with WebMockInstaller() as installer:
        yield installer
