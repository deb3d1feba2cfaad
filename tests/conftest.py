pytest_plugins = ["pytester"]

import pytest


def set_reducer(fragment, action):
    if action["type"] == "SET":
        return {"v": action["val"]}
    return fragment


@pytest.fixture
def registry():
    """Two identical slots that store the value of a SET action."""
    return {"a": set_reducer, "b": set_reducer}
