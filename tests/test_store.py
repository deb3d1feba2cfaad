import pytest

from elfin.errors import ConfigurationError, ContainerDisposedError, KeyNotFound
from elfin.reducers import compose
from elfin.store import StateContainer, Store, build_store, create_container


def test_set_then_targeted_set(registry):
    """Untargeted SET reaches every slot, a targeted one only its targets"""
    container = create_container(compose(registry))

    container.dispatch({"type": "SET", "val": 5})
    assert container.snapshot() == {"a": {"v": 5}, "b": {"v": 5}}

    container.dispatch({"type": "SET", "val": 9}, target_keys=["a"])
    assert container.snapshot() == {"a": {"v": 9}, "b": {"v": 5}}


def test_fresh_container_is_empty(registry):
    container = create_container(compose(registry))
    assert container.snapshot() == {}
    assert container.select(len) == 0
    assert container.drain() == {}


def test_disjoint_targets_commute():
    def append(fragment, action):
        return {**fragment, "log": fragment.get("log", ()) + (action["type"],)}

    registry = {"a": append, "b": append, "c": append, "d": append}
    actions = [{"type": "ONE"}, {"type": "TWO"}]

    first = create_container(compose(registry))
    second = create_container(compose(registry))
    for action in actions:
        first.dispatch(action, ["a", "b"])
        first.dispatch(action, ["c"])
    for action in actions:
        second.dispatch(action, ["c"])
        second.dispatch(action, ["a", "b"])

    assert first.snapshot() == second.snapshot()
    assert "d" not in first.snapshot()


def test_unknown_target_leaves_state_alone(registry):
    container = create_container(compose({"a": registry["a"]}))
    container.dispatch({"type": "SET", "val": 1})
    with pytest.raises(KeyNotFound):
        container.dispatch({"type": "X"}, target_keys=["z"])
    assert container.snapshot() == {"a": {"v": 1}}


def test_snapshot_is_a_shallow_copy(registry):
    container = create_container(compose(registry))
    container.dispatch({"type": "SET", "val": 1})
    snapshot = container.snapshot()
    snapshot["a"] = "replaced"
    snapshot["b"]["v"] = 2

    state = container.snapshot()
    assert state["a"] == {"v": 1}
    # fragments are shared, not copied
    assert state["b"] == {"v": 2}


def test_drain_returns_state_and_clears(registry):
    container = create_container(compose(registry))
    container.dispatch({"type": "SET", "val": 7})
    before = container.snapshot()

    assert container.drain() == before
    assert container.snapshot() == {}

    container.dispatch({"type": "SET", "val": 8}, ["b"])
    assert container.snapshot() == {"b": {"v": 8}}


def test_drained_mapping_is_detached(registry):
    container = create_container(compose(registry))
    container.dispatch({"type": "SET", "val": 1})
    drained = container.drain()
    container.dispatch({"type": "SET", "val": 2})
    assert drained == {"a": {"v": 1}, "b": {"v": 1}}


def test_select_receives_a_copy(registry):
    container = create_container(compose(registry))
    container.dispatch({"type": "SET", "val": 3})

    def greedy(state):
        state.clear()
        return "done"

    assert container.select(greedy) == "done"
    assert container.snapshot() == {"a": {"v": 3}, "b": {"v": 3}}


def test_dispose_is_idempotent(registry):
    container = create_container(compose(registry))
    container.dispatch({"type": "SET", "val": 3})
    container.dispose()
    container.dispose()

    assert container.disposed
    assert container.snapshot() == {}
    assert container.drain() == {}
    with pytest.raises(ContainerDisposedError) as excinfo:
        container.dispatch({"type": "SET", "val": 4})
    assert excinfo.value.store_id == container.id


def test_context_manager_disposes(registry):
    with StateContainer(compose(registry)) as container:
        container.dispatch({"type": "SET", "val": 1})
    assert container.disposed


def test_containers_do_not_share_state(registry):
    reducer = compose(registry)
    one = create_container(reducer)
    two = create_container(reducer)
    one.dispatch({"type": "SET", "val": 1})
    assert two.snapshot() == {}
    assert one.id != two.id


def test_build_store_wraps_container(registry):
    store = build_store(registry)
    assert isinstance(store, Store)
    assert store.keys == ("a", "b")

    store.dispatch({"type": "SET", "val": 2}, ["b"])
    assert store.fetch() == {"b": {"v": 2}}
    assert store.connect(lambda s: s["b"]["v"]) == 2

    store.cleanup()
    assert store.disposed


def test_store_factory_disposes_at_teardown(store_factory, registry):
    store = store_factory(registry)
    store.dispatch({"type": "SET", "val": 1})
    assert not store.disposed


def test_string_target_keys_are_rejected(registry):
    container = create_container(compose({"ab": registry["a"], "a": registry["a"], "b": registry["b"]}))
    with pytest.raises(ConfigurationError, match="sequence of slot names"):
        container.dispatch({"type": "SET", "val": 1}, "ab")
    assert container.snapshot() == {}

    container.dispatch({"type": "SET", "val": 1}, ("ab",))
    assert container.snapshot() == {"ab": {"v": 1}}


def test_string_score_keys_are_rejected(registry):
    store = build_store(registry)
    with pytest.raises(ConfigurationError):
        store.score("ab", lambda value: None)
