"""
Unit tests for dependencies/propagation.py

Tests dirty-set computation and cache invalidation.
"""

import pytest
from unittest.mock import Mock

from pdsd.core.enums import ChangeType, NodeStatus
from pdsd.dependencies.cache import ResultCache
from pdsd.dependencies.execution import ALL, ExecutionEngine, NodeStatusTracker
from pdsd.dependencies.propagation import UpdatePropagator
from pdsd.dependencies.resolver import topological_order
from pdsd.graph.models import InputId, OutputId


@pytest.fixture
def evaluated(lighting_store):
    """Lighting graph after one full pass; returns (store, ids, cache, statuses, propagator)."""
    store, ids = lighting_store
    cache = ResultCache()
    statuses = NodeStatusTracker()
    ExecutionEngine(statuses=statuses).evaluate(store, topological_order(store), ALL, cache)
    return store, ids, cache, statuses, UpdatePropagator(cache, statuses=statuses)


class TestNoChange:
    """Test propagation without a mutation."""

    def test_none_gives_empty_set(self, evaluated):
        """Test no change record means nothing is dirty."""
        store, _, cache, _, propagator = evaluated
        size = len(cache)

        assert propagator.on_change(store, None) == set()
        assert len(cache) == size

    def test_unchanged_parameter(self, evaluated):
        """Test setting a parameter to its current value dirties nothing."""
        store, ids, _, _, propagator = evaluated
        record = store.set_parameter(ids["c1"], "rated_power", 2.2)
        assert propagator.on_change(store, record) == set()

    def test_record_processed_once(self, evaluated):
        """Test replaying a record returns its dirty set without invalidating again."""
        store, ids, cache, _, propagator = evaluated
        record = store.set_parameter(ids["c1"], "rated_power", 3.0)

        first = propagator.on_change(store, record)
        events = len(propagator.get_events())
        cache.set(OutputId(ids["c1"], "current"), 1.0)

        assert propagator.on_change(store, record) == first
        assert propagator.has_seen(record.change_id)
        assert cache.get(OutputId(ids["c1"], "current")) == 1.0
        assert len(propagator.get_events()) == events

    def test_replay_window_is_bounded(self, lighting_store):
        """Test only the most recent records are remembered."""
        store, ids = lighting_store
        propagator = UpdatePropagator(ResultCache(), history_size=2)
        old = store.set_parameter(ids["c1"], "rated_power", 3.0)
        propagator.on_change(store, old)
        propagator.on_change(store, store.set_parameter(ids["c2"], "rated_power", 3.0))
        propagator.on_change(store, store.set_parameter(ids["c3"], "rated_power", 3.0))

        assert not propagator.has_seen(old.change_id)


class TestParameterChange:
    """Test parameter-change propagation."""

    def test_dirty_set_is_downstream_closure(self, evaluated):
        """Test a circuit power change dirties exactly its downstream."""
        store, ids, _, _, propagator = evaluated
        record = store.set_parameter(ids["c1"], "rated_power", 3.0)

        dirty = propagator.on_change(store, record)

        assert dirty == {ids["c1"], ids["box"], ids["trunk"], ids["balance"]}
        assert ids["c2"] not in dirty
        assert ids["c3"] not in dirty

    def test_dirty_outputs_purged(self, evaluated):
        """Test dirty nodes lose their cached outputs, clean nodes keep them."""
        store, ids, cache, _, propagator = evaluated
        propagator.on_change(store, store.set_parameter(ids["c1"], "rated_power", 3.0))

        assert not cache.contains(OutputId(ids["c1"], "current"))
        assert not cache.contains(OutputId(ids["box"], "box"))
        assert cache.contains(OutputId(ids["c2"], "current"))

    def test_dirty_nodes_go_stale(self, evaluated):
        """Test dirty nodes are marked Stale, others stay Ready."""
        store, ids, _, statuses, propagator = evaluated
        propagator.on_change(store, store.set_parameter(ids["c1"], "rated_power", 3.0))

        assert statuses.get(ids["box"]) == NodeStatus.STALE
        assert statuses.get(ids["c2"]) == NodeStatus.READY


class TestStructuralChange:
    """Test connection and node changes."""

    def test_connection_removed(self, evaluated):
        """Test the destination node and its downstream are dirty."""
        store, ids, _, _, propagator = evaluated
        store.remove_connection(InputId(ids["box"], "circuit_2"))

        dirty = propagator.on_change(store, store.last_change)
        assert dirty == {ids["box"], ids["trunk"], ids["balance"]}

    def test_connection_added(self, evaluated):
        """Test a new connection dirties its destination."""
        store, ids, _, _, propagator = evaluated
        extra = store.add_node("circuit")
        propagator.on_change(store, store.last_change)
        store.add_connection(OutputId(extra, "circuit"), InputId(ids["box"], "circuit_4"))

        dirty = propagator.on_change(store, store.last_change)
        assert dirty == {ids["box"], ids["trunk"], ids["balance"]}

    def test_node_removed(self, evaluated):
        """Test removed outputs are purged and former consumers dirtied."""
        store, ids, cache, _, propagator = evaluated
        record = store.remove_node(ids["box"])

        dirty = propagator.on_change(store, record)

        assert dirty == {ids["trunk"], ids["balance"]}
        assert not cache.contains(OutputId(ids["box"], "box"))
        assert not cache.contains(OutputId(ids["trunk"], "diagram"))
        assert cache.contains(OutputId(ids["c1"], "circuit"))

    def test_node_added(self, evaluated):
        """Test a new node is dirty on its own."""
        store, _, _, _, propagator = evaluated
        node_id = store.add_node("power_source")
        assert propagator.on_change(store, store.last_change) == {node_id}


class TestDirectChange:
    """Test changes reported as a node id or connection."""

    def test_node_id(self, evaluated):
        """Test a bare node id dirties that node and its downstream."""
        store, ids, cache, statuses, propagator = evaluated

        dirty = propagator.on_change(store, ids["c3"])

        assert dirty == {ids["c3"], ids["box"], ids["trunk"], ids["balance"]}
        assert not cache.contains(OutputId(ids["c3"], "circuit"))
        assert statuses.get(ids["c3"]) == NodeStatus.STALE

    def test_connection(self, evaluated):
        """Test a connection dirties its destination side only."""
        store, ids, _, _, propagator = evaluated
        connection = store.connection_for(InputId(ids["box"], "circuit_1"))

        dirty = propagator.on_change(store, connection)
        assert dirty == {ids["box"], ids["trunk"], ids["balance"]}

    def test_unknown_node_id(self, evaluated):
        store, _, _, _, propagator = evaluated
        assert propagator.on_change(store, 999) == set()


class TestEvents:
    """Test propagation history and callbacks."""

    def test_event_recorded(self, evaluated):
        """Test events capture seeds and dirty nodes."""
        store, ids, _, _, propagator = evaluated
        callback = Mock()
        propagator.on_propagate(callback)

        propagator.on_change(store, store.set_parameter(ids["c2"], "rated_power", 1.0))

        event = propagator.get_events()[-1]
        assert event.change_type == ChangeType.PARAMETER_CHANGED
        assert event.seeds == [ids["c2"]]
        assert ids["box"] in event.dirty
        assert event.purged_outputs > 0
        callback.assert_called_once_with(event)

    def test_invalidate_all(self, evaluated):
        """Test full invalidation empties the cache."""
        store, ids, cache, statuses, propagator = evaluated

        dirty = propagator.invalidate_all(store)

        assert dirty == set(ids.values())
        assert len(cache) == 0
        assert statuses.get(ids["c1"]) == NodeStatus.STALE
