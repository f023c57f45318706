"""
Unit tests for engine.py

Tests the engine facade end to end: incremental evaluation, cycle handling,
snapshots and parallel passes.
"""

import pytest

from pdsd.bootstrap.config import ExecutionConfig, PDSDConfig
from pdsd.core.enums import NodeStatus
from pdsd.dependencies.resolver import topological_order
from pdsd.errors.exceptions import CycleError
from pdsd.errors.taxonomy import ErrorCode
from pdsd.graph.models import InputId, OutputId


class TestEvaluate:
    """Test incremental evaluation through the facade."""

    def test_first_pass_computes_everything(self, lighting_graph):
        """Test nodes and connections added since creation are all pending."""
        engine, ids = lighting_graph
        assert engine.dirty == set(ids.values())

        report = engine.evaluate()

        assert report.success
        assert set(report.computed_nodes) == set(ids.values())
        assert engine.dirty == set()
        assert engine.value(OutputId(ids["box"], "incoming_current")) == 16.0

    def test_nothing_pending(self, lighting_graph):
        """Test a second pass without changes computes nothing."""
        engine, _ = lighting_graph
        engine.evaluate()

        report = engine.evaluate()
        assert report.results == {}

    def test_parameter_change_recomputes_downstream(self, lighting_graph):
        """Test only the changed circuit and its consumers run again."""
        engine, ids = lighting_graph
        engine.evaluate()

        engine.set_parameter(ids["c1"], "rated_power", 5.0)
        report = engine.evaluate()

        assert set(report.evaluated_nodes) == {ids["c1"], ids["box"], ids["trunk"], ids["balance"]}
        assert engine.value(OutputId(ids["box"], "total_power")) == pytest.approx(9.4)

    def test_unchanged_parameter_is_noop(self, lighting_graph):
        engine, ids = lighting_graph
        engine.evaluate()

        assert engine.set_parameter(ids["c1"], "rated_power", 2.2) is None
        assert engine.dirty == set()

    def test_recompute(self, lighting_graph):
        """Test a full pass recomputes clean nodes too."""
        engine, ids = lighting_graph
        engine.evaluate()

        report = engine.recompute()
        assert len(report.computed_nodes) == len(ids)

    def test_failure_and_recovery(self, lighting_graph):
        """Test a bad parameter fails the chain, fixing it recovers."""
        engine, ids = lighting_graph
        engine.evaluate()

        engine.set_parameter(ids["c1"], "power_factor", 0.0)
        report = engine.evaluate()

        assert report.get(ids["c1"]).errors[0].code == ErrorCode.INVALID_PARAMETER
        assert report.get(ids["box"]).errors[0].code == ErrorCode.UNRESOLVED_INPUT
        assert engine.status(ids["trunk"]) == NodeStatus.FAILED
        assert engine.status(ids["c2"]) == NodeStatus.READY
        assert not engine.has_value(OutputId(ids["box"], "box"))

        engine.set_parameter(ids["c1"], "power_factor", 0.85)
        report = engine.evaluate()

        assert report.success
        assert engine.status(ids["trunk"]) == NodeStatus.READY

    def test_connection_round_trip(self, lighting_graph):
        """Test removing and re-adding a connection restores order and values."""
        engine, ids = lighting_graph
        engine.evaluate()
        order = topological_order(engine.store)
        values = engine.cache.snapshot()

        engine.remove_connection(InputId(ids["box"], "circuit_2"))
        engine.evaluate()
        assert engine.value(OutputId(ids["box"], "total_power")) == pytest.approx(4.4)

        engine.connect(ids["c2"], "circuit", ids["box"], "circuit_2")
        engine.evaluate()

        assert topological_order(engine.store) == order
        assert engine.cache.snapshot() == values


class TestCycles:
    """Test cycle handling."""

    def test_cycle_raises_before_evaluation(self, engine):
        """Test nothing runs and the pending set is kept."""
        a = engine.add_node("voltage_drop")
        b = engine.add_node("voltage_drop")
        engine.connect(a, "result", b, "length_m")
        engine.connect(b, "result", a, "length_m")

        with pytest.raises(CycleError) as exc_info:
            engine.evaluate()

        assert set(exc_info.value.cycle) == {a, b}
        assert engine.dirty == {a, b}
        assert len(engine.cache) == 0

    def test_breaking_cycle(self, engine):
        """Test removing an edge makes the graph evaluable again."""
        a = engine.add_node("voltage_drop")
        b = engine.add_node("voltage_drop")
        engine.connect(a, "result", b, "length_m")
        engine.connect(b, "result", a, "length_m")

        engine.remove_connection(InputId(a, "length_m"))
        report = engine.evaluate()

        # Neither node has a current source connected
        assert report.failed_nodes == [a, b]


class TestChangeFeed:
    """Test change record handling."""

    def test_record_returns_dirty_set(self, lighting_graph):
        """Test a record from the store reports the nodes it dirtied."""
        engine, ids = lighting_graph
        engine.evaluate()
        record = engine.set_parameter(ids["c1"], "rated_power", 3.0)

        expected = {ids["c1"], ids["box"], ids["trunk"], ids["balance"]}
        assert engine.on_change(record) == expected
        assert engine.dirty == expected
        assert engine.on_change(None) == set()

    def test_record_after_evaluation(self, lighting_graph):
        """Test reporting an already evaluated record leaves nothing pending."""
        engine, ids = lighting_graph
        engine.evaluate()
        record = engine.set_parameter(ids["c1"], "rated_power", 3.0)
        engine.evaluate()

        assert ids["box"] in engine.on_change(record)
        assert engine.dirty == set()

    def test_node_id_change(self, lighting_graph):
        """Test a node id is propagated and queued for the next pass."""
        engine, ids = lighting_graph
        engine.evaluate()

        dirty = engine.on_change(ids["c2"])
        report = engine.evaluate()

        assert dirty == {ids["c2"], ids["box"], ids["trunk"], ids["balance"]}
        assert set(report.evaluated_nodes) == dirty

    def test_list_parameter_edited_in_place(self, lighting_graph):
        """Test appending to a module list and writing it back reclassifies the box."""
        engine, ids = lighting_graph
        engine.evaluate()
        diagram = OutputId(ids["trunk"], "diagram")
        assert engine.value(diagram).connections[0].connection_type == "single_power"

        modules = engine.store.get_parameter(ids["box"], "modules")
        modules.append("dual_power_switch")
        assert engine.set_parameter(ids["box"], "modules", modules) is not None
        assert ids["trunk"] in engine.dirty

        engine.evaluate()
        assert engine.value(OutputId(ids["box"], "box")).dual_power
        assert engine.value(diagram).connections[0].connection_type == "dual_power"

        modules.remove("dual_power_switch")
        assert engine.set_parameter(ids["box"], "modules", modules) is not None

    def test_history_recorded(self, lighting_graph):
        engine, ids = lighting_graph
        record = engine.set_parameter(ids["c3"], "demand_coefficient", 0.5)

        assert engine.store.last_change is record
        assert record.old_value == 0.8
        assert record.new_value == 0.5


class TestSnapshot:
    """Test serializable snapshots."""

    def test_consistent_after_node_removal(self, lighting_graph):
        """Test no connection in a snapshot refers to a removed node."""
        engine, ids = lighting_graph
        engine.evaluate()

        engine.remove_node(ids["box"])
        snapshot = engine.snapshot()

        assert snapshot.is_consistent()
        assert ids["box"] not in {n["node_id"] for n in snapshot.nodes}
        assert all(c["destination"]["node_id"] != ids["box"] for c in snapshot.connections)
        assert f"{ids['box']}.out.box" not in snapshot.values

    def test_values_exported(self, lighting_graph):
        engine, ids = lighting_graph
        engine.evaluate()

        data = engine.snapshot().to_dict()

        assert data["statuses"][str(ids["c1"])] == "ready"
        assert data["values"][f"{ids['box']}.out.box"]["name"] == "AL1"


class TestParallelEngine:
    """Test configuration-driven parallel evaluation."""

    def test_parallel_matches_sequential(self, lighting_engine):
        """Test both modes produce identical caches."""
        sequential, _ = lighting_engine()
        parallel, _ = lighting_engine(PDSDConfig(execution=ExecutionConfig(parallel=True, max_workers=3)))

        sequential.evaluate()
        report = parallel.evaluate()

        assert report.parallel
        assert parallel.cache.snapshot() == sequential.cache.snapshot()

    def test_per_call_override(self, lighting_graph):
        engine, _ = lighting_graph
        report = engine.evaluate(parallel=True)
        assert report.parallel
        assert report.success
