"""
Unit tests for calculators/trunk.py, calculators/calculation.py and
calculators/power_source.py

Tests trunk diagram synthesis, voltage drop and stand-alone calculations.
"""

import math
import pytest

from pdsd.calculators.calculation import calculate_calculation, voltage_drop_percent
from pdsd.calculators.power_source import calculate_power_source
from pdsd.calculators.schema import BalanceResult, DistributionBoxRecord
from pdsd.calculators.trunk import calculate_trunk_line, synthesize_diagram
from pdsd.errors.exceptions import InvalidParameter


def _box(name, floor, power=5.0, dual=False):
    modules = ("dual_power_switch",) if dual else ()
    return DistributionBoxRecord(name=name, floor=floor, modules=modules, total_power=power)


def _edges(diagram):
    return [(c.source, c.target, c.connection_type) for c in diagram.connections]


class TestSynthesizeDiagram:
    """Test floor-by-floor supply topology."""

    def test_mixed_floors(self):
        """Test grouping, slot order within a floor and feed chain."""
        diagram = synthesize_diagram([
            ("box_1", _box("A2", 2)),
            ("box_2", _box("A1", 1)),
            ("box_3", _box("B1", 1, dual=True)),
            ("box_4", _box("A3", 3)),
        ])

        assert diagram.floors == ((1, ("box_2", "box_3")), (2, ("box_1",)), (3, ("box_4",)))
        assert [b.key for b in diagram.boxes] == ["box_2", "box_3", "box_1", "box_4"]
        assert _edges(diagram) == [
            ("root_bus", "box_2", "single_power"),
            ("root_bus", "box_3", "dual_power"),
            ("backup_source", "box_3", "backup_power"),
            ("box_2", "box_1", "single_power"),
            ("box_1", "box_4", "single_power"),
        ]

    def test_floor_gap(self):
        """Test a box is fed from the nearest lower occupied floor."""
        diagram = synthesize_diagram([("box_1", _box("A1", 1)), ("box_2", _box("A5", 5))])
        assert diagram.connections_to("box_2")[0].source == "box_1"

    def test_every_box_has_one_primary_feed(self):
        """Test each box has exactly one non-backup incoming connection."""
        diagram = synthesize_diagram([
            ("box_1", _box("a", 1, dual=True)),
            ("box_2", _box("b", 1)),
            ("box_3", _box("c", 2, dual=True)),
        ])
        for box in diagram.boxes:
            primary = [c for c in diagram.connections_to(box.key) if c.connection_type != "backup_power"]
            assert len(primary) == 1

    def test_empty(self):
        diagram = synthesize_diagram([])
        assert diagram.boxes == ()
        assert diagram.connections == ()

    def test_to_dict(self):
        diagram = synthesize_diagram([("box_1", _box("A1", 1))])
        data = diagram.to_dict()
        assert data["floors"] == [{"floor": 1, "boxes": ["box_1"]}]
        assert data["connections"][0]["source"] == "root_bus"


class TestVoltageDrop:
    """Test three-phase voltage drop."""

    def test_formula(self):
        """Test dU% = sqrt(3)*I*L*(rho/S*cos phi + x*sin phi)/U*100."""
        pf = 0.85
        expected = math.sqrt(3) * 100 * 100 * (0.0172 / 35 * pf + 0.00008 * math.sqrt(1 - pf ** 2)) / 380 * 100

        result = voltage_drop_percent(100.0, 100.0, 35.0, pf, 380.0)

        assert result == pytest.approx(expected)
        assert result == pytest.approx(2.10, abs=0.01)

    def test_zero_current(self):
        assert voltage_drop_percent(0.0, 100.0, 35.0, 0.85, 380.0) == 0.0

    def test_invalid_section(self):
        """Test a zero cross section is rejected."""
        with pytest.raises(InvalidParameter) as exc_info:
            voltage_drop_percent(10.0, 10.0, 0.0, 0.85, 380.0)
        assert exc_info.value.parameter == "cross_section_mm2"


class TestTrunkLine:
    """Test the trunk line calculator."""

    def test_outputs(self, store, settings):
        """Test totals, cable sizing and voltage drop over connected boxes."""
        node = store.get_node(store.add_node("trunk_line", {"box_slots": 3, "length_m": 50.0}))
        inputs = {
            "length_m": 50.0,
            "box_1": _box("A1", 1, power=20.0),
            "box_2": None,
            "box_3": _box("A2", 2, power=10.0),
        }

        outcome = calculate_trunk_line(node, inputs, settings)

        current = 30.0 * 1000 / (math.sqrt(3) * 380 * 0.85)
        assert outcome.outputs["total_power"] == pytest.approx(30.0)
        assert outcome.outputs["total_current"] == pytest.approx(current)
        assert outcome.outputs["voltage_drop_percent"] == pytest.approx(
            voltage_drop_percent(current, 50.0, 16.0, 0.85, 380.0)
        )
        assert [b.key for b in outcome.outputs["diagram"].boxes] == ["box_1", "box_3"]

    def test_negative_length(self, store, settings):
        node = store.get_node(store.add_node("trunk_line"))
        with pytest.raises(InvalidParameter):
            calculate_trunk_line(node, {"length_m": -1.0}, settings)


class TestCalculationNodes:
    """Test stand-alone calculation nodes."""

    def test_phase_balance(self, store, settings):
        """Test the result is the box's unbalance degree, rounded."""
        node = store.get_node(store.add_node("phase_balance"))
        box = DistributionBoxRecord(balance=BalanceResult(unbalance_degree=33.3333))

        outcome = calculate_calculation(node, {"box": box}, settings)
        assert outcome.outputs["result"] == 33.33

    def test_voltage_drop(self, store, settings):
        node = store.get_node(store.add_node("voltage_drop", {"precision": 3}))
        inputs = {"current": 100.0, "length_m": 100.0, "cross_section_mm2": 35.0, "power_factor": 0.85, "voltage": 380.0}

        outcome = calculate_calculation(node, inputs, settings)
        assert outcome.outputs["result"] == round(voltage_drop_percent(100.0, 100.0, 35.0, 0.85, 380.0), 3)


class TestPowerSource:
    """Test the supply node."""

    def test_outputs(self, store, settings):
        node = store.get_node(store.add_node("power_source", {"capacity_kva": 200.0, "efficiency": 0.9}))
        outcome = calculate_power_source(node, {}, settings)

        assert outcome.outputs["voltage"] == 380.0
        assert outcome.outputs["capacity"] == pytest.approx(180.0)

    def test_invalid_efficiency(self, store, settings):
        node = store.get_node(store.add_node("power_source", {"efficiency": 0.0}))
        with pytest.raises(InvalidParameter):
            calculate_power_source(node, {}, settings)
