"""
PDSD Test Configuration and Fixtures

Shared graphs for engine, store and calculator tests.
"""

import pytest
from typing import Dict

from pdsd.bootstrap.config import CalculationConfig, PDSDConfig
from pdsd.engine import PowerGraphEngine
from pdsd.graph.models import InputId, OutputId
from pdsd.graph.store import GraphStore


def out(node_id: int, name: str) -> OutputId:
    return OutputId(node_id, name)


def inp(node_id: int, name: str) -> InputId:
    return InputId(node_id, name)


def build_lighting_graph(target) -> Dict[str, int]:
    """
    Three lighting circuits feeding one box; the box feeds a trunk line and a
    phase-balance calculation.

        c1, c2, c3 -> box -> trunk
                          -> balance
    """
    ids = {
        "c1": target.add_node("circuit", {"name": "Lighting 1", "rated_power": 2.2}),
        "c2": target.add_node("circuit", {"name": "Lighting 2", "rated_power": 2.2}),
        "c3": target.add_node("circuit", {"name": "Lighting 3", "rated_power": 2.2}),
        "box": target.add_node("distribution_box", {"name": "AL1", "floor": 1, "circuit_slots": 4}),
        "trunk": target.add_node("trunk_line", {"name": "WLM1", "box_slots": 4}),
        "balance": target.add_node("phase_balance"),
    }

    for slot, circuit in enumerate(("c1", "c2", "c3"), start=1):
        target.add_connection(out(ids[circuit], "circuit"), inp(ids["box"], f"circuit_{slot}"))
    target.add_connection(out(ids["box"], "box"), inp(ids["trunk"], "box_1"))
    target.add_connection(out(ids["box"], "box"), inp(ids["balance"], "box"))

    return ids


@pytest.fixture
def settings():
    """Default calculation constants."""
    return CalculationConfig()


@pytest.fixture
def store():
    """Empty graph store with the built-in templates."""
    return GraphStore()


@pytest.fixture
def engine():
    """Engine with default configuration."""
    return PowerGraphEngine(PDSDConfig())


@pytest.fixture
def lighting_graph(engine):
    """Engine holding the lighting graph; returns (engine, ids)."""
    ids = build_lighting_graph(engine)
    return engine, ids


@pytest.fixture
def lighting_store(store):
    """Bare graph store holding the lighting graph; returns (store, ids)."""
    ids = build_lighting_graph(store)
    return store, ids


@pytest.fixture
def lighting_engine():
    """Factory for engines holding the lighting graph; returns (engine, ids)."""
    def make(config=None):
        engine = PowerGraphEngine(config or PDSDConfig())
        return engine, build_lighting_graph(engine)
    return make
