"""
calculators/ - Domain calculators, one per node kind.

Every calculator is a pure function

    (node, resolved inputs, CalculationConfig) -> CalculatorOutcome

raising InvalidParameter on a violated numeric precondition.
"""

from typing import Any, Callable, Dict

from pdsd.bootstrap.config import CalculationConfig
from pdsd.core.enums import NodeKind
from pdsd.graph.models import Node

from .schema import (
    CircuitRecord,
    BalanceResult,
    DistributionBoxRecord,
    DiagramBox,
    DiagramConnection,
    TrunkDiagram,
    CalculatorOutcome,
)
from .balancing import balance_phases, relative_spread, unbalance_degree
from .calculation import calculate_calculation, voltage_drop_percent
from .circuit import calculate_circuit, calculate_current
from .distribution_box import calculate_distribution_box, three_phase_current
from .power_source import calculate_power_source
from .selection import (
    cable_designation,
    select_breaker,
    select_cable,
    select_incoming,
    select_standard,
)
from .trunk import calculate_trunk_line, synthesize_diagram

Calculator = Callable[[Node, Dict[str, Any], CalculationConfig], CalculatorOutcome]

CALCULATORS: Dict[NodeKind, Calculator] = {
    NodeKind.POWER_SOURCE: calculate_power_source,
    NodeKind.CIRCUIT: calculate_circuit,
    NodeKind.DISTRIBUTION_BOX: calculate_distribution_box,
    NodeKind.TRUNK_LINE: calculate_trunk_line,
    NodeKind.CALCULATION: calculate_calculation,
}


__all__ = [
    # Records
    "CircuitRecord",
    "BalanceResult",
    "DistributionBoxRecord",
    "DiagramBox",
    "DiagramConnection",
    "TrunkDiagram",
    "CalculatorOutcome",
    # Dispatch
    "Calculator",
    "CALCULATORS",
    # Calculators
    "calculate_power_source",
    "calculate_circuit",
    "calculate_distribution_box",
    "calculate_trunk_line",
    "calculate_calculation",
    # Building blocks
    "calculate_current",
    "three_phase_current",
    "voltage_drop_percent",
    "balance_phases",
    "relative_spread",
    "unbalance_degree",
    "select_standard",
    "select_breaker",
    "select_incoming",
    "select_cable",
    "cable_designation",
    "synthesize_diagram",
]
