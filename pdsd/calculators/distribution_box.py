"""
calculators/distribution_box.py - Distribution box aggregation

Totals the connected circuits, sizes the incoming protection and balances the
circuits over the three phases. Circuits are numbered WL1, WL2, ... in slot
order; empty slots are skipped.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, List
import logging

from pdsd.bootstrap.config import CalculationConfig
from pdsd.core.constants import SQRT_3
from pdsd.core.enums import Phase
from pdsd.errors.exceptions import InvalidParameter
from pdsd.graph.models import Node
from .balancing import balance_phases
from .schema import CalculatorOutcome, CircuitRecord, DistributionBoxRecord
from .selection import select_incoming

logger = logging.getLogger(__name__)

PHASES = (Phase.L1, Phase.L2, Phase.L3)


def three_phase_current(total_power: float, power_factor: float, line_voltage: float) -> float:
    """I = P * 1000 / (sqrt(3) * U * cos phi) for a three-phase feeder."""
    if total_power < 0:
        raise InvalidParameter("total_power", total_power, "must not be negative")
    if power_factor <= 0 or power_factor > 1:
        raise InvalidParameter("box_power_factor", power_factor, "must be in (0, 1]")
    if line_voltage <= 0:
        raise InvalidParameter("line_voltage_v", line_voltage, "must be positive")
    if total_power == 0:
        return 0.0
    return total_power * 1000.0 / (SQRT_3 * line_voltage * power_factor)


def connected_records(inputs: Dict[str, Any], prefix: str) -> List[Any]:
    """Values of numbered slot inputs (prefix_1, prefix_2, ...) that are set."""
    slots = []
    for name, value in inputs.items():
        head, _, index = name.rpartition("_")
        if head == prefix and index.isdigit() and value is not None:
            slots.append((int(index), value))
    return [value for _, value in sorted(slots, key=lambda s: s[0])]


def calculate_distribution_box(node: Node, inputs: Dict[str, Any], settings: CalculationConfig) -> CalculatorOutcome:
    params = node.payload
    circuits: List[CircuitRecord] = connected_records(inputs, "circuit")

    total_power = sum(c.rated_power for c in circuits)
    total_current = three_phase_current(total_power, settings.box_power_factor, settings.line_voltage_v)
    incoming, warnings = select_incoming(total_current * settings.incoming_safety_factor)

    balance = balance_phases(
        [c.rated_power for c in circuits],
        tolerance=settings.balance_tolerance,
        max_iterations=settings.balance_max_iterations,
    )
    if not balance.converged:
        logger.debug(
            f"Box {node.node_id}: balancing stopped at {balance.unbalance_degree:.1f}% "
            f"after {balance.iterations} move(s)"
        )

    numbered = tuple(
        replace(circuit, number=f"WL{i}", phase=PHASES[phase].value)
        for i, (circuit, phase) in enumerate(zip(circuits, balance.assignment), start=1)
    )
    counts = [0, 0, 0]
    for phase in balance.assignment:
        counts[phase] += 1

    record = DistributionBoxRecord(
        name=params.name,
        box_type=params.box_type,
        floor=params.floor,
        modules=tuple(params.modules),
        circuits=numbered,
        total_power=total_power,
        total_current=total_current,
        incoming_current=incoming,
        phase_circuit_counts=(counts[0], counts[1], counts[2]),
        balance=balance,
    )

    return CalculatorOutcome(
        outputs={
            "total_power": total_power,
            "total_current": total_current,
            "incoming_current": incoming,
            "box": record,
        },
        warnings=warnings,
    )
