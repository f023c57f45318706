"""
calculators/power_source.py - Supply node
"""

from __future__ import annotations
from typing import Any, Dict

from pdsd.bootstrap.config import CalculationConfig
from pdsd.errors.exceptions import InvalidParameter
from pdsd.graph.models import Node
from .schema import CalculatorOutcome


def calculate_power_source(node: Node, inputs: Dict[str, Any], settings: CalculationConfig) -> CalculatorOutcome:
    """Publishes supply voltage and usable capacity (kVA x efficiency)."""
    params = node.payload

    if params.voltage <= 0:
        raise InvalidParameter("voltage", params.voltage, "must be positive")
    if params.capacity_kva < 0:
        raise InvalidParameter("capacity_kva", params.capacity_kva, "must not be negative")
    if params.efficiency <= 0 or params.efficiency > 1:
        raise InvalidParameter("efficiency", params.efficiency, "must be in (0, 1]")

    return CalculatorOutcome(outputs={
        "voltage": float(params.voltage),
        "capacity": params.capacity_kva * params.efficiency,
    })
