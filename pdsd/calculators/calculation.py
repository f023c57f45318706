"""
calculators/calculation.py - Stand-alone calculation nodes

A Calculation node carries a calculation_type fixed at creation:

- phase_balance: unbalance degree (%) of a connected distribution box
- voltage_drop: voltage loss (%) of a three-phase copper cable run
"""

from __future__ import annotations
from typing import Any, Dict
import math

from pdsd.bootstrap.config import CalculationConfig
from pdsd.core.constants import CABLE_REACTANCE_OHM_KM, COPPER_RESISTIVITY_OHM_MM2_M, SQRT_3
from pdsd.core.enums import CalculationType
from pdsd.errors.exceptions import InvalidParameter
from pdsd.graph.models import Node
from .schema import CalculatorOutcome, DistributionBoxRecord


def voltage_drop_percent(
    current: float,
    length_m: float,
    cross_section_mm2: float,
    power_factor: float,
    voltage: float,
) -> float:
    """
    Three-phase voltage loss in percent of the line voltage.

        dU% = sqrt(3) * I * L * (rho / S * cos phi + x * sin phi) / U * 100
    """
    if current < 0:
        raise InvalidParameter("current", current, "must not be negative")
    if length_m < 0:
        raise InvalidParameter("length_m", length_m, "must not be negative")
    if cross_section_mm2 <= 0:
        raise InvalidParameter("cross_section_mm2", cross_section_mm2, "must be positive")
    if power_factor <= 0 or power_factor > 1:
        raise InvalidParameter("power_factor", power_factor, "must be in (0, 1]")
    if voltage <= 0:
        raise InvalidParameter("voltage", voltage, "must be positive")

    sin_phi = math.sqrt(1.0 - power_factor ** 2)
    resistance = COPPER_RESISTIVITY_OHM_MM2_M / cross_section_mm2   # ohm/m
    reactance = CABLE_REACTANCE_OHM_KM / 1000.0                      # ohm/m

    drop_v = SQRT_3 * current * length_m * (resistance * power_factor + reactance * sin_phi)
    return drop_v / voltage * 100.0


def calculate_calculation(node: Node, inputs: Dict[str, Any], settings: CalculationConfig) -> CalculatorOutcome:
    params = node.payload
    precision = int(params.precision)

    if params.calculation_type == CalculationType.PHASE_BALANCE.value:
        box: DistributionBoxRecord = inputs["box"]
        result = box.balance.unbalance_degree
    elif params.calculation_type == CalculationType.VOLTAGE_DROP.value:
        result = voltage_drop_percent(
            current=float(inputs["current"]),
            length_m=float(inputs["length_m"]),
            cross_section_mm2=float(inputs["cross_section_mm2"]),
            power_factor=float(inputs["power_factor"]),
            voltage=float(inputs["voltage"]),
        )
    else:
        raise InvalidParameter("calculation_type", params.calculation_type, "unknown calculation")

    return CalculatorOutcome(outputs={"result": round(result, precision)})
