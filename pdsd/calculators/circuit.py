"""
calculators/circuit.py - Circuit current calculation

    single phase:  I = P * 1000 * Kx / (U * cos phi)
    three phase:   I = P * 1000 * Kx / (sqrt(3) * U * cos phi)

P in kW, U in V. The 1.1 x I current sizes the breaker, 1.25 x I the cable.
"""

from __future__ import annotations
from typing import Any, Dict, Optional

from pdsd.bootstrap.config import CalculationConfig
from pdsd.core.constants import CIRCUIT_MARGIN_1_1, CIRCUIT_MARGIN_1_25, SQRT_3
from pdsd.core.enums import PhaseType
from pdsd.errors.exceptions import InvalidParameter
from pdsd.graph.models import Node
from .schema import CalculatorOutcome, CircuitRecord
from .selection import cable_designation, select_breaker, select_cable


def default_voltage(phase_type: str, settings: CalculationConfig) -> float:
    if phase_type == PhaseType.THREE.value:
        return settings.line_voltage_v
    return settings.single_phase_voltage_v


def calculate_current(
    rated_power: float,
    demand_coefficient: float,
    power_factor: float,
    voltage: float,
    phase_type: str = PhaseType.SINGLE.value,
) -> float:
    """Circuit current in amperes."""
    if power_factor <= 0 or power_factor > 1:
        raise InvalidParameter("power_factor", power_factor, "must be in (0, 1]")
    if voltage <= 0:
        raise InvalidParameter("voltage", voltage, "must be positive")
    if rated_power < 0:
        raise InvalidParameter("rated_power", rated_power, "must not be negative")
    if demand_coefficient < 0 or demand_coefficient > 1:
        raise InvalidParameter("demand_coefficient", demand_coefficient, "must be in [0, 1]")

    if phase_type == PhaseType.SINGLE.value:
        return rated_power * 1000.0 * demand_coefficient / (voltage * power_factor)
    if phase_type == PhaseType.THREE.value:
        return rated_power * 1000.0 * demand_coefficient / (SQRT_3 * voltage * power_factor)
    raise InvalidParameter("phase_type", phase_type, "must be 'single' or 'three'")


def calculate_circuit(node: Node, inputs: Dict[str, Any], settings: CalculationConfig) -> CalculatorOutcome:
    """Current, margin currents, breaker and cable for one circuit node."""
    params = node.payload
    phase_type = params.phase_type

    voltage: Optional[float] = inputs.get("voltage")
    if voltage is None:
        voltage = default_voltage(phase_type, settings)

    rated_power = float(inputs["rated_power"])
    demand_coefficient = float(inputs["demand_coefficient"])
    power_factor = float(inputs["power_factor"])

    current = calculate_current(rated_power, demand_coefficient, power_factor, float(voltage), phase_type)
    current_1_1 = current * CIRCUIT_MARGIN_1_1
    current_1_25 = current * CIRCUIT_MARGIN_1_25

    breaker, warnings = select_breaker(current_1_1)
    section, cable_warnings = select_cable(current_1_25)
    warnings.extend(cable_warnings)

    record = CircuitRecord(
        name=params.name,
        circuit_type=params.circuit_type,
        phase_type=phase_type,
        rated_power=rated_power,
        demand_coefficient=demand_coefficient,
        power_factor=power_factor,
        voltage=float(voltage),
        current=current,
        current_1_1=current_1_1,
        current_1_25=current_1_25,
        breaker_rating=breaker,
        cable_cross_section=section,
        cable_designation=cable_designation(section, phase_type),
    )

    return CalculatorOutcome(
        outputs={
            "current": current,
            "current_1_1": current_1_1,
            "current_1_25": current_1_25,
            "power": rated_power,
            "circuit": record,
        },
        warnings=warnings,
    )
