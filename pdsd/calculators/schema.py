"""
calculators/schema.py - Records passed between calculators

Records travel through CIRCUIT_RECORD, DISTRIBUTION_BOX_RECORD and
TRUNK_DIAGRAM ports. They are frozen so a cached value can be shared by every
consumer without copying.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pdsd.core.constants import DUAL_POWER_KEYWORD
from pdsd.errors.taxonomy import EngineError


@dataclass(frozen=True)
class CircuitRecord:
    """Calculated circuit, as seen by the distribution box."""

    name: str = ""
    circuit_type: str = "lighting"
    phase_type: str = "single"

    rated_power: float = 0.0          # kW
    demand_coefficient: float = 0.8
    power_factor: float = 0.85
    voltage: float = 220.0            # V

    current: float = 0.0              # A
    current_1_1: float = 0.0
    current_1_25: float = 0.0

    breaker_rating: float = 0.0       # A
    cable_cross_section: float = 0.0  # mm2
    cable_designation: str = ""

    # Assigned by the distribution box
    number: Optional[str] = None
    phase: Optional[str] = None

    @property
    def demand_power(self) -> float:
        return self.rated_power * self.demand_coefficient

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "number": self.number,
            "circuit_type": self.circuit_type,
            "phase_type": self.phase_type,
            "phase": self.phase,
            "rated_power": self.rated_power,
            "demand_power": round(self.demand_power, 3),
            "power_factor": self.power_factor,
            "voltage": self.voltage,
            "current": round(self.current, 2),
            "current_1_1": round(self.current_1_1, 2),
            "current_1_25": round(self.current_1_25, 2),
            "breaker_rating": self.breaker_rating,
            "cable": self.cable_designation,
        }


@dataclass(frozen=True)
class BalanceResult:
    """Outcome of three-phase balancing."""

    phase_loads: Tuple[float, float, float] = (0.0, 0.0, 0.0)  # kW on L1, L2, L3
    assignment: Tuple[int, ...] = ()     # phase index per circuit, slot order
    initial_unbalance: float = 0.0       # %
    unbalance_degree: float = 0.0        # %
    iterations: int = 0
    converged: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase_loads": [round(p, 3) for p in self.phase_loads],
            "assignment": list(self.assignment),
            "initial_unbalance": round(self.initial_unbalance, 2),
            "unbalance_degree": round(self.unbalance_degree, 2),
            "iterations": self.iterations,
            "converged": self.converged,
        }


@dataclass(frozen=True)
class DistributionBoxRecord:
    """Aggregated distribution box."""

    name: str = ""
    box_type: str = "lighting"
    floor: int = 1
    modules: Tuple[str, ...] = ()

    circuits: Tuple[CircuitRecord, ...] = ()

    total_power: float = 0.0          # kW
    total_current: float = 0.0        # A
    incoming_current: float = 0.0     # A, selected incoming protection rating

    phase_circuit_counts: Tuple[int, int, int] = (0, 0, 0)
    balance: BalanceResult = field(default_factory=BalanceResult)

    @property
    def dual_power(self) -> bool:
        return any(DUAL_POWER_KEYWORD in module for module in self.modules)

    @property
    def circuit_count(self) -> int:
        return len(self.circuits)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "box_type": self.box_type,
            "floor": self.floor,
            "modules": list(self.modules),
            "dual_power": self.dual_power,
            "circuits": [c.to_dict() for c in self.circuits],
            "total_power": round(self.total_power, 3),
            "total_current": round(self.total_current, 2),
            "incoming_current": self.incoming_current,
            "phase_circuit_counts": list(self.phase_circuit_counts),
            "balance": self.balance.to_dict(),
        }


@dataclass(frozen=True)
class DiagramBox:
    """A distribution box placed on the trunk diagram."""
    key: str              # trunk input port the box arrived on
    name: str
    floor: int
    dual_power: bool
    total_power: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "floor": self.floor,
            "dual_power": self.dual_power,
            "total_power": self.total_power,
        }


@dataclass(frozen=True)
class DiagramConnection:
    """Supply edge on the trunk diagram."""
    source: str
    target: str
    connection_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "connection_type": self.connection_type,
        }


@dataclass(frozen=True)
class TrunkDiagram:
    """Floor-by-floor supply topology."""

    boxes: Tuple[DiagramBox, ...] = ()
    connections: Tuple[DiagramConnection, ...] = ()
    floors: Tuple[Tuple[int, Tuple[str, ...]], ...] = ()

    def connections_to(self, key: str) -> List[DiagramConnection]:
        return [c for c in self.connections if c.target == key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boxes": [b.to_dict() for b in self.boxes],
            "connections": [c.to_dict() for c in self.connections],
            "floors": [{"floor": f, "boxes": list(keys)} for f, keys in self.floors],
        }


@dataclass
class CalculatorOutcome:
    """Outputs produced by one calculator call, plus non-fatal warnings."""
    outputs: Dict[str, Any] = field(default_factory=dict)
    warnings: List[EngineError] = field(default_factory=list)
