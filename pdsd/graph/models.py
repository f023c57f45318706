"""
PDSD Graph Model

Nodes, ports and connections of the dataflow graph. Nodes are addressed by
integer handles issued by the graph store; ports by (node, name) pairs.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, NamedTuple, Optional, Type

from pdsd.core.constants import DEFAULT_BOX_CIRCUIT_SLOTS, DEFAULT_TRUNK_BOX_SLOTS
from pdsd.core.enums import CalculationType, DataKind, NodeKind, PhaseType, PortDirection

NodeId = int


class InputId(NamedTuple):
    """Identity of an input port."""
    node_id: NodeId
    name: str

    def __str__(self) -> str:
        return f"{self.node_id}.in.{self.name}"


class OutputId(NamedTuple):
    """Identity of an output port; the result cache key."""
    node_id: NodeId
    name: str

    def __str__(self) -> str:
        return f"{self.node_id}.out.{self.name}"


# =============================================================================
# PAYLOADS
# =============================================================================

@dataclass
class PowerSourceParams:
    """Supply feeding the distribution system."""
    name: str = "Power Source"
    source_type: str = "grid"
    voltage: float = 380.0
    frequency_hz: float = 50.0
    capacity_kva: float = 100.0
    phase_count: int = 3
    efficiency: float = 1.0


@dataclass
class CircuitParams:
    """Final circuit feeding one load group."""
    name: str = "Circuit"
    circuit_type: str = "lighting"
    phase_type: str = PhaseType.SINGLE.value

    # Shared with input ports of the same name
    rated_power: float = 1.0          # kW
    demand_coefficient: float = 0.8   # Kx
    power_factor: float = 0.85        # cos phi
    voltage: Optional[float] = None   # V, None = phase default


@dataclass
class DistributionBoxParams:
    """Distribution box collecting circuits."""
    name: str = "Distribution Box"
    box_type: str = "lighting"
    floor: int = 1
    modules: List[str] = field(default_factory=list)
    circuit_slots: int = DEFAULT_BOX_CIRCUIT_SLOTS


@dataclass
class TrunkLineParams:
    """Riser/trunk line feeding distribution boxes floor by floor."""
    name: str = "Trunk Line"
    line_type: str = "cable"
    length_m: float = 100.0
    box_slots: int = DEFAULT_TRUNK_BOX_SLOTS


@dataclass
class CalculationParams:
    """Stand-alone calculation (phase balance or voltage drop)."""
    name: str = "Calculation"
    calculation_type: str = CalculationType.PHASE_BALANCE.value
    precision: int = 2

    # Voltage-drop inputs
    length_m: float = 50.0
    cross_section_mm2: float = 2.5
    power_factor: float = 0.85
    voltage: float = 380.0


PAYLOAD_TYPES: Dict[NodeKind, Type] = {
    NodeKind.POWER_SOURCE: PowerSourceParams,
    NodeKind.CIRCUIT: CircuitParams,
    NodeKind.DISTRIBUTION_BOX: DistributionBoxParams,
    NodeKind.TRUNK_LINE: TrunkLineParams,
    NodeKind.CALCULATION: CalculationParams,
}

# Parameters that shape the port set and cannot change after creation
STRUCTURAL_PARAMETERS = frozenset({"circuit_slots", "box_slots", "calculation_type"})


def payload_fields(kind: NodeKind) -> List[str]:
    return [f.name for f in fields(PAYLOAD_TYPES[kind])]


def payload_to_dict(payload: Any) -> Dict[str, Any]:
    return asdict(payload)


# =============================================================================
# PORTS, NODES, CONNECTIONS
# =============================================================================

@dataclass
class Port:
    """A named, typed slot on a node."""
    node_id: NodeId
    name: str
    direction: PortDirection
    data_kind: DataKind
    default: Any = None
    required: bool = False

    @property
    def is_input(self) -> bool:
        return self.direction == PortDirection.INPUT

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "direction": self.direction.value,
            "data_kind": self.data_kind.value,
        }
        if self.is_input:
            data["default"] = self.default
            data["required"] = self.required
        return data


@dataclass
class Node:
    """A unit of computation in the dataflow graph."""
    node_id: NodeId
    kind: NodeKind
    template: str
    payload: Any
    inputs: Dict[str, Port] = field(default_factory=dict)
    outputs: Dict[str, Port] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return getattr(self.payload, "name", self.template)

    def input_id(self, name: str) -> InputId:
        return InputId(self.node_id, name)

    def output_id(self, name: str) -> OutputId:
        return OutputId(self.node_id, name)

    def output_ids(self) -> List[OutputId]:
        return [OutputId(self.node_id, name) for name in self.outputs]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "kind": self.kind.value,
            "template": self.template,
            "payload": payload_to_dict(self.payload),
            "inputs": [p.to_dict() for p in self.inputs.values()],
            "outputs": [p.to_dict() for p in self.outputs.values()],
        }


@dataclass(frozen=True)
class Connection:
    """Directed edge from an output port to an input port."""
    source: OutputId
    destination: InputId
    sequence: int = field(default=0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": {"node_id": self.source.node_id, "port": self.source.name},
            "destination": {"node_id": self.destination.node_id, "port": self.destination.name},
            "sequence": self.sequence,
        }
