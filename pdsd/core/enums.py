"""
PDSD Core Enumerations

All enumeration types used throughout the computation engine.
"""

from enum import Enum


class NodeKind(str, Enum):
    """
    Type tag of a dataflow node. Each kind has exactly one domain calculator.
    """
    POWER_SOURCE = "power_source"
    CIRCUIT = "circuit"
    DISTRIBUTION_BOX = "distribution_box"
    TRUNK_LINE = "trunk_line"
    CALCULATION = "calculation"


class DataKind(str, Enum):
    """
    Data kind carried by a port. Connections require equal kinds on both ends.
    """
    CURRENT = "current"                    # A
    POWER = "power"                        # kW
    VOLTAGE = "voltage"                    # V
    POWER_FACTOR = "power_factor"          # cos phi
    COEFFICIENT = "coefficient"            # demand coefficient Kx
    NUMBER = "number"
    TEXT = "text"
    CIRCUIT_RECORD = "circuit_record"
    DISTRIBUTION_BOX_RECORD = "distribution_box_record"
    TRUNK_DIAGRAM = "trunk_diagram"


class PortDirection(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


class NodeStatus(str, Enum):
    """
    Computed status of a single node.

    Stale -> Computing -> Ready | Failed; Ready/Failed return to Stale only
    when the update propagator marks the node dirty.
    """
    STALE = "stale"
    COMPUTING = "computing"
    READY = "ready"
    FAILED = "failed"


class PhaseType(str, Enum):
    """Supply arrangement of a circuit."""
    SINGLE = "single"
    THREE = "three"


class Phase(str, Enum):
    """Supply phases of a three-phase system."""
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"


class CalculationType(str, Enum):
    """Sub-type of a Calculation node."""
    PHASE_BALANCE = "phase_balance"
    VOLTAGE_DROP = "voltage_drop"


class ChangeType(str, Enum):
    """Kind of graph mutation recorded by the graph store."""
    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    PARAMETER_CHANGED = "parameter_changed"
    CONNECTION_ADDED = "connection_added"
    CONNECTION_REMOVED = "connection_removed"


class ConnectionType(str, Enum):
    """Classification of a synthesized trunk-diagram connection."""
    SINGLE_POWER = "single_power"
    DUAL_POWER = "dual_power"
    BACKUP_POWER = "backup_power"
