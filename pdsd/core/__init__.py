"""
PDSD Core Module

Foundation layer shared by the graph store, the dependency machinery and the
domain calculators: enumerations and electrical constants.
"""

from pdsd.core.enums import (
    NodeKind,
    DataKind,
    PortDirection,
    NodeStatus,
    PhaseType,
    Phase,
    CalculationType,
    ChangeType,
    ConnectionType,
)

__all__ = [
    "NodeKind",
    "DataKind",
    "PortDirection",
    "NodeStatus",
    "PhaseType",
    "Phase",
    "CalculationType",
    "ChangeType",
    "ConnectionType",
]
