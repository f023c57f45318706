"""
graph/ - Nodes, ports, connections and the graph store.
"""

from .models import (
    NodeId,
    InputId,
    OutputId,
    Port,
    Node,
    Connection,
    PowerSourceParams,
    CircuitParams,
    DistributionBoxParams,
    TrunkLineParams,
    CalculationParams,
    PAYLOAD_TYPES,
    STRUCTURAL_PARAMETERS,
)

from .templates import (
    PortSchema,
    SlotSchema,
    NodeTemplate,
    NodeTemplateRegistry,
    BUILTIN_TEMPLATES,
)

from .store import (
    ChangeRecord,
    GraphStore,
)


__all__ = [
    # Model
    "NodeId",
    "InputId",
    "OutputId",
    "Port",
    "Node",
    "Connection",
    "PowerSourceParams",
    "CircuitParams",
    "DistributionBoxParams",
    "TrunkLineParams",
    "CalculationParams",
    "PAYLOAD_TYPES",
    "STRUCTURAL_PARAMETERS",
    # Templates
    "PortSchema",
    "SlotSchema",
    "NodeTemplate",
    "NodeTemplateRegistry",
    "BUILTIN_TEMPLATES",
    # Store
    "ChangeRecord",
    "GraphStore",
]
