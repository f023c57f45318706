"""
dependencies/ - Evaluation order, result cache, execution and propagation.
"""

from .resolver import (
    topological_order,
    rank_order,
    downstream_closure,
)

from .cache import ResultCache

from .execution import (
    ALL,
    LEGAL_STATUS_TRANSITIONS,
    NodeStatusTracker,
    NodeResult,
    EvaluationReport,
    ExecutionEngine,
    resolve_inputs,
)

from .propagation import (
    ChangeSource,
    DirtySet,
    PropagationEvent,
    UpdatePropagator,
)


__all__ = [
    # Resolver
    "topological_order",
    "rank_order",
    "downstream_closure",
    # Cache
    "ResultCache",
    # Execution
    "ALL",
    "LEGAL_STATUS_TRANSITIONS",
    "NodeStatusTracker",
    "NodeResult",
    "EvaluationReport",
    "ExecutionEngine",
    "resolve_inputs",
    # Propagation
    "ChangeSource",
    "DirtySet",
    "PropagationEvent",
    "UpdatePropagator",
]
