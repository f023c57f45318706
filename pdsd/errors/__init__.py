"""
errors/ - Error Taxonomy

Exceptions for structural failures, structured records for per-node
computational failures, and aggregation for evaluation reports.
"""

from .taxonomy import (
    ErrorSeverity,
    ErrorCategory,
    ErrorCode,
    EngineError,
    create_unresolved_input_error,
    create_invalid_parameter_error,
    create_out_of_range_warning,
    create_calculation_error,
)

from .exceptions import (
    PDSDException,
    GraphError,
    NotFound,
    TypeMismatch,
    InputAlreadyBound,
    CycleError,
    StatusTransitionError,
    CalculationError,
    InvalidParameter,
    UnresolvedInput,
)

from .aggregator import (
    ErrorReport,
    ErrorAggregator,
)

__all__ = [
    # Taxonomy
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorCode",
    "EngineError",
    "create_unresolved_input_error",
    "create_invalid_parameter_error",
    "create_out_of_range_warning",
    "create_calculation_error",
    # Exceptions
    "PDSDException",
    "GraphError",
    "NotFound",
    "TypeMismatch",
    "InputAlreadyBound",
    "CycleError",
    "StatusTransitionError",
    "CalculationError",
    "InvalidParameter",
    "UnresolvedInput",
    # Aggregator
    "ErrorReport",
    "ErrorAggregator",
]
