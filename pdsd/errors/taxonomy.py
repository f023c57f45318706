"""
errors/taxonomy.py - Error classification system

Structured, per-node error records surfaced in evaluation reports. Structural
errors are raised as exceptions (see errors/exceptions.py); computational
errors are recorded with one of the codes below.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum
import uuid


class ErrorSeverity(Enum):
    """Error severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""
    # Graph structure (1xxx)
    GRAPH = "graph"

    # Dependency resolution (2xxx)
    DEPENDENCY = "dependency"

    # Input resolution (3xxx)
    INPUT = "input"

    # Calculator preconditions (4xxx)
    PARAMETER = "parameter"

    # Table selection (5xxx)
    SELECTION = "selection"

    # Unexpected calculator failure (6xxx)
    CALCULATION = "calculation"

    # Node status machine (7xxx)
    STATE = "state"


class ErrorCode(Enum):
    """Specific error codes."""

    # Graph (1xxx)
    NOT_FOUND = 1001
    TYPE_MISMATCH = 1002
    INPUT_ALREADY_BOUND = 1003

    # Dependency (2xxx)
    CYCLE = 2001

    # Input (3xxx)
    UNRESOLVED_INPUT = 3001

    # Parameter (4xxx)
    INVALID_PARAMETER = 4001

    # Selection (5xxx)
    OUT_OF_RANGE = 5001

    # Calculation (6xxx)
    CALCULATION_FAILED = 6001

    # State (7xxx)
    ILLEGAL_TRANSITION = 7001


@dataclass
class EngineError:
    """Structured error representation."""

    error_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    code: ErrorCode = ErrorCode.CALCULATION_FAILED
    category: ErrorCategory = ErrorCategory.CALCULATION
    severity: ErrorSeverity = ErrorSeverity.ERROR

    message: str = ""
    detail: str = ""

    # Context
    source: str = ""              # calculator or component that produced it
    node_id: Optional[int] = None
    path: Optional[str] = None    # port or parameter name

    # Values
    actual_value: Any = None
    expected_value: Any = None

    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_warning(self) -> bool:
        return self.severity in (ErrorSeverity.DEBUG, ErrorSeverity.INFO, ErrorSeverity.WARNING)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "name": self.code.name,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "detail": self.detail,
            "source": self.source,
            "node_id": self.node_id,
            "path": self.path,
        }


def create_unresolved_input_error(
    node_id: int,
    port: str,
    detail: str = "",
    source: str = "execution_engine",
) -> EngineError:
    """Factory for unresolved-input errors."""
    return EngineError(
        code=ErrorCode.UNRESOLVED_INPUT,
        category=ErrorCategory.INPUT,
        severity=ErrorSeverity.ERROR,
        message=f"Input '{port}' of node {node_id} has no value",
        detail=detail,
        source=source,
        node_id=node_id,
        path=port,
    )


def create_invalid_parameter_error(
    message: str,
    source: str,
    path: str = None,
    actual: Any = None,
    expected: Any = None,
    node_id: int = None,
) -> EngineError:
    """Factory for calculator precondition violations."""
    return EngineError(
        code=ErrorCode.INVALID_PARAMETER,
        category=ErrorCategory.PARAMETER,
        severity=ErrorSeverity.ERROR,
        message=message,
        source=source,
        node_id=node_id,
        path=path,
        actual_value=actual,
        expected_value=expected,
    )


def create_out_of_range_warning(
    message: str,
    source: str,
    path: str,
    actual: Any,
    selected: Any,
    node_id: int = None,
) -> EngineError:
    """Factory for selections that fell off the end of a table."""
    return EngineError(
        code=ErrorCode.OUT_OF_RANGE,
        category=ErrorCategory.SELECTION,
        severity=ErrorSeverity.WARNING,
        message=message,
        source=source,
        node_id=node_id,
        path=path,
        actual_value=actual,
        expected_value=selected,
    )


def create_calculation_error(
    message: str,
    source: str,
    node_id: int = None,
    detail: str = "",
) -> EngineError:
    """Factory for unexpected calculator failures."""
    return EngineError(
        code=ErrorCode.CALCULATION_FAILED,
        category=ErrorCategory.CALCULATION,
        severity=ErrorSeverity.CRITICAL,
        message=message,
        detail=detail,
        source=source,
        node_id=node_id,
    )


def with_node(errors: List[EngineError], node_id: int) -> List[EngineError]:
    """Stamp node identity on records produced by a pure calculator."""
    for error in errors:
        if error.node_id is None:
            error.node_id = node_id
    return errors
