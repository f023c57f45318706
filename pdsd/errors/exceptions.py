"""
errors/exceptions.py - Exceptions raised by the engine

Structural errors are rejected synchronously at the mutating call and leave
the graph unchanged. Calculation errors are raised inside calculators and
converted to per-node records by the execution engine.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from .taxonomy import (
    EngineError,
    create_invalid_parameter_error,
    create_unresolved_input_error,
)


class PDSDException(Exception):
    """Base exception for engine errors."""
    pass


# =============================================================================
# STRUCTURAL ERRORS
# =============================================================================

class GraphError(PDSDException):
    """Base exception for graph store errors."""
    pass


class NotFound(GraphError):
    """Raised when a node, port or connection does not exist."""

    def __init__(self, what: str, identity: Any):
        self.what = what
        self.identity = identity
        super().__init__(f"{what} not found: {identity}")


class TypeMismatch(GraphError):
    """Raised when a connection joins ports of different data kinds."""

    def __init__(self, source: Any, destination: Any, source_kind: Any, destination_kind: Any):
        self.source = source
        self.destination = destination
        self.source_kind = source_kind
        self.destination_kind = destination_kind
        super().__init__(
            f"Cannot connect {source} ({_kind_name(source_kind)}) "
            f"to {destination} ({_kind_name(destination_kind)})"
        )


class InputAlreadyBound(GraphError):
    """Raised when the destination input already has a connection."""

    def __init__(self, destination: Any, existing_source: Any):
        self.destination = destination
        self.existing_source = existing_source
        super().__init__(f"Input {destination} is already fed by {existing_source}")


class CycleError(PDSDException):
    """Raised when the graph contains a dependency cycle."""

    def __init__(self, cycle: Sequence[int]):
        self.cycle: List[int] = list(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(str(n) for n in self.cycle)}")


class StatusTransitionError(PDSDException):
    """Raised on an illegal node status transition."""

    def __init__(self, node_id: int, from_status: Any, to_status: Any):
        self.node_id = node_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Illegal status transition for node {node_id}: "
            f"{_kind_name(from_status)} -> {_kind_name(to_status)}"
        )


# =============================================================================
# CALCULATION ERRORS
# =============================================================================

class CalculationError(PDSDException, ABC):
    """Base for errors local to one node's computation."""

    @abstractmethod
    def to_error(self, source: str, node_id: int = None) -> EngineError:
        """Render as a per-node error record."""
        pass


class InvalidParameter(CalculationError):
    """A calculator's numeric precondition was violated."""

    def __init__(self, parameter: str, value: Any, reason: str):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {parameter}={value!r}: {reason}")

    def to_error(self, source: str, node_id: int = None) -> EngineError:
        return create_invalid_parameter_error(
            message=str(self),
            source=source,
            path=self.parameter,
            actual=self.value,
            expected=self.reason,
            node_id=node_id,
        )


class UnresolvedInput(CalculationError):
    """A node input has neither an upstream value nor a default."""

    def __init__(self, node_id: int, port: str, detail: str = ""):
        self.node_id = node_id
        self.port = port
        self.detail = detail
        message = f"Unresolved input '{port}' on node {node_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)

    def to_error(self, source: str, node_id: int = None) -> EngineError:
        return create_unresolved_input_error(
            node_id=node_id if node_id is not None else self.node_id,
            port=self.port,
            detail=self.detail,
            source=source,
        )


def _kind_name(value: Any) -> str:
    return getattr(value, "value", str(value))
