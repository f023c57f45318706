"""
PDSD Execution Engine

Walks a resolved order, resolves each node's inputs from the result cache or
port defaults, dispatches to the node kind's calculator and writes the
outputs back to the cache.

Failures are local: a node that cannot resolve an input or whose calculator
rejects its parameters is reported as Failed and produces no outputs, and any
consumer connected to those outputs fails in turn with UnresolvedInput.
Sibling nodes are unaffected.

In parallel mode the order is split into ranks of mutually independent nodes;
each rank runs on a thread pool and must finish before the next one starts.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Collection, Dict, List, Optional, Union
import logging
import threading
import time
import traceback
import uuid

from pdsd.bootstrap.config import CalculationConfig, ExecutionConfig
from pdsd.calculators import CALCULATORS
from pdsd.core.enums import NodeKind, NodeStatus
from pdsd.errors.aggregator import ErrorAggregator, ErrorReport
from pdsd.errors.exceptions import CalculationError, StatusTransitionError, UnresolvedInput
from pdsd.errors.taxonomy import EngineError, create_calculation_error, with_node
from pdsd.graph.models import InputId, Node, NodeId
from pdsd.graph.store import GraphStore
from .cache import ResultCache
from .resolver import rank_order

logger = logging.getLogger(__name__)


# =============================================================================
# NODE STATUS
# =============================================================================

LEGAL_STATUS_TRANSITIONS: Dict[NodeStatus, List[NodeStatus]] = {
    NodeStatus.STALE: [
        NodeStatus.COMPUTING,
    ],

    NodeStatus.COMPUTING: [
        NodeStatus.READY,
        NodeStatus.FAILED,
    ],

    NodeStatus.READY: [
        NodeStatus.STALE,
    ],

    NodeStatus.FAILED: [
        NodeStatus.STALE,
    ],
}


class NodeStatusTracker:
    """Computed status per node; nodes never seen are Stale."""

    def __init__(self):
        self._status: Dict[NodeId, NodeStatus] = {}
        self._lock = threading.Lock()

    def get(self, node_id: NodeId) -> NodeStatus:
        return self._status.get(node_id, NodeStatus.STALE)

    def can_transition(self, node_id: NodeId, to_status: NodeStatus) -> bool:
        return to_status in LEGAL_STATUS_TRANSITIONS.get(self.get(node_id), [])

    def transition(self, node_id: NodeId, to_status: NodeStatus) -> None:
        with self._lock:
            from_status = self._status.get(node_id, NodeStatus.STALE)
            if to_status not in LEGAL_STATUS_TRANSITIONS.get(from_status, []):
                raise StatusTransitionError(node_id, from_status, to_status)
            self._status[node_id] = to_status

    def mark_stale(self, node_ids: Collection[NodeId]) -> None:
        """Send Ready/Failed nodes back to Stale."""
        for node_id in node_ids:
            if self.get(node_id) in (NodeStatus.READY, NodeStatus.FAILED):
                self.transition(node_id, NodeStatus.STALE)

    def forget(self, node_id: NodeId) -> None:
        with self._lock:
            self._status.pop(node_id, None)

    def snapshot(self) -> Dict[NodeId, NodeStatus]:
        with self._lock:
            return dict(self._status)


# =============================================================================
# RESULTS
# =============================================================================

class _AllNodes:
    """Dirty-set marker for a full evaluation pass."""

    def __contains__(self, node_id: object) -> bool:
        return True

    def __repr__(self) -> str:
        return "ALL"


ALL = _AllNodes()

DirtySpec = Union[Collection[NodeId], _AllNodes]


@dataclass
class NodeResult:
    """Outcome of computing a single node."""
    node_id: NodeId
    kind: NodeKind
    status: NodeStatus = NodeStatus.STALE

    outputs: List[str] = field(default_factory=list)
    errors: List[EngineError] = field(default_factory=list)
    warnings: List[EngineError] = field(default_factory=list)

    elapsed_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == NodeStatus.READY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "outputs": list(self.outputs),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


@dataclass
class EvaluationReport:
    """Per-node success or failure of one evaluation pass."""
    pass_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    order: List[NodeId] = field(default_factory=list)
    results: Dict[NodeId, NodeResult] = field(default_factory=dict)
    parallel: bool = False

    total_time_ms: float = 0.0

    @property
    def computed_nodes(self) -> List[NodeId]:
        return [n for n, r in self.results.items() if r.status == NodeStatus.READY]

    @property
    def failed_nodes(self) -> List[NodeId]:
        return [n for n, r in self.results.items() if r.status == NodeStatus.FAILED]

    @property
    def evaluated_nodes(self) -> List[NodeId]:
        return list(self.results)

    @property
    def success(self) -> bool:
        return not self.failed_nodes

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.results.values())

    def get(self, node_id: NodeId) -> Optional[NodeResult]:
        return self.results.get(node_id)

    def error_report(self) -> ErrorReport:
        aggregator = ErrorAggregator()
        for result in self.results.values():
            aggregator.add_all(result.errors)
            aggregator.add_all(result.warnings)
        return aggregator.generate_report()

    def get_summary(self) -> Dict[str, Any]:
        return {
            "pass_id": self.pass_id,
            "success": self.success,
            "evaluated": len(self.results),
            "computed": len(self.computed_nodes),
            "failed": len(self.failed_nodes),
            "warnings": self.warning_count,
            "total_time_ms": round(self.total_time_ms, 3),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.get_summary(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "order": list(self.order),
            "parallel": self.parallel,
            "results": {str(k): v.to_dict() for k, v in self.results.items()},
        }


# =============================================================================
# INPUT RESOLUTION
# =============================================================================

def resolve_inputs(store: GraphStore, node: Node, cache: ResultCache) -> Dict[str, Any]:
    """
    Value for every input port of a node.

    Connected inputs read the upstream cache entry, which must exist.
    Unconnected inputs use the port default; an unconnected optional input
    without default resolves to None.

    Raises:
        UnresolvedInput: for the first input that has no value
    """
    values: Dict[str, Any] = {}

    for name, port in node.inputs.items():
        connection = store.connection_for(InputId(node.node_id, name))

        if connection is not None:
            if not cache.contains(connection.source):
                raise UnresolvedInput(node.node_id, name, f"upstream {connection.source} has no value")
            values[name] = cache.get(connection.source)
        elif port.default is not None:
            values[name] = port.default
        elif port.required:
            raise UnresolvedInput(node.node_id, name, "not connected and no default")
        else:
            values[name] = None

    return values


# =============================================================================
# EXECUTION ENGINE
# =============================================================================

class ExecutionEngine:
    """
    Computes nodes in a resolved order.

    Each node writes only its own output keys, so concurrent nodes of one
    rank never contend for a cache entry.
    """

    def __init__(
        self,
        settings: Optional[CalculationConfig] = None,
        execution: Optional[ExecutionConfig] = None,
        statuses: Optional[NodeStatusTracker] = None,
    ):
        self.settings = settings or CalculationConfig()
        self.execution = execution or ExecutionConfig()
        self.statuses = statuses or NodeStatusTracker()

    def evaluate(
        self,
        store: GraphStore,
        order: List[NodeId],
        dirty: DirtySpec,
        cache: ResultCache,
        parallel: Optional[bool] = None,
    ) -> EvaluationReport:
        """
        Compute every node of ``order`` that is in ``dirty`` (or all of them
        when ``dirty`` is ALL).

        Args:
            store: Graph to evaluate
            order: Topological order from the dependency resolver
            dirty: Nodes pending recomputation, or ALL
            cache: Result cache read for inputs and written with outputs
            parallel: Override ExecutionConfig.parallel for this pass

        Raises:
            StatusTransitionError: a selected node was not invalidated first
        """
        use_parallel = self.execution.parallel if parallel is None else parallel
        report = EvaluationReport(order=list(order), parallel=use_parallel)
        start = time.perf_counter()

        selected = [n for n in order if n in dirty and store.has_node(n)]
        self._check_stale(selected)

        if use_parallel and len(selected) > 1:
            self._execute_parallel(store, order, set(selected), cache, report)
        else:
            for node_id in selected:
                report.results[node_id] = self._evaluate_node(store, node_id, cache)

        report.completed_at = datetime.utcnow()
        report.total_time_ms = (time.perf_counter() - start) * 1000.0

        logger.info(
            f"Evaluation {report.pass_id}: {len(report.computed_nodes)} computed, "
            f"{len(report.failed_nodes)} failed, {len(order) - len(selected)} clean "
            f"in {report.total_time_ms:.1f}ms"
        )
        return report

    def _check_stale(self, selected: List[NodeId]) -> None:
        # Nodes re-enter Stale only through invalidation
        for node_id in selected:
            status = self.statuses.get(node_id)
            if status != NodeStatus.STALE:
                raise StatusTransitionError(node_id, status, NodeStatus.COMPUTING)

    def _execute_parallel(
        self,
        store: GraphStore,
        order: List[NodeId],
        selected: set,
        cache: ResultCache,
        report: EvaluationReport,
    ) -> None:
        """Run each rank on a worker pool; a rank is the barrier for the next."""
        ranks = rank_order(store, order)

        with ThreadPoolExecutor(max_workers=self.execution.max_workers) as executor:
            for rank in ranks:
                batch = [n for n in rank if n in selected]
                if not batch:
                    continue

                futures = {
                    executor.submit(self._evaluate_node, store, node_id, cache): node_id
                    for node_id in batch
                }
                finished: Dict[NodeId, NodeResult] = {}
                for future in as_completed(futures):
                    finished[futures[future]] = future.result()

                for node_id in batch:
                    report.results[node_id] = finished[node_id]

    def _evaluate_node(self, store: GraphStore, node_id: NodeId, cache: ResultCache) -> NodeResult:
        node = store.get_node(node_id)
        result = NodeResult(node_id=node_id, kind=node.kind)
        source = f"{node.kind.value}_calculator"
        start = time.perf_counter()

        self.statuses.transition(node_id, NodeStatus.COMPUTING)

        try:
            inputs = resolve_inputs(store, node, cache)
            outcome = CALCULATORS[node.kind](node, inputs, self.settings)
        except CalculationError as e:
            result.errors.append(e.to_error(source=source, node_id=node_id))
        except Exception as e:
            logger.error(f"Calculator for node {node_id} raised {type(e).__name__}: {e}")
            result.errors.append(create_calculation_error(
                message=f"{type(e).__name__}: {e}",
                source=source,
                node_id=node_id,
                detail=traceback.format_exc(),
            ))
        else:
            for name in node.outputs:
                if name in outcome.outputs:
                    cache.set(node.output_id(name), outcome.outputs[name])
                    result.outputs.append(name)
            result.warnings = with_node(outcome.warnings, node_id)
            for warning in result.warnings:
                logger.warning(f"Node {node_id}: {warning.message}")

        if result.errors:
            # A failed node exposes no values
            cache.purge(node.output_ids())
            self.statuses.transition(node_id, NodeStatus.FAILED)
            result.status = NodeStatus.FAILED
            logger.warning(f"Node {node_id} ({node.label}) failed: {result.errors[0].message}")
        else:
            self.statuses.transition(node_id, NodeStatus.READY)
            result.status = NodeStatus.READY
            logger.debug(f"Node {node_id} ({node.label}) ready: {', '.join(result.outputs)}")

        result.elapsed_ms = (time.perf_counter() - start) * 1000.0
        return result
