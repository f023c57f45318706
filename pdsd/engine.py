"""
PDSD Engine

The single object an editor holds: graph store, result cache, resolver,
execution engine and update propagator wired together. Every store mutation
is fed to the propagator as it happens; the accumulated dirty set is consumed
by the next evaluate().
"""

from __future__ import annotations
from dataclasses import dataclass, field, is_dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union
import logging

from pdsd.bootstrap.config import PDSDConfig
from pdsd.core.enums import NodeKind, NodeStatus
from pdsd.dependencies.cache import ResultCache
from pdsd.dependencies.execution import EvaluationReport, ExecutionEngine, NodeStatusTracker
from pdsd.dependencies.propagation import ChangeSource, DirtySet, UpdatePropagator
from pdsd.dependencies.resolver import topological_order
from pdsd.graph.models import Connection, InputId, NodeId, OutputId
from pdsd.graph.store import ChangeRecord, GraphStore
from pdsd.graph.templates import NodeTemplateRegistry

logger = logging.getLogger(__name__)


def _export_value(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value):
        return str(value)
    return value


@dataclass
class GraphSnapshot:
    """Nodes, connections and cached values at one moment."""
    taken_at: datetime = field(default_factory=datetime.utcnow)

    nodes: List[Dict[str, Any]] = field(default_factory=list)
    connections: List[Dict[str, Any]] = field(default_factory=list)
    values: Dict[str, Any] = field(default_factory=dict)
    statuses: Dict[int, str] = field(default_factory=dict)

    def is_consistent(self) -> bool:
        """Every connection end names a port of a node in the snapshot."""
        ports = set()
        for node in self.nodes:
            for port in node["inputs"] + node["outputs"]:
                ports.add((node["node_id"], port["direction"], port["name"]))

        for connection in self.connections:
            source = connection["source"]
            destination = connection["destination"]
            if (source["node_id"], "output", source["port"]) not in ports:
                return False
            if (destination["node_id"], "input", destination["port"]) not in ports:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taken_at": self.taken_at.isoformat(),
            "nodes": self.nodes,
            "connections": self.connections,
            "values": self.values,
            "statuses": {str(k): v for k, v in self.statuses.items()},
        }


class PowerGraphEngine:
    """
    Engine core for one distribution-system graph.

    No process-wide state is used: configuration and template registry are
    passed in, defaulting to built-in values.
    """

    def __init__(
        self,
        config: Optional[PDSDConfig] = None,
        registry: Optional[NodeTemplateRegistry] = None,
    ):
        self.config = config or PDSDConfig()

        self.store = GraphStore(
            registry=registry,
            history_size=self.config.execution.change_history_size,
        )
        self.cache = ResultCache()
        self.statuses = NodeStatusTracker()
        self.executor = ExecutionEngine(
            settings=self.config.calculation,
            execution=self.config.execution,
            statuses=self.statuses,
        )
        self.propagator = UpdatePropagator(
            self.cache,
            statuses=self.statuses,
            history_size=self.config.execution.change_history_size,
        )

        self._pending: Set[NodeId] = set()
        self.store.add_listener(self._on_store_change)

        logger.info(f"Engine initialised ({len(self.store.registry)} node templates)")

    # ==================== Mutations ====================

    def add_node(self, template_or_kind: Union[str, NodeKind], payload: Any = None) -> NodeId:
        return self.store.add_node(template_or_kind, payload)

    def remove_node(self, node_id: NodeId) -> ChangeRecord:
        return self.store.remove_node(node_id)

    def add_connection(self, source: OutputId, destination: InputId) -> Connection:
        return self.store.add_connection(source, destination)

    def remove_connection(self, destination: InputId) -> Connection:
        return self.store.remove_connection(destination)

    def set_parameter(self, node_id: NodeId, key: str, value: Any) -> Optional[ChangeRecord]:
        return self.store.set_parameter(node_id, key, value)

    def connect(self, source_node: NodeId, source_port: str, dest_node: NodeId, dest_port: str) -> Connection:
        """Shorthand for add_connection by node ids and port names."""
        return self.store.add_connection(OutputId(source_node, source_port), InputId(dest_node, dest_port))

    def _on_store_change(self, change: ChangeRecord) -> None:
        self._pending |= self.propagator.on_change(self.store, change)

    # ==================== Propagation & Evaluation ====================

    def on_change(self, change: Optional[ChangeSource] = None) -> DirtySet:
        """
        Dirty set for a change, for the editor to redraw.

        Records produced by this engine's store were propagated when they
        happened; handing one in returns the dirty set computed then. A node id
        or connection is propagated now. None returns an empty set.
        """
        replay = isinstance(change, ChangeRecord) and self.propagator.has_seen(change.change_id)
        dirty = self.propagator.on_change(self.store, change)
        if not replay:
            self._pending |= dirty
        return dirty

    @property
    def dirty(self) -> DirtySet:
        return set(self._pending)

    def evaluate(self, full: bool = False, parallel: Optional[bool] = None) -> EvaluationReport:
        """
        Recompute the pending dirty set (or everything when ``full``).

        Raises:
            CycleError: before any node runs; the dirty set is kept
        """
        order = topological_order(self.store)

        if full:
            dirty = self.propagator.invalidate_all(self.store)
        else:
            dirty = set(self._pending)

        report = self.executor.evaluate(self.store, order, dirty, self.cache, parallel=parallel)
        self._pending.clear()
        return report

    def recompute(self) -> EvaluationReport:
        """Full evaluation pass."""
        return self.evaluate(full=True)

    # ==================== Read Access ====================

    def value(self, output: OutputId, default: Any = None) -> Any:
        return self.cache.get(OutputId(*output), default)

    def has_value(self, output: OutputId) -> bool:
        return self.cache.contains(OutputId(*output))

    def status(self, node_id: NodeId) -> NodeStatus:
        return self.statuses.get(node_id)

    def snapshot(self) -> GraphSnapshot:
        """Serializable view; connections only reference existing ports."""
        values = {
            str(output): _export_value(value)
            for output, value in self.cache.snapshot().items()
            if self.store.has_node(output.node_id)
        }
        return GraphSnapshot(
            nodes=[node.to_dict() for node in self.store.nodes()],
            connections=[c.to_dict() for c in self.store.connections()],
            values=values,
            statuses={n: self.statuses.get(n).value for n in self.store.node_ids()},
        )
