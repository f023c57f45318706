"""
PDSD Graph Store

Holds nodes, ports and connections and enforces the structural invariants:

- an input port accepts at most one connection
- connected ports carry the same data kind
- removing a node removes every connection touching it

Cycles are not rejected here; the dependency resolver refuses to order a
cyclic graph. Every mutation produces a ChangeRecord which is handed to the
registered listeners (normally the update propagator) and kept in a bounded
history.

Parameter values are copied when they enter the store and when read through
get_parameter, so editing a caller-side list never changes a stored payload
behind the propagator's back.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Set, Union
import copy
import logging
import uuid

from pdsd.core.enums import ChangeType, NodeKind
from pdsd.errors.exceptions import (
    InputAlreadyBound,
    InvalidParameter,
    NotFound,
    TypeMismatch,
)
from .models import (
    Connection,
    InputId,
    Node,
    NodeId,
    OutputId,
    PAYLOAD_TYPES,
    STRUCTURAL_PARAMETERS,
    payload_fields,
)
from .templates import NodeTemplateRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# CHANGE RECORD
# =============================================================================

@dataclass
class ChangeRecord:
    """A single graph mutation, as seen by the update propagator."""
    change_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=datetime.utcnow)

    change_type: ChangeType = ChangeType.PARAMETER_CHANGED

    # Subject
    node_id: Optional[NodeId] = None
    connection: Optional[Connection] = None

    # Nodes whose inputs changed; the propagator starts its closure here
    affected_nodes: List[NodeId] = field(default_factory=list)

    # Outputs that no longer exist and must leave the cache
    removed_outputs: List[OutputId] = field(default_factory=list)
    removed_connections: List[Connection] = field(default_factory=list)

    # Parameter changes
    parameter: Optional[str] = None
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "change_id": self.change_id,
            "timestamp": self.timestamp.isoformat(),
            "change_type": self.change_type.value,
            "node_id": self.node_id,
            "connection": self.connection.to_dict() if self.connection else None,
            "affected_nodes": list(self.affected_nodes),
            "removed_outputs": [str(o) for o in self.removed_outputs],
            "removed_connections": [c.to_dict() for c in self.removed_connections],
            "parameter": self.parameter,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


ChangeListener = Callable[[ChangeRecord], None]


# =============================================================================
# GRAPH STORE
# =============================================================================

class GraphStore:
    """
    Arena of nodes addressed by integer handles.

    Handles are issued from 1 upward and never reused, so creation order and
    id order coincide.
    """

    DEFAULT_HISTORY_SIZE = 1000

    def __init__(
        self,
        registry: Optional[NodeTemplateRegistry] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        self.registry = registry or NodeTemplateRegistry.default()

        self._nodes: Dict[NodeId, Node] = {}
        self._next_id: NodeId = 1

        self._connections: Dict[InputId, Connection] = {}
        self._by_source: Dict[OutputId, Set[InputId]] = {}
        self._next_sequence = 1

        self._listeners: List[ChangeListener] = []
        self._history: Deque[ChangeRecord] = deque(maxlen=history_size)

    # ==================== Nodes ====================

    def add_node(
        self,
        template_or_kind: Union[str, NodeKind],
        payload: Union[Dict[str, Any], Any, None] = None,
    ) -> NodeId:
        """
        Create a node from a template name or a node kind.

        Args:
            template_or_kind: Template name, or NodeKind for its default template
            payload: Parameter overrides as a dict, or a complete payload dataclass

        Returns:
            Handle of the new node
        """
        template = self.registry.resolve(template_or_kind)
        payload_type = PAYLOAD_TYPES[template.kind]

        if payload is None or isinstance(payload, dict):
            overrides = dict(payload or {})
            known = set(payload_fields(template.kind))
            for key, value in overrides.items():
                if key not in known:
                    raise InvalidParameter(key, value, f"not a {template.kind.value} parameter")
            node_payload = template.build_payload(overrides)
        elif is_dataclass(payload) and isinstance(payload, payload_type):
            node_payload = copy.deepcopy(payload)
        else:
            raise InvalidParameter(
                "payload", type(payload).__name__, f"expected {payload_type.__name__}"
            )

        if template.slots:
            count = getattr(node_payload, template.slots.count_parameter)
            if not isinstance(count, int) or count < 0:
                raise InvalidParameter(template.slots.count_parameter, count, "must be a non-negative integer")

        node_id = self._next_id
        self._next_id += 1

        inputs, outputs = template.build_ports(node_id, node_payload)
        node = Node(
            node_id=node_id,
            kind=template.kind,
            template=template.name,
            payload=node_payload,
            inputs=inputs,
            outputs=outputs,
        )
        self._nodes[node_id] = node

        logger.debug(f"Added node {node_id} ({template.name})")
        self._emit(ChangeRecord(
            change_type=ChangeType.NODE_ADDED,
            node_id=node_id,
            affected_nodes=[node_id],
        ))
        return node_id

    def remove_node(self, node_id: NodeId) -> ChangeRecord:
        """Remove a node and every connection touching its ports."""
        node = self.get_node(node_id)

        touching = [
            c for c in self._connections.values()
            if c.destination.node_id == node_id or c.source.node_id == node_id
        ]
        consumers = sorted({
            c.destination.node_id for c in touching
            if c.source.node_id == node_id and c.destination.node_id != node_id
        })

        for connection in touching:
            self._unlink(connection)
        del self._nodes[node_id]

        logger.debug(f"Removed node {node_id} with {len(touching)} connection(s)")
        return self._emit(ChangeRecord(
            change_type=ChangeType.NODE_REMOVED,
            node_id=node_id,
            affected_nodes=consumers,
            removed_outputs=node.output_ids(),
            removed_connections=touching,
        ))

    def set_parameter(self, node_id: NodeId, key: str, value: Any) -> Optional[ChangeRecord]:
        """
        Change one payload parameter.

        A parameter that shares its name with an input port is that port's
        default, so both are updated together.

        Returns:
            The change record, or None if the value was already set
        """
        node = self.get_node(node_id)

        if key not in {f.name for f in fields(node.payload)}:
            raise InvalidParameter(key, value, f"not a {node.kind.value} parameter")
        if key in STRUCTURAL_PARAMETERS:
            raise InvalidParameter(key, value, "fixed when the node is created")

        value = copy.deepcopy(value)
        old_value = getattr(node.payload, key)
        if old_value == value:
            return None

        setattr(node.payload, key, value)
        if key in node.inputs:
            node.inputs[key].default = value

        logger.debug(f"Node {node_id}: {key} {old_value!r} -> {value!r}")
        return self._emit(ChangeRecord(
            change_type=ChangeType.PARAMETER_CHANGED,
            node_id=node_id,
            affected_nodes=[node_id],
            parameter=key,
            old_value=old_value,
            new_value=value,
        ))

    # ==================== Connections ====================

    def add_connection(self, source: OutputId, destination: InputId) -> Connection:
        """
        Connect an output port to an input port.

        Raises:
            NotFound: either port does not exist
            TypeMismatch: ports carry different data kinds
            InputAlreadyBound: destination already has a connection
        """
        source = OutputId(*source)
        destination = InputId(*destination)

        source_port = self.get_node(source.node_id).outputs.get(source.name)
        if source_port is None:
            raise NotFound("output port", source)
        destination_port = self.get_node(destination.node_id).inputs.get(destination.name)
        if destination_port is None:
            raise NotFound("input port", destination)

        if source_port.data_kind != destination_port.data_kind:
            raise TypeMismatch(source, destination, source_port.data_kind, destination_port.data_kind)

        existing = self._connections.get(destination)
        if existing is not None:
            raise InputAlreadyBound(destination, existing.source)

        connection = Connection(source=source, destination=destination, sequence=self._next_sequence)
        self._next_sequence += 1
        self._connections[destination] = connection
        self._by_source.setdefault(source, set()).add(destination)

        logger.debug(f"Connected {source} -> {destination}")
        self._emit(ChangeRecord(
            change_type=ChangeType.CONNECTION_ADDED,
            node_id=destination.node_id,
            connection=connection,
            affected_nodes=[destination.node_id],
        ))
        return connection

    def remove_connection(self, destination: InputId) -> Connection:
        """Remove the connection feeding an input port."""
        destination = InputId(*destination)
        connection = self._connections.get(destination)
        if connection is None:
            raise NotFound("connection", destination)

        self._unlink(connection)

        logger.debug(f"Disconnected {connection.source} -> {destination}")
        self._emit(ChangeRecord(
            change_type=ChangeType.CONNECTION_REMOVED,
            node_id=destination.node_id,
            connection=connection,
            affected_nodes=[destination.node_id],
            removed_connections=[connection],
        ))
        return connection

    def _unlink(self, connection: Connection) -> None:
        del self._connections[connection.destination]
        feeds = self._by_source.get(connection.source)
        if feeds is not None:
            feeds.discard(connection.destination)
            if not feeds:
                del self._by_source[connection.source]

    # ==================== Queries ====================

    def get_node(self, node_id: NodeId) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFound("node", node_id)
        return node

    def get_parameter(self, node_id: NodeId, key: str) -> Any:
        """Copy of one payload parameter."""
        node = self.get_node(node_id)
        if key not in {f.name for f in fields(node.payload)}:
            raise InvalidParameter(key, None, f"not a {node.kind.value} parameter")
        return copy.deepcopy(getattr(node.payload, key))

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def nodes(self) -> List[Node]:
        """All nodes in creation order."""
        return list(self._nodes.values())

    def node_ids(self) -> List[NodeId]:
        return list(self._nodes)

    def connections(self) -> List[Connection]:
        """All connections in the order they were made."""
        return sorted(self._connections.values(), key=lambda c: c.sequence)

    def connection_for(self, destination: InputId) -> Optional[Connection]:
        return self._connections.get(InputId(*destination))

    def input_connections(self, node_id: NodeId) -> List[Connection]:
        """Connections into a node, in input-port (slot) order."""
        node = self.get_node(node_id)
        result = []
        for name in node.inputs:
            connection = self._connections.get(InputId(node_id, name))
            if connection is not None:
                result.append(connection)
        return result

    def feeds(self, source: OutputId) -> List[InputId]:
        return sorted(self._by_source.get(OutputId(*source), ()))

    def suppliers_of(self, node_id: NodeId) -> Set[NodeId]:
        """Nodes with an output feeding one of this node's inputs."""
        return {c.source.node_id for c in self.input_connections(node_id)}

    def consumers_of(self, node_id: NodeId) -> Set[NodeId]:
        """Nodes with an input fed by one of this node's outputs."""
        node = self.get_node(node_id)
        result: Set[NodeId] = set()
        for output in node.output_ids():
            for destination in self._by_source.get(output, ()):
                result.add(destination.node_id)
        return result

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    # ==================== Change Records ====================

    def add_listener(self, callback: ChangeListener) -> None:
        """Register a callback for every change record."""
        self._listeners.append(callback)

    def remove_listener(self, callback: ChangeListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def history(self) -> List[ChangeRecord]:
        return list(self._history)

    @property
    def last_change(self) -> Optional[ChangeRecord]:
        return self._history[-1] if self._history else None

    def _emit(self, record: ChangeRecord) -> ChangeRecord:
        self._history.append(record)
        for callback in self._listeners:
            try:
                callback(record)
            except Exception as e:
                logger.error(f"Change listener error: {e}")
        return record
