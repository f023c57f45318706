"""
PDSD Update Propagator

Turns graph change records into dirty sets.

- a parameter change dirties the node and its downstream closure
- a connection change dirties the destination node and its downstream closure
- a removed node dirties its former consumers and their closure, and its
  outputs leave the cache

Cache entries of every dirty node are purged, so the cache never holds a
value computed from inputs that have since changed.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Union
import logging
import uuid

from pdsd.core.enums import ChangeType
from pdsd.graph.models import Connection, NodeId, OutputId
from pdsd.graph.store import ChangeRecord, GraphStore
from .cache import ResultCache
from .execution import NodeStatusTracker
from .resolver import downstream_closure

logger = logging.getLogger(__name__)

DirtySet = Set[NodeId]
ChangeSource = Union[ChangeRecord, Connection, NodeId]


@dataclass
class PropagationEvent:
    """Record of one propagation."""
    event_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: datetime = field(default_factory=datetime.utcnow)

    change_id: Optional[str] = None
    change_type: Optional[ChangeType] = None

    seeds: List[NodeId] = field(default_factory=list)
    dirty: List[NodeId] = field(default_factory=list)
    purged_outputs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "change_id": self.change_id,
            "change_type": self.change_type.value if self.change_type else None,
            "seeds": list(self.seeds),
            "dirty": list(self.dirty),
            "purged_outputs": self.purged_outputs,
        }


class UpdatePropagator:
    """
    Computes dirty sets and invalidates the cache.

    A change record is processed once; handing the same record in again
    returns the dirty set computed the first time without invalidating
    anything. None yields an empty set.
    """

    DEFAULT_HISTORY_SIZE = 1000

    def __init__(
        self,
        cache: ResultCache,
        statuses: Optional[NodeStatusTracker] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        self._cache = cache
        self._statuses = statuses
        self._events: Deque[PropagationEvent] = deque(maxlen=history_size)
        self._seen: Deque[str] = deque(maxlen=history_size)
        self._dirty_by_change: Dict[str, DirtySet] = {}
        self._callbacks: List[Callable[[PropagationEvent], None]] = []

    def on_change(self, store: GraphStore, change: Optional[ChangeSource]) -> DirtySet:
        """
        Dirty set for one change.

        Args:
            store: Graph after the change was applied
            change: Record returned by the mutating call, a connection whose
                destination changed, a node id whose parameters changed, or None
        """
        if change is None:
            return set()
        if isinstance(change, Connection):
            return self._propagate(store, [change.destination.node_id])
        if not isinstance(change, ChangeRecord):
            return self._propagate(store, [change])

        if self.has_seen(change.change_id):
            return set(self._dirty_by_change[change.change_id])

        seeds = [n for n in change.affected_nodes if store.has_node(n)]
        dirty = downstream_closure(store, seeds)
        purged = self._invalidate(store, dirty, change.removed_outputs)
        self._remember(change.change_id, dirty)

        if change.change_type == ChangeType.NODE_REMOVED and self._statuses is not None:
            self._statuses.forget(change.node_id)

        event = PropagationEvent(
            change_id=change.change_id,
            change_type=change.change_type,
            seeds=sorted(seeds),
            dirty=sorted(dirty),
            purged_outputs=purged,
        )
        self._record(event)

        logger.debug(
            f"{change.change_type.value}: {len(dirty)} dirty node(s), {purged} cache entr(ies) purged"
        )
        return dirty

    def has_seen(self, change_id: str) -> bool:
        """Whether a change record with this id was already propagated."""
        return change_id in self._dirty_by_change

    def _propagate(self, store: GraphStore, seeds: List[NodeId]) -> DirtySet:
        # Edits made outside the store carry no record id and are never deduplicated
        seeds = [n for n in seeds if store.has_node(n)]
        dirty = downstream_closure(store, seeds)
        purged = self._invalidate(store, dirty, [])

        self._record(PropagationEvent(seeds=sorted(seeds), dirty=sorted(dirty), purged_outputs=purged))
        logger.debug(f"Direct change: {len(dirty)} dirty node(s), {purged} cache entr(ies) purged")
        return dirty

    def invalidate_all(self, store: GraphStore) -> DirtySet:
        """Mark every node dirty and empty the cache."""
        dirty = set(store.node_ids())
        purged = len(self._cache)
        self._cache.clear()
        if self._statuses is not None:
            self._statuses.mark_stale(dirty)

        self._record(PropagationEvent(dirty=sorted(dirty), purged_outputs=purged))
        logger.info(f"Full invalidation: {len(dirty)} node(s)")
        return dirty

    def _invalidate(self, store: GraphStore, dirty: Set[NodeId], removed: List[OutputId]) -> int:
        outputs: List[OutputId] = list(removed)
        for node_id in dirty:
            outputs.extend(store.get_node(node_id).output_ids())
        purged = self._cache.purge(outputs)

        if self._statuses is not None:
            self._statuses.mark_stale(dirty)
        return purged

    def _remember(self, change_id: str, dirty: DirtySet) -> None:
        if len(self._seen) == self._seen.maxlen:
            self._dirty_by_change.pop(self._seen[0], None)
        self._seen.append(change_id)
        self._dirty_by_change[change_id] = set(dirty)

    def _record(self, event: PropagationEvent) -> None:
        self._events.append(event)
        for callback in self._callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Propagation callback error: {e}")

    def on_propagate(self, callback: Callable[[PropagationEvent], None]) -> None:
        """Register a callback for propagation events."""
        self._callbacks.append(callback)

    def get_events(self, limit: int = 100) -> List[PropagationEvent]:
        return list(self._events)[-limit:]
