"""
PDSD Result Cache

Last computed value per output port. Entries are written only by the
execution engine (each key by its owning node) and purged only by the update
propagator or by node/connection removal.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, Optional
import threading

from pdsd.graph.models import NodeId, OutputId


class ResultCache:
    """Mapping from OutputId to value, safe for concurrent insertion."""

    def __init__(self):
        self._values: Dict[OutputId, Any] = {}
        self._lock = threading.Lock()

    def get(self, output: OutputId, default: Any = None) -> Any:
        return self._values.get(output, default)

    def set(self, output: OutputId, value: Any) -> None:
        with self._lock:
            self._values[output] = value

    def contains(self, output: OutputId) -> bool:
        return output in self._values

    def __contains__(self, output: OutputId) -> bool:
        return output in self._values

    def __len__(self) -> int:
        return len(self._values)

    def purge(self, outputs: Iterable[OutputId]) -> int:
        """Drop entries; returns how many existed."""
        removed = 0
        with self._lock:
            for output in outputs:
                if output in self._values:
                    del self._values[output]
                    removed += 1
        return removed

    def values_for(self, node_id: NodeId) -> Dict[str, Any]:
        """Cached outputs of one node, by port name."""
        return {k.name: v for k, v in self._values.items() if k.node_id == node_id}

    def snapshot(self) -> Dict[OutputId, Any]:
        with self._lock:
            return dict(self._values)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
