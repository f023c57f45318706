"""
PDSD - Power Distribution System Design engine

Dataflow engine for electrical distribution design: circuits, distribution
boxes and trunk lines wired as a graph, evaluated in dependency order and
recomputed incrementally when the graph changes.
"""

__version__ = "0.1.0"

from pdsd.engine import GraphSnapshot, PowerGraphEngine

__all__ = [
    "__version__",
    "GraphSnapshot",
    "PowerGraphEngine",
]
