"""
PDSD Dependency Resolver

Evaluation order over the "consumes-from" relation: node B consumes from node
A when some output of A feeds some input of B.

The traversal is an explicit three-colour depth-first search (no recursion),
so a cycle is always reported instead of overflowing the stack or yielding a
wrong order. Roots and suppliers are visited in ascending NodeId, which makes
the order a function of node identities and the edge set alone.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Set, Tuple
import logging

from pdsd.errors.exceptions import CycleError
from pdsd.graph.models import NodeId
from pdsd.graph.store import GraphStore

logger = logging.getLogger(__name__)


class _Colour(Enum):
    WHITE = 0   # unvisited
    GREY = 1    # in progress
    BLACK = 2   # done


def topological_order(store: GraphStore) -> List[NodeId]:
    """
    Order every node after all nodes that feed its inputs.

    Raises:
        CycleError: the graph contains a directed cycle; ``cycle`` lists its
            nodes in feed direction with the first node repeated at the end
    """
    colour: Dict[NodeId, _Colour] = {n: _Colour.WHITE for n in store.node_ids()}
    suppliers: Dict[NodeId, List[NodeId]] = {
        n: sorted(store.suppliers_of(n)) for n in colour
    }
    order: List[NodeId] = []

    for root in sorted(colour):
        if colour[root] is not _Colour.WHITE:
            continue

        colour[root] = _Colour.GREY
        stack: List[Tuple[NodeId, Iterator[NodeId]]] = [(root, iter(suppliers[root]))]

        while stack:
            node, pending = stack[-1]
            advanced = False

            for supplier in pending:
                state = colour[supplier]
                if state is _Colour.WHITE:
                    colour[supplier] = _Colour.GREY
                    stack.append((supplier, iter(suppliers[supplier])))
                    advanced = True
                    break
                if state is _Colour.GREY:
                    path = [n for n, _ in stack]
                    start = path.index(supplier)
                    cycle = [supplier] + list(reversed(path[start + 1:])) + [supplier]
                    logger.warning(f"Dependency cycle: {cycle}")
                    raise CycleError(cycle)

            if not advanced:
                stack.pop()
                colour[node] = _Colour.BLACK
                order.append(node)

    logger.debug(f"Topological order over {len(order)} node(s)")
    return order


def rank_order(store: GraphStore, order: List[NodeId]) -> List[List[NodeId]]:
    """
    Group a topological order into ranks of mutually independent nodes.

    A node's rank is one more than the highest rank among its suppliers;
    nodes without suppliers are rank 0. Within a rank the input order is kept.
    """
    rank: Dict[NodeId, int] = {}
    ranks: List[List[NodeId]] = []

    for node_id in order:
        supplier_ranks = [rank[s] for s in store.suppliers_of(node_id) if s in rank]
        r = max(supplier_ranks) + 1 if supplier_ranks else 0
        rank[node_id] = r
        while len(ranks) <= r:
            ranks.append([])
        ranks[r].append(node_id)

    return ranks


def downstream_closure(store: GraphStore, seeds: Iterable[NodeId]) -> Set[NodeId]:
    """Seeds plus every node reachable by following feeds edges."""
    result: Set[NodeId] = set()
    to_process = [n for n in seeds if store.has_node(n)]

    while to_process:
        current = to_process.pop()
        if current in result:
            continue
        result.add(current)
        for consumer in store.consumers_of(current):
            if consumer not in result:
                to_process.append(consumer)

    return result
