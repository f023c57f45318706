"""
calculators/balancing.py - Three-phase load balancing

Heuristic local search over circuit-to-phase assignments:

1. assign circuits to L1, L2, L3 round-robin in slot order
2. while the relative spread (max - min) / average is at or above the
   tolerance, move one circuit from the most loaded phase to the least loaded
   one, as long as the receiving phase does not become the new maximum and
   the spread strictly shrinks
3. stop at the tolerance, the iteration cap, or when no move qualifies

Each accepted move strictly reduces the spread, so the result is never worse
than the initial round-robin assignment. It is not a global optimum.

Ties: the lowest phase index wins among equal maxima or minima; among
candidate circuits the smallest resulting spread wins, then the lowest slot.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from pdsd.core.constants import BALANCE_MAX_ITERATIONS, BALANCE_TOLERANCE
from pdsd.errors.exceptions import InvalidParameter
from .schema import BalanceResult

PHASE_COUNT = 3


def relative_spread(loads: Sequence[float]) -> float:
    """(max - min) / average; zero for an unloaded box."""
    average = sum(loads) / len(loads)
    if average == 0:
        return 0.0
    return (max(loads) - min(loads)) / average


def unbalance_degree(loads: Sequence[float]) -> float:
    """(max - min) / max x 100, in percent."""
    peak = max(loads)
    if peak == 0:
        return 0.0
    return (peak - min(loads)) / peak * 100.0


def phase_loads(powers: Sequence[float], assignment: Sequence[int]) -> List[float]:
    loads = [0.0] * PHASE_COUNT
    for power, phase in zip(powers, assignment):
        loads[phase] += power
    return loads


def _best_move(
    powers: Sequence[float],
    assignment: Sequence[int],
    loads: List[float],
) -> Optional[Tuple[int, int]]:
    """(circuit index, receiving phase) of the best qualifying move, if any."""
    heavy = loads.index(max(loads))
    light = loads.index(min(loads))
    if heavy == light:
        return None

    current_spread = relative_spread(loads)
    best: Optional[Tuple[int, int]] = None
    best_spread = current_spread

    for index, phase in enumerate(assignment):
        if phase != heavy:
            continue

        trial = list(loads)
        trial[heavy] -= powers[index]
        trial[light] += powers[index]

        others = [trial[p] for p in range(PHASE_COUNT) if p != light]
        if all(trial[light] > other for other in others):
            continue

        spread = relative_spread(trial)
        if spread < best_spread:
            best_spread = spread
            best = (index, light)

    return best


def balance_phases(
    powers: Sequence[float],
    tolerance: float = BALANCE_TOLERANCE,
    max_iterations: int = BALANCE_MAX_ITERATIONS,
) -> BalanceResult:
    """
    Distribute circuit powers over three phases.

    Args:
        powers: Circuit powers (kW) in slot order
        tolerance: Relative spread at which refinement stops
        max_iterations: Hard cap on the number of moves

    Returns:
        BalanceResult with per-phase loads and the final assignment
    """
    if tolerance < 0:
        raise InvalidParameter("balance_tolerance", tolerance, "must not be negative")
    if max_iterations < 0:
        raise InvalidParameter("balance_max_iterations", max_iterations, "must not be negative")
    for power in powers:
        if power < 0:
            raise InvalidParameter("power", power, "circuit power must not be negative")

    assignment = [i % PHASE_COUNT for i in range(len(powers))]
    loads = phase_loads(powers, assignment)
    initial = unbalance_degree(loads)

    iterations = 0
    converged = False
    while True:
        if relative_spread(loads) < tolerance:
            converged = True
            break
        if iterations >= max_iterations:
            break

        move = _best_move(powers, assignment, loads)
        if move is None:
            break

        index, target = move
        loads[assignment[index]] -= powers[index]
        loads[target] += powers[index]
        assignment[index] = target
        iterations += 1

    return BalanceResult(
        phase_loads=(loads[0], loads[1], loads[2]),
        assignment=tuple(assignment),
        initial_unbalance=initial,
        unbalance_degree=unbalance_degree(loads),
        iterations=iterations,
        converged=converged,
    )
