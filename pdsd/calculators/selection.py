"""
calculators/selection.py - Standard rating and cable selection

Each selector returns the chosen value and a list of warnings. When no table
entry is large enough the largest entry is returned with an OUT_OF_RANGE
warning instead of failing.
"""

from __future__ import annotations
from typing import List, Sequence, Tuple

from pdsd.core.constants import (
    BREAKER_RATINGS_A,
    CABLE_AMPACITY,
    INCOMING_RATINGS_A,
    format_rating,
)
from pdsd.core.enums import PhaseType
from pdsd.errors.exceptions import InvalidParameter
from pdsd.errors.taxonomy import EngineError, create_out_of_range_warning


def select_standard(
    required: float,
    table: Sequence[float],
    parameter: str,
    source: str = "selection",
) -> Tuple[float, List[EngineError]]:
    """Smallest table entry >= required."""
    if required < 0:
        raise InvalidParameter(parameter, required, "must not be negative")

    for rating in table:
        if rating >= required:
            return rating, []

    largest = table[-1]
    warning = create_out_of_range_warning(
        message=f"{parameter} {required:.2f}A exceeds largest standard rating {format_rating(largest)}",
        source=source,
        path=parameter,
        actual=required,
        selected=largest,
    )
    return largest, [warning]


def select_breaker(current_1_1: float) -> Tuple[float, List[EngineError]]:
    """Circuit breaker trip rating for the 1.1 x I protection current."""
    return select_standard(current_1_1, BREAKER_RATINGS_A, "current_1_1", source="breaker_selection")


def select_incoming(required: float) -> Tuple[float, List[EngineError]]:
    """Incoming protection rating of a distribution box; no load needs none."""
    if required == 0:
        return 0.0, []
    return select_standard(required, INCOMING_RATINGS_A, "incoming_current", source="incoming_selection")


def select_cable(current: float, parameter: str = "current_1_25") -> Tuple[float, List[EngineError]]:
    """
    Copper cross section (mm2) whose ampacity carries the given current.

    Returns:
        (cross section, warnings)
    """
    if current < 0:
        raise InvalidParameter(parameter, current, "must not be negative")

    for section, ampacity in CABLE_AMPACITY:
        if ampacity >= current:
            return section, []

    section, ampacity = CABLE_AMPACITY[-1]
    warning = create_out_of_range_warning(
        message=f"{parameter} {current:.2f}A exceeds {section:g}mm2 cable ampacity {ampacity:g}A",
        source="cable_selection",
        path=parameter,
        actual=current,
        selected=section,
    )
    return section, [warning]


def cable_designation(cross_section: float, phase_type: str) -> str:
    """BV-2.5mm² for single phase, YJV-4×16+1×8mm² for three phase."""
    if phase_type == PhaseType.THREE.value:
        return f"YJV-4×{cross_section:g}+1×{cross_section / 2:g}mm²"
    return f"BV-{cross_section:g}mm²"
