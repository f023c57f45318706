"""
calculators/trunk.py - Trunk line diagram synthesis

Boxes are laid out by ascending floor, keeping slot order within a floor.
Every box is fed from the first box of the nearest lower occupied floor, or
from the root bus on the lowest floor. A box carrying a dual-power switch
module gets a dual-power feed plus a backup-power feed from the backup source.
"""

from __future__ import annotations
from typing import Any, Dict, List, Sequence, Tuple
import logging

from pdsd.bootstrap.config import CalculationConfig
from pdsd.core.constants import BACKUP_SOURCE, ROOT_BUS
from pdsd.core.enums import ConnectionType
from pdsd.errors.exceptions import InvalidParameter
from pdsd.graph.models import Node
from .calculation import voltage_drop_percent
from .distribution_box import three_phase_current
from .schema import (
    CalculatorOutcome,
    DiagramBox,
    DiagramConnection,
    DistributionBoxRecord,
    TrunkDiagram,
)
from .selection import select_cable

logger = logging.getLogger(__name__)


def synthesize_diagram(boxes: Sequence[Tuple[str, DistributionBoxRecord]]) -> TrunkDiagram:
    """
    Build the supply topology for (key, box) pairs given in slot order.
    """
    by_floor: Dict[int, List[Tuple[str, DistributionBoxRecord]]] = {}
    for key, box in boxes:
        by_floor.setdefault(box.floor, []).append((key, box))

    placed: List[DiagramBox] = []
    connections: List[DiagramConnection] = []
    floors: List[Tuple[int, Tuple[str, ...]]] = []

    supplier = ROOT_BUS
    for floor in sorted(by_floor):
        members = by_floor[floor]
        floors.append((floor, tuple(key for key, _ in members)))

        for key, box in members:
            placed.append(DiagramBox(
                key=key,
                name=box.name,
                floor=floor,
                dual_power=box.dual_power,
                total_power=box.total_power,
            ))
            feed_type = ConnectionType.DUAL_POWER if box.dual_power else ConnectionType.SINGLE_POWER
            connections.append(DiagramConnection(supplier, key, feed_type.value))
            if box.dual_power:
                connections.append(DiagramConnection(BACKUP_SOURCE, key, ConnectionType.BACKUP_POWER.value))

        supplier = members[0][0]

    return TrunkDiagram(boxes=tuple(placed), connections=tuple(connections), floors=tuple(floors))


def calculate_trunk_line(node: Node, inputs: Dict[str, Any], settings: CalculationConfig) -> CalculatorOutcome:
    length_m = float(inputs["length_m"])
    if length_m < 0:
        raise InvalidParameter("length_m", length_m, "must not be negative")

    boxes = []
    for name in node.inputs:
        value = inputs.get(name)
        if name.startswith("box_") and value is not None:
            boxes.append((name, value))

    diagram = synthesize_diagram(boxes)

    total_power = sum(box.total_power for _, box in boxes)
    total_current = three_phase_current(total_power, settings.box_power_factor, settings.line_voltage_v)
    section, warnings = select_cable(total_current, parameter="total_current")
    drop = voltage_drop_percent(
        current=total_current,
        length_m=length_m,
        cross_section_mm2=section,
        power_factor=settings.box_power_factor,
        voltage=settings.line_voltage_v,
    )

    logger.debug(
        f"Trunk {node.node_id}: {len(boxes)} box(es) on {len(diagram.floors)} floor(s), "
        f"{total_current:.1f}A over {section:g}mm2"
    )

    return CalculatorOutcome(
        outputs={
            "diagram": diagram,
            "total_power": total_power,
            "total_current": total_current,
            "voltage_drop_percent": drop,
        },
        warnings=warnings,
    )
