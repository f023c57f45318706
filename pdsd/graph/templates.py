"""
graph/templates.py - Node template registry

Read-only configuration describing each node template: its kind, default
parameters and port schema. The graph store consults the registry when a node
is created; the engine never mutates a registered template.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import copy
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pdsd.core.enums import CalculationType, DataKind, NodeKind, PortDirection
from pdsd.errors.exceptions import NotFound
from .models import NodeId, PAYLOAD_TYPES, Port

logger = logging.getLogger(__name__)


# =============================================================================
# SCHEMAS
# =============================================================================

class PortSchema(BaseModel):
    """Declaration of one port."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Port name, unique per direction")
    data_kind: DataKind = Field(..., description="Kind of value carried")
    default: Any = Field(None, description="Value used when the input is unconnected")
    required: bool = Field(False, description="Unconnected input without default fails the node")


class SlotSchema(BaseModel):
    """A run of numbered optional input ports, e.g. circuit_1 .. circuit_12."""

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(..., min_length=1)
    data_kind: DataKind
    count_parameter: str = Field(..., description="Payload field holding the slot count")

    def port_names(self, count: int) -> List[str]:
        return [f"{self.prefix}_{i}" for i in range(1, count + 1)]


class NodeTemplate(BaseModel):
    """Everything needed to construct a node of one template."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: NodeKind
    label: str = ""
    description: str = ""
    defaults: Dict[str, Any] = Field(default_factory=dict)
    inputs: List[PortSchema] = Field(default_factory=list)
    outputs: List[PortSchema] = Field(default_factory=list)
    slots: Optional[SlotSchema] = None

    @field_validator("outputs")
    @classmethod
    def _outputs_have_no_defaults(cls, outputs: List[PortSchema]) -> List[PortSchema]:
        for port in outputs:
            if port.default is not None or port.required:
                raise ValueError(f"output port '{port.name}' cannot declare a default or required flag")
        return outputs

    @model_validator(mode="after")
    def _check_names(self) -> "NodeTemplate":
        input_names = [p.name for p in self.inputs]
        output_names = [p.name for p in self.outputs]
        if len(set(input_names)) != len(input_names):
            raise ValueError(f"duplicate input port in template '{self.name}'")
        if len(set(output_names)) != len(output_names):
            raise ValueError(f"duplicate output port in template '{self.name}'")
        known = {f.name for f in fields(PAYLOAD_TYPES[self.kind])}
        unknown = set(self.defaults) - known
        if unknown:
            raise ValueError(f"unknown default parameter(s) for {self.kind.value}: {sorted(unknown)}")
        if self.slots and self.slots.count_parameter not in known:
            raise ValueError(f"slot count parameter '{self.slots.count_parameter}' is not a payload field")
        return self

    def build_payload(self, overrides: Optional[Dict[str, Any]] = None) -> Any:
        """Create the typed payload: dataclass defaults < template defaults < overrides."""
        values = copy.deepcopy(dict(self.defaults))
        values.update(copy.deepcopy(overrides or {}))
        return PAYLOAD_TYPES[self.kind](**values)

    def build_ports(self, node_id: NodeId, payload: Any) -> Tuple[Dict[str, Port], Dict[str, Port]]:
        """Instantiate input and output ports for a new node."""
        payload_names = {f.name for f in fields(payload)}
        inputs: Dict[str, Port] = {}

        for schema in self.inputs:
            default = getattr(payload, schema.name) if schema.name in payload_names else schema.default
            inputs[schema.name] = Port(
                node_id=node_id,
                name=schema.name,
                direction=PortDirection.INPUT,
                data_kind=schema.data_kind,
                default=default,
                required=schema.required,
            )

        if self.slots:
            count = int(getattr(payload, self.slots.count_parameter))
            for name in self.slots.port_names(count):
                inputs[name] = Port(
                    node_id=node_id,
                    name=name,
                    direction=PortDirection.INPUT,
                    data_kind=self.slots.data_kind,
                )

        outputs = {
            schema.name: Port(
                node_id=node_id,
                name=schema.name,
                direction=PortDirection.OUTPUT,
                data_kind=schema.data_kind,
            )
            for schema in self.outputs
        }
        return inputs, outputs


# =============================================================================
# BUILT-IN TEMPLATES
# =============================================================================

def _port(name: str, kind: DataKind, default: Any = None, required: bool = False) -> PortSchema:
    return PortSchema(name=name, data_kind=kind, default=default, required=required)


BUILTIN_TEMPLATES: List[NodeTemplate] = [
    NodeTemplate(
        name="power_source",
        kind=NodeKind.POWER_SOURCE,
        label="Power Source",
        description="Supply voltage and capacity",
        outputs=[
            _port("voltage", DataKind.VOLTAGE),
            _port("capacity", DataKind.POWER),
        ],
    ),
    NodeTemplate(
        name="circuit",
        kind=NodeKind.CIRCUIT,
        label="Circuit",
        description="Final circuit: current calculation and breaker/cable selection",
        inputs=[
            _port("rated_power", DataKind.POWER, required=True),
            _port("demand_coefficient", DataKind.COEFFICIENT, required=True),
            _port("power_factor", DataKind.POWER_FACTOR, required=True),
            _port("voltage", DataKind.VOLTAGE),
        ],
        outputs=[
            _port("current", DataKind.CURRENT),
            _port("current_1_1", DataKind.CURRENT),
            _port("current_1_25", DataKind.CURRENT),
            _port("power", DataKind.POWER),
            _port("circuit", DataKind.CIRCUIT_RECORD),
        ],
    ),
    NodeTemplate(
        name="distribution_box",
        kind=NodeKind.DISTRIBUTION_BOX,
        label="Distribution Box",
        description="Aggregates circuits, balances phases, sizes incoming protection",
        slots=SlotSchema(prefix="circuit", data_kind=DataKind.CIRCUIT_RECORD, count_parameter="circuit_slots"),
        outputs=[
            _port("total_power", DataKind.POWER),
            _port("total_current", DataKind.CURRENT),
            _port("incoming_current", DataKind.CURRENT),
            _port("box", DataKind.DISTRIBUTION_BOX_RECORD),
        ],
    ),
    NodeTemplate(
        name="trunk_line",
        kind=NodeKind.TRUNK_LINE,
        label="Trunk Line",
        description="Floor-by-floor trunk diagram synthesis",
        inputs=[
            _port("length_m", DataKind.NUMBER, required=True),
        ],
        slots=SlotSchema(prefix="box", data_kind=DataKind.DISTRIBUTION_BOX_RECORD, count_parameter="box_slots"),
        outputs=[
            _port("diagram", DataKind.TRUNK_DIAGRAM),
            _port("total_power", DataKind.POWER),
            _port("total_current", DataKind.CURRENT),
            _port("voltage_drop_percent", DataKind.NUMBER),
        ],
    ),
    NodeTemplate(
        name="phase_balance",
        kind=NodeKind.CALCULATION,
        label="Phase Balance",
        description="Unbalance degree of a distribution box",
        defaults={"name": "Phase Balance", "calculation_type": CalculationType.PHASE_BALANCE.value},
        inputs=[
            _port("box", DataKind.DISTRIBUTION_BOX_RECORD, required=True),
        ],
        outputs=[
            _port("result", DataKind.NUMBER),
        ],
    ),
    NodeTemplate(
        name="voltage_drop",
        kind=NodeKind.CALCULATION,
        label="Voltage Drop",
        description="Voltage loss of a three-phase cable run",
        defaults={"name": "Voltage Drop", "calculation_type": CalculationType.VOLTAGE_DROP.value},
        inputs=[
            _port("current", DataKind.CURRENT, required=True),
            _port("length_m", DataKind.NUMBER, required=True),
            _port("cross_section_mm2", DataKind.NUMBER, required=True),
            _port("power_factor", DataKind.POWER_FACTOR, required=True),
            _port("voltage", DataKind.VOLTAGE, required=True),
        ],
        outputs=[
            _port("result", DataKind.NUMBER),
        ],
    ),
]


# =============================================================================
# REGISTRY
# =============================================================================

class NodeTemplateRegistry:
    """Lookup of node templates by name, with a default template per kind."""

    def __init__(self, templates: Optional[List[NodeTemplate]] = None):
        self._templates: Dict[str, NodeTemplate] = {}
        for template in templates or []:
            self.register(template)

    @classmethod
    def default(cls) -> "NodeTemplateRegistry":
        return cls(BUILTIN_TEMPLATES)

    @classmethod
    def from_file(cls, filepath: Union[str, Path], include_builtin: bool = True) -> "NodeTemplateRegistry":
        """Load templates from a JSON list; file templates may not shadow built-ins."""
        with open(filepath) as f:
            data = json.load(f)

        registry = cls.default() if include_builtin else cls()
        for item in data:
            registry.register(NodeTemplate.model_validate(item))

        logger.info(f"Loaded {len(data)} node template(s) from {filepath}")
        return registry

    def register(self, template: NodeTemplate) -> None:
        if template.name in self._templates:
            raise ValueError(f"Template already registered: {template.name}")
        self._templates[template.name] = template

    def get(self, name: str) -> NodeTemplate:
        template = self._templates.get(name)
        if template is None:
            raise NotFound("template", name)
        return template

    def default_for(self, kind: NodeKind) -> NodeTemplate:
        """First registered template of a kind."""
        for template in self._templates.values():
            if template.kind == kind:
                return template
        raise NotFound("template for kind", kind.value)

    def resolve(self, template_or_kind: Union[str, NodeKind]) -> NodeTemplate:
        if isinstance(template_or_kind, NodeKind):
            return self.default_for(template_or_kind)
        return self.get(template_or_kind)

    def names(self) -> List[str]:
        return list(self._templates)

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)
