"""Execution engine graph format.

A workflow is a JSON object mapping node ids to nodes. Each node has a
``class_type`` (the engine's node-type name) and named ``inputs``. An input
is either a literal value or an edge, written as a two-element array
``[producer_node_id, output_slot_index]``:

    {
      "100": {"class_type": "LoadImage", "inputs": {"image": "/tmp/in.png"}},
      "101": {"class_type": "SaveImage",
              "inputs": {"images": ["100", 0], "filename_prefix": "out"}}
    }
"""

from __future__ import annotations

from typing import Any, NamedTuple

from pydantic import BaseModel, Field


class EdgeRef(NamedTuple):
    """Reference to one output slot of a producer node."""

    node_id: str
    slot: int

    def to_json(self) -> list[Any]:
        return [self.node_id, self.slot]


def as_edge(value: Any) -> EdgeRef | None:
    """Interpret an input value as an edge if it has the edge shape."""
    if isinstance(value, EdgeRef):
        return value
    if (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and isinstance(value[0], str)
        and isinstance(value[1], int)
        and not isinstance(value[1], bool)
    ):
        return EdgeRef(value[0], value[1])
    return None


class GraphNode(BaseModel):
    """A node in the workflow graph."""

    class_type: str = Field(..., description="Engine node-type name, e.g. 'LoadImage'")
    inputs: dict[str, Any] = Field(
        default_factory=dict,
        description="Input slot name -> literal value or EdgeRef",
    )

    def edges(self) -> dict[str, EdgeRef]:
        """Return the inputs that are edges, keyed by slot name."""
        found: dict[str, EdgeRef] = {}
        for name, value in self.inputs.items():
            edge = as_edge(value)
            if edge is not None:
                found[name] = edge
        return found

    def to_json(self) -> dict[str, Any]:
        inputs = {}
        for name, value in self.inputs.items():
            edge = as_edge(value)
            inputs[name] = edge.to_json() if edge is not None else value
        return {"class_type": self.class_type, "inputs": inputs}

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "GraphNode":
        node = cls.model_validate(data)
        inputs = {}
        for name, value in node.inputs.items():
            edge = as_edge(value)
            inputs[name] = edge if edge is not None else value
        return cls(class_type=node.class_type, inputs=inputs)
