"""Append-only builder for one workflow generation pass.

Nodes are only ever appended, and an edge may only point at a node that
already exists, so the graph is built in topological order. The single
exception to "never mutate" is :meth:`GraphBuilder.redirect_consumers`,
which retargets the primary input of existing consumer nodes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from ..errors import GraphError
from .schema import EdgeRef, GraphNode, as_edge

logger = logging.getLogger(__name__)

DEFAULT_FIRST_NODE_ID = 100


class GraphBuilder:
    """Owns the node set for a single generation pass."""

    def __init__(self, first_node_id: int = DEFAULT_FIRST_NODE_ID):
        self._nodes: dict[str, GraphNode] = {}
        self._next_id = first_node_id
        self._current_output: EdgeRef | None = None
        self._complete = False

    @classmethod
    def from_prompt(cls, prompt: dict[str, dict[str, Any]]) -> "GraphBuilder":
        """Create a builder pre-populated with an existing engine graph.

        Nodes are added in the given order and must already be
        topologically ordered.
        """
        builder = cls()
        for node_id, data in prompt.items():
            node = GraphNode.from_json(data)
            builder.append_node(node.class_type, node.inputs, node_id=str(node_id))
        return builder

    @property
    def nodes(self) -> dict[str, GraphNode]:
        """A shallow copy of the node map, in creation order."""
        return dict(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> GraphNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise GraphError(f"Unknown node '{node_id}'") from None

    def _allocate_id(self) -> str:
        while str(self._next_id) in self._nodes:
            self._next_id += 1
        node_id = str(self._next_id)
        self._next_id += 1
        return node_id

    def append_node(
        self,
        class_type: str,
        inputs: dict[str, Any] | None = None,
        node_id: str | None = None,
    ) -> str:
        """Append a node and return its id.

        Raises:
            GraphError: an edge input names a node that does not exist yet,
                or ``node_id`` is already taken
        """
        inputs = dict(inputs or {})
        for name, value in inputs.items():
            edge = as_edge(value)
            if edge is None:
                continue
            if edge.node_id not in self._nodes:
                raise GraphError(
                    f"Input '{name}' of new {class_type} node references "
                    f"unknown node '{edge.node_id}'"
                )
            inputs[name] = edge

        if node_id is None:
            node_id = self._allocate_id()
        elif node_id in self._nodes:
            raise GraphError(f"Node id '{node_id}' already exists")

        self._nodes[node_id] = GraphNode(class_type=class_type, inputs=inputs)
        return node_id

    @property
    def current_output(self) -> EdgeRef | None:
        """The most recent conceptual output that later steps should consume."""
        return self._current_output

    def set_current_output(self, edge: EdgeRef | None) -> None:
        if edge is not None and edge.node_id not in self._nodes:
            raise GraphError(f"Output edge references unknown node '{edge.node_id}'")
        self._current_output = edge

    @property
    def is_complete(self) -> bool:
        """True once a step has produced the whole workflow on its own."""
        return self._complete

    def mark_complete(self) -> None:
        self._complete = True

    def nodes_of_class(self, class_types: Iterable[str]) -> Iterator[tuple[str, GraphNode]]:
        wanted = set(class_types)
        for node_id, node in self._nodes.items():
            if node.class_type in wanted:
                yield node_id, node

    def redirect_consumers(
        self,
        old_edge: EdgeRef,
        new_edge: EdgeRef,
        class_types: Iterable[str],
        slot: str = "images",
        exclude: Iterable[str] = (),
    ) -> bool:
        """Point consumers of ``old_edge`` at ``new_edge`` instead.

        Only nodes whose class is in ``class_types`` and whose ``slot`` input
        equals ``old_edge`` are rewritten. Nodes in ``exclude`` (typically
        the node that produces ``new_edge`` and legitimately still reads
        ``old_edge``) are never touched.

        Returns:
            True if at least one node was updated
        """
        if new_edge.node_id not in self._nodes:
            raise GraphError(f"Redirect target references unknown node '{new_edge.node_id}'")
        skip = set(exclude) | {new_edge.node_id}
        updated = False
        for node_id, node in self.nodes_of_class(class_types):
            if node_id in skip:
                continue
            if node.edges().get(slot) != old_edge:
                continue
            node.inputs[slot] = new_edge
            logger.info(
                f"Redirected {node.class_type} node '{node_id}' input '{slot}' "
                f"from {list(old_edge)} to {list(new_edge)}"
            )
            updated = True
        return updated

    def to_prompt(self) -> dict[str, dict[str, Any]]:
        """Serialize to the engine's JSON-object shape."""
        return {node_id: node.to_json() for node_id, node in self._nodes.items()}

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_prompt(), indent=indent)
