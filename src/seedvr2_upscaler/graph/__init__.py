"""Workflow graph schema and builder."""

from .builder import GraphBuilder
from .schema import EdgeRef, GraphNode, as_edge

__all__ = ["EdgeRef", "GraphBuilder", "GraphNode", "as_edge"]
