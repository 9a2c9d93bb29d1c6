"""Visualization package - ruleset graphs and Mermaid export."""

from .graph import (
    NodeType,
    GraphNode,
    GraphEdge,
    RulesetGraph,
    build_graph,
    to_mermaid,
)

__all__ = [
    "NodeType",
    "GraphNode",
    "GraphEdge",
    "RulesetGraph",
    "build_graph",
    "to_mermaid",
]
