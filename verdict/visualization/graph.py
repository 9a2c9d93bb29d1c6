"""
Graph export for rulesets.

Builds a node/edge representation of a ruleset (ruleset -> rules -> condition
trees) and renders it as a Mermaid flowchart.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from verdict.conditions.service import Condition
    from verdict.rules.service import Rule


class NodeType(str, Enum):
    """Kind of graph node."""

    RULESET = "ruleset"
    RULE = "rule"
    CONDITION = "condition"


class GraphNode(BaseModel):
    """A node in the ruleset graph."""

    id: str
    type: NodeType
    label: str
    reason_code: str | None = None
    tags: list[str] | None = None
    description: str | None = None
    version: str | None = None


class GraphEdge(BaseModel):
    """A directed edge from parent to child."""

    source: str = Field(..., description="Parent node id")
    target: str = Field(..., description="Child node id")


class RulesetGraph(BaseModel):
    """Nodes and edges describing a ruleset's structure."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


def build_graph(name: str | None, rules: Iterable[Rule]) -> RulesetGraph:
    """Build the graph for a ruleset in declaration order.

    Node ids are ``ruleset:<name>``, ``rule:<id>`` and ``condition:<n>``
    (numbered depth-first).
    """
    graph = RulesetGraph()
    ruleset_label = name or "ruleset"
    ruleset_id = f"ruleset:{ruleset_label}"
    graph.nodes.append(GraphNode(id=ruleset_id, type=NodeType.RULESET, label=ruleset_label))

    counter = 0

    def visit(condition: Condition, parent_id: str) -> None:
        nonlocal counter
        node_id = f"condition:{counter}"
        counter += 1
        graph.nodes.append(
            GraphNode(
                id=node_id,
                type=NodeType.CONDITION,
                label=condition.meta.label,
                reason_code=condition.meta.reason_code,
            )
        )
        graph.edges.append(GraphEdge(source=parent_id, target=node_id))
        for child in condition.meta.children:
            visit(child, node_id)

    for rule in rules:
        rule_node_id = f"rule:{rule.id}"
        meta = rule.meta
        graph.nodes.append(
            GraphNode(
                id=rule_node_id,
                type=NodeType.RULE,
                label=rule.id,
                reason_code=meta.reason_code if meta else None,
                tags=list(meta.tags) if meta and meta.tags else None,
                description=meta.description if meta else None,
                version=meta.version if meta else None,
            )
        )
        graph.edges.append(GraphEdge(source=ruleset_id, target=rule_node_id))
        for condition in rule.conditions:
            visit(condition, rule_node_id)

    return graph


def to_mermaid(graph: RulesetGraph) -> str:
    """Render a graph as a Mermaid ``flowchart TD`` definition."""
    ids = {node.id: f"n{index}" for index, node in enumerate(graph.nodes)}
    lines = ["flowchart TD"]

    for node in graph.nodes:
        tags = f" [tags: {', '.join(node.tags)}]" if node.tags else ""
        reason = f" [reason: {node.reason_code}]" if node.reason_code else ""
        label = f"{node.type.value.capitalize()}: {node.label}{tags}{reason}"
        lines.append(f'  {ids[node.id]}["{_escape(label)}"]')

    for edge in graph.edges:
        if edge.source in ids and edge.target in ids:
            lines.append(f"  {ids[edge.source]} --> {ids[edge.target]}")

    return "\n".join(lines)


def _escape(label: str) -> str:
    # Mermaid labels cannot contain raw double quotes
    return label.replace('"', "#quot;")
