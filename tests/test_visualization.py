"""Tests for ruleset graphs and Mermaid export."""

from verdict import and_, condition, field, not_, ruleset
from verdict.visualization import NodeType, build_graph, to_mermaid


def eligibility_builder():
    return (
        ruleset("eligibility", register=False)
        .default_effects(dict)
        .rule("adult")
        .tags("age")
        .reason_code("AGE_18")
        .description("Adults only")
        .when(field("user.age").gte(18))
        .then(lambda ctx: None)
        .end()
        .rule("clean")
        .when(and_("clean record", field("user.active").is_true(), not_(field("user.banned").is_true())))
        .then(lambda ctx: None)
        .end()
    )


class TestBuildGraph:
    def test_nodes(self):
        graph = eligibility_builder().graph()

        assert [node.id for node in graph.nodes] == [
            "ruleset:eligibility",
            "rule:adult",
            "condition:0",
            "rule:clean",
            "condition:1",
            "condition:2",
            "condition:3",
            "condition:4",
        ]
        adult = graph.nodes[1]
        assert adult.type == NodeType.RULE
        assert adult.tags == ["age"]
        assert adult.reason_code == "AGE_18"
        assert adult.description == "Adults only"
        assert graph.nodes[4].label == "clean record"

    def test_edges_follow_condition_tree(self):
        graph = eligibility_builder().graph()
        edges = [(edge.source, edge.target) for edge in graph.edges]

        assert ("ruleset:eligibility", "rule:adult") in edges
        assert ("rule:adult", "condition:0") in edges
        assert ("rule:clean", "condition:1") in edges
        assert ("condition:1", "condition:2") in edges
        assert ("condition:1", "condition:3") in edges
        assert ("condition:3", "condition:4") in edges
        assert len(edges) == len(graph.nodes) - 1

    def test_unnamed_ruleset(self):
        graph = build_graph(None, [])
        assert graph.nodes[0].id == "ruleset:ruleset"
        assert graph.edges == []

    def test_condition_reason_code(self):
        builder = (
            ruleset("r", register=False)
            .default_effects(dict)
            .rule("r")
            .when(condition("custom", lambda facts: True, reason_code="C1"))
            .then(lambda ctx: None)
            .end()
        )
        assert builder.graph().nodes[2].reason_code == "C1"


class TestMermaid:
    def test_flowchart(self):
        lines = eligibility_builder().to_mermaid().splitlines()

        assert lines[0] == "flowchart TD"
        assert '  n0["Ruleset: eligibility"]' in lines
        assert '  n1["Rule: adult [tags: age] [reason: AGE_18]"]' in lines
        assert '  n2["Condition: user.age >= 18"]' in lines
        assert "  n0 --> n1" in lines
        assert "  n1 --> n2" in lines

    def test_quotes_are_escaped(self):
        builder = (
            ruleset("quotes", register=False)
            .default_effects(dict)
            .rule("r")
            .when(condition('name is "x"', lambda facts: True))
            .then(lambda ctx: None)
            .end()
        )
        assert '  n2["Condition: name is #quot;x#quot;"]' in to_mermaid(builder.graph())
