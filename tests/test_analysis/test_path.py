"""Tests for navigation path tracing."""

from history_graph.analysis.path import PathResult, PathTracer, summarize_path
from history_graph.graph.models import CHAIN, HYPERLINK, Edge, Transition


def _edge(source, target, *stamps, kind=CHAIN):
    return Edge(source, target, [Transition(t, kind) for t in stamps])


def test_follows_earliest_incoming_edge():
    edges = [_edge("a", "b", 10), _edge("b", "c", 20), _edge("x", "c", 5)]
    result = PathTracer(edges).trace("c")

    assert result.ordered_node_ids == ("x", "c")
    assert result.edge_ids == frozenset({"x->c"})
    assert result.origin == "x"
    assert result.target == "c"
    assert not result.contains_node("b")


def test_walks_back_to_origin():
    edges = [_edge("a", "b", 10), _edge("b", "c", 20)]
    result = PathTracer(edges).trace("c")

    assert result.ordered_node_ids == ("a", "b", "c")
    assert result.contains_edge("a", "b")
    assert result.contains_edge("b", "c")
    assert [result.order_of(n) for n in ("a", "b", "c")] == [1, 2, 3]
    assert result.order_of("zzz") is None
    assert len(result) == 3


def test_edge_compares_by_its_earliest_transition():
    edges = [_edge("a", "c", 50, 1), _edge("b", "c", 10)]
    assert PathTracer(edges).trace("c").ordered_node_ids == ("a", "c")


def test_cycle_terminates():
    edges = [_edge("a", "b", 1), _edge("b", "a", 2)]
    result = PathTracer(edges).trace("b")

    assert result.ordered_node_ids == ("a", "b")
    assert result.edge_ids == frozenset({"a->b"})


def test_node_without_incoming_edges():
    result = PathTracer([_edge("a", "b", 1)]).trace("a")
    assert result.ordered_node_ids == ("a",)
    assert result.edge_ids == frozenset()


def test_unknown_node():
    result = PathTracer([]).trace("ghost")
    assert result.ordered_node_ids == ("ghost",)
    assert result.order_of("ghost") == 1


def test_self_loops_are_ignored():
    edges = [_edge("b", "b", 1), _edge("a", "b", 5)]
    tracer = PathTracer(edges)
    assert [e.source for e in tracer.incoming("b")] == ["a"]
    assert tracer.trace("b").ordered_node_ids == ("a", "b")


def test_ties_go_to_first_listed_edge():
    edges = [_edge("p", "c", 7), _edge("q", "c", 7)]
    assert PathTracer(edges).trace("c").origin == "p"
    assert PathTracer(list(reversed(edges))).trace("c").origin == "q"


def test_unknown_time_edge_does_not_win():
    edges = [_edge("u", "c", 0), _edge("b", "c", 20)]
    assert PathTracer(edges).trace("c").ordered_node_ids == ("b", "c")


def test_every_trace_starts_fresh():
    tracer = PathTracer([_edge("a", "b", 1), _edge("c", "d", 2)])
    assert tracer.trace("b").ordered_node_ids == ("a", "b")
    assert tracer.trace("d").ordered_node_ids == ("c", "d")


def test_path_nodes_are_linked_by_path_edges():
    edges = [
        _edge("a", "b", 10),
        _edge("b", "c", 20),
        _edge("c", "d", 30),
        _edge("e", "d", 40),
        _edge("d", "b", 50),
    ]
    result = PathTracer(edges).trace("d")
    nodes = result.ordered_node_ids
    for source, target in zip(nodes, nodes[1:]):
        assert result.contains_edge(source, target)
    assert len(result.edge_ids) == len(nodes) - 1


def test_empty_result():
    result = PathResult.empty()
    assert len(result) == 0
    assert result.target is None
    assert result.origin is None


def test_summarize_path():
    edges = [
        _edge("a", "b", 1000),
        _edge("b", "c", 4000, kind=HYPERLINK),
        _edge("z", "a", 9000),
    ]
    result = PathTracer(edges[:2]).trace("c")
    summary = summarize_path(result, edges)

    assert summary.node_count == 3
    assert summary.edge_count == 2
    assert summary.hyperlink_count == 1
    assert summary.chain_count == 1
    assert summary.elapsed_ms == 3000


def test_summarize_single_node_path():
    summary = summarize_path(PathTracer([]).trace("a"), [])
    assert summary.node_count == 1
    assert summary.elapsed_ms == 0
