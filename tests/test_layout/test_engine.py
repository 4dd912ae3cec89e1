"""Tests for the layout engine."""

import itertools
import logging
import math
from unittest.mock import patch

import pytest

from history_graph.config import NODE_SIZE, LayoutConfig
from history_graph.exceptions import InvalidGraphError
from history_graph.graph.models import Edge, Node, Transition
from history_graph.layout.engine import LayoutCache, compute_layout, layout_stats
from history_graph.layout.models import LayoutStatus
from history_graph.layout.timeline import FlowTimelineConfig, StackedTimelineConfig

FLOW = LayoutConfig(orientation="horizontal")


def _nodes(*stamps):
    return [Node(f"n{i}", url=f"https://site{i}.com", timestamp=t) for i, t in enumerate(stamps)]


def _assert_no_overlap(positions):
    for a, b in itertools.combinations(positions.values(), 2):
        assert math.hypot(a.x - b.x, a.y - b.y) >= NODE_SIZE


class TestStacked:
    def test_sessions_get_their_own_bands(self):
        nodes = [
            Node("a", timestamp=1000),
            Node("b", timestamp=2000),
            Node("c", timestamp=90_000_000),
        ]
        result = compute_layout(nodes, [], 1000, 800)

        assert result.status == LayoutStatus.OK
        assert result.is_ready
        assert [[n.id for n in s.nodes] for s in result.sessions] == [["a", "b"], ["c"]]
        assert (result.positions["a"].x, result.positions["a"].y) == (490, 100)
        assert (result.positions["b"].x, result.positions["b"].y) == (550, 100)
        # lone visit sits at the left edge of the next band
        assert (result.positions["c"].x, result.positions["c"].y) == (140, 250)

    def test_timeline_follows_bands(self):
        nodes = [Node("a", timestamp=1000), Node("b", timestamp=2000), Node("c", timestamp=90_000_000)]
        result = compute_layout(nodes, [], 1000, 800)

        assert isinstance(result.timeline, StackedTimelineConfig)
        assert result.timeline.time_to_y(1000) == 100
        assert result.timeline.time_to_y(1500) == 120
        assert result.timeline.time_to_y(2000) == 140
        assert result.timeline.time_to_y(90_000_000) == 250

    def test_large_session_wraps_rows(self):
        nodes = _nodes(*range(1000, 1014))
        result = compute_layout(nodes, [], 1000, 800)

        ys = sorted({p.y for p in result.positions.values()})
        assert ys == [100, 160, 220]
        first_row = [p.x for p in result.positions.values() if p.y == 100]
        assert len(first_row) == 6
        assert max(first_row) - min(first_row) == 5 * 60
        _assert_no_overlap(result.positions)

    def test_next_session_starts_below_wrapped_rows(self):
        nodes = _nodes(*range(1000, 1008)) + [Node("late", timestamp=50_000_000)]
        result = compute_layout(nodes, [], 1000, 800)
        assert result.positions["late"].y == 160 + 150

    def test_undated_nodes_form_a_lane(self):
        nodes = [Node("x"), Node("a", timestamp=1000), Node("y")]
        result = compute_layout(nodes, [], 1000, 800)

        assert result.positions["x"].x == 100
        assert result.positions["y"].x == 100
        assert result.positions["x"].y == 250
        assert result.positions["y"].y == 250 + 80
        _assert_no_overlap(result.positions)


class TestFlow:
    def test_buckets_cover_time_span_and_contain_their_nodes(self):
        nodes = _nodes(*range(1000, 21000, 1000))
        result = compute_layout(nodes, [], 800, 600, FLOW)
        timeline = result.timeline

        assert isinstance(timeline, FlowTimelineConfig)
        assert len(timeline.buckets) == 3
        assert [len(b.node_ids) for b in timeline.buckets] == [7, 6, 7]
        for prev, nxt in zip(timeline.buckets, timeline.buckets[1:]):
            assert prev.end_x == nxt.start_x
        by_id = {n.id: n for n in nodes}
        for bucket in timeline.buckets:
            for node_id in bucket.node_ids:
                assert bucket.start_x <= result.positions[node_id].x <= bucket.end_x
                assert timeline.time_to_x(by_id[node_id].timestamp) == bucket.center_x
        _assert_no_overlap(result.positions)

    def test_narrow_canvas_is_not_centered(self):
        result = compute_layout(_nodes(*range(1000, 21000, 1000)), [], 800, 600, FLOW)
        assert result.timeline.centering_offset == 0
        assert result.timeline.buckets[0].start_x == 200

    def test_wide_canvas_centers_content(self):
        result = compute_layout(_nodes(*range(1000, 21000, 1000)), [], 3000, 600, FLOW)
        timeline = result.timeline
        assert timeline.content_width == 1040
        assert timeline.centering_offset == 980
        assert timeline.buckets[0].start_x == 1180

    def test_dense_bucket_is_wider(self):
        nodes = _nodes(*range(1000, 1014)) + _nodes(100_000, 100_001)
        nodes = [Node(f"id{i}", timestamp=n.timestamp) for i, n in enumerate(nodes)]
        result = compute_layout(nodes, [], 800, 600, FLOW)
        first, second = result.timeline.buckets
        assert len(first.node_ids) == 14
        assert first.width > second.width

    def test_columns_stack_vertically(self):
        nodes = _nodes(*range(1000, 1008))
        result = compute_layout(nodes, [], 800, 600, FLOW)
        ys = sorted({p.y for p in result.positions.values()})
        assert ys[0] == 100 + 120
        assert ys[1] - ys[0] == 70

    def test_simultaneous_visits_share_one_bucket(self):
        nodes = [Node(f"n{i}", timestamp=5000) for i in range(20)]
        result = compute_layout(nodes, [], 800, 600, FLOW)
        assert len(result.timeline.buckets) == 1
        assert len(result.positions) == 20
        _assert_no_overlap(result.positions)

    def test_undated_lane_follows_last_bucket(self):
        nodes = [Node("a", timestamp=1000), Node("x")]
        result = compute_layout(nodes, [], 800, 600, FLOW)
        last = result.timeline.buckets[-1]
        assert result.positions["x"].x == last.end_x + 80
        assert result.positions["x"].y == 100


class TestComputeLayout:
    def test_every_node_is_placed(self):
        nodes = _nodes(1000, 5000, 0, 10_000_000, 10_000_500, 0)
        for config in (LayoutConfig(), FLOW):
            result = compute_layout(nodes, [], 1200, 900, config)
            assert set(result.positions) == {n.id for n in nodes}
            assert [s.id for s in result.simulation_nodes] == [n.id for n in nodes]

    def test_layout_is_deterministic(self):
        nodes = _nodes(3000, 1000, 2000, 9_000_000)
        first = compute_layout(nodes, [], 1000, 800)
        second = compute_layout(nodes, [], 1000, 800)
        assert first.positions == second.positions

    def test_empty_input(self):
        result = compute_layout([], [], 1000, 800)
        assert result.status == LayoutStatus.EMPTY_INPUT
        assert not result.is_ready
        assert result.positions == {}

    @pytest.mark.parametrize("width,height", [(0, 800), (1000, 0), (-5, -5)])
    def test_unsized_canvas(self, width, height):
        result = compute_layout(_nodes(1000), [], width, height)
        assert result.status == LayoutStatus.INVALID_DIMENSIONS
        assert not result.is_ready
        assert result.positions == {}

    def test_failure_falls_back_to_grid(self, caplog):
        nodes = _nodes(1000, 2000, 3000)
        with patch("history_graph.layout.engine._stacked_positions", side_effect=RuntimeError("boom")):
            with caplog.at_level(logging.WARNING, logger="history_graph.layout.engine"):
                result = compute_layout(nodes, [], 1000, 800)

        assert result.status == LayoutStatus.FALLBACK
        assert result.is_ready
        assert [s.id for s in result.sessions] == ["fallback-session"]
        assert [(p.x, p.y) for p in result.positions.values()] == [(250, 400), (350, 400), (450, 400)]
        assert "fallback" in caplog.text

    def test_fallback_grid_wraps(self):
        nodes = _nodes(*range(1000, 1008))
        with patch("history_graph.layout.engine._stacked_positions", side_effect=RuntimeError("boom")):
            result = compute_layout(nodes, [], 1000, 800)
        ys = sorted({p.y for p in result.positions.values()})
        assert ys == [350, 450]
        _assert_no_overlap(result.positions)

    def test_too_narrow_canvas_uses_fallback(self):
        result = compute_layout(_nodes(1000, 2000), [], 150, 800)
        assert result.status == LayoutStatus.FALLBACK
        assert len(result.positions) == 2

    def test_partial_positions_use_fallback(self):
        with patch(
            "history_graph.layout.engine._stacked_positions",
            return_value=({}, None),
        ):
            result = compute_layout(_nodes(1000, 2000), [], 1000, 800)
        assert result.status == LayoutStatus.FALLBACK

    def test_simulation_edges_skip_dangling_and_self_loops(self):
        nodes = _nodes(1000, 2000)
        edges = [
            Edge("n0", "n1", [Transition(2000)]),
            Edge("n0", "missing", [Transition(2500)]),
            Edge("n1", "n1", [Transition(3000)]),
        ]
        result = compute_layout(nodes, edges, 1000, 800)
        assert [e.key for e in result.simulation_edges] == ["n0->n1"]
        assert result.simulation_edges[0].source.id == "n0"
        assert result.simulation_edges[0].weight == 1

    def test_accepts_dict_records(self):
        result = compute_layout(
            [{"id": "a", "timestamp": 1000}, {"id": "b", "timestamp": 2000}],
            [{"source": "a", "target": "b", "transitions": [{"timestamp": 2000}]}],
            1000,
            800,
        )
        assert set(result.positions) == {"a", "b"}
        assert len(result.simulation_edges) == 1

    def test_rejects_unknown_records(self):
        with pytest.raises(InvalidGraphError, match="Expected Node"):
            compute_layout([object()], [], 1000, 800)

    def test_duplicate_ids_are_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = compute_layout([Node("a", timestamp=1), Node("a", timestamp=2)], [], 1000, 800)
        assert len(result.simulation_nodes) == 1
        assert "duplicate" in caplog.text


class TestMoveNode:
    def test_move_updates_one_node_and_reports_its_edges(self):
        nodes = _nodes(1000, 2000, 3000)
        edges = [Edge("n0", "n1", [Transition(2000)]), Edge("n1", "n2", [Transition(3000)])]
        result = compute_layout(nodes, edges, 1000, 800)
        before = {k: (p.x, p.y) for k, p in result.positions.items()}

        touched = result.move_node("n2", 10, 20)

        assert [e.key for e in touched] == ["n1->n2"]
        assert (result.positions["n2"].x, result.positions["n2"].y) == (10, 20)
        assert touched[0].target.x == 10
        for node_id in ("n0", "n1"):
            assert (result.positions[node_id].x, result.positions[node_id].y) == before[node_id]

    def test_move_unknown_node(self):
        result = compute_layout(_nodes(1000), [], 1000, 800)
        with pytest.raises(KeyError):
            result.move_node("nope", 0, 0)


class TestLayoutCache:
    def test_reuses_result_for_same_inputs(self):
        cache = LayoutCache()
        nodes, edges = _nodes(1000, 2000), []
        first = cache.get(nodes, edges, 1000, 800)
        assert cache.get(nodes, edges, 1000, 800) is first

    def test_recomputes_on_new_inputs(self):
        cache = LayoutCache()
        nodes, edges = _nodes(1000, 2000), []
        first = cache.get(nodes, edges, 1000, 800)
        assert cache.get(nodes, edges, 1200, 800) is not first
        assert cache.get(list(nodes), edges, 1200, 800) is not first

    def test_clear(self):
        cache = LayoutCache()
        nodes, edges = _nodes(1000), []
        first = cache.get(nodes, edges, 1000, 800)
        cache.clear()
        assert cache.get(nodes, edges, 1000, 800) is not first


def test_layout_stats():
    nodes = _nodes(1000, 0, 91_000_000)
    edges = [Edge("n0", "n2", [Transition(91_000_000)])]
    result = compute_layout(nodes, edges, 1000, 800)
    stats = layout_stats(nodes, edges, result)
    assert stats.total_nodes == 3
    assert stats.total_edges == 1
    assert stats.session_count == 2
    assert stats.time_span == 90_999_000
    assert stats.has_timestamps
