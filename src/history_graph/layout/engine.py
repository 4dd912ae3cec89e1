"""Timeline layout: assign a non-overlapping position to every node.

Two strategies share the same inputs. Stacked mode (``vertical``) gives each
session its own horizontal band, top to bottom. Flow mode (``horizontal``)
slices the whole time span into equal-duration buckets laid out left to right,
each as wide as its columns of nodes require.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

from history_graph.config import (
    FALLBACK_SPACING,
    FLOW_AXIS_OFFSET,
    FLOW_COLUMN_SPACING,
    FLOW_LEAD_IN,
    FLOW_ROW_SPACING,
    HORIZONTAL,
    MAX_NODES_PER_ROW,
    NODE_GAP,
    NODE_SIZE,
    VERTICAL,
    LayoutConfig,
)
from history_graph.exceptions import InvalidGraphError, LayoutError
from history_graph.graph.models import Edge, Node
from history_graph.layout.models import (
    LayoutBounds,
    LayoutResult,
    LayoutStats,
    LayoutStatus,
    Position,
    Session,
    SimulationEdge,
    SimulationNode,
)
from history_graph.layout.sessions import group_into_sessions
from history_graph.layout.timeline import (
    FlowBucket,
    FlowTimelineConfig,
    SessionBand,
    StackedTimelineConfig,
    TimeIndex,
    TimelineConfig,
)

logger = logging.getLogger(__name__)


def compute_layout(
    nodes: Iterable[Node | dict],
    edges: Iterable[Edge | dict],
    width: float,
    height: float,
    config: LayoutConfig | None = None,
) -> LayoutResult:
    """Lay out the graph on a ``width`` x ``height`` canvas.

    Returns an empty, not-ready result for empty input or a canvas that has not
    been sized yet. Any failure while positioning is logged and answered with
    a centered grid, so every node always receives a position. Only malformed
    input records raise (``InvalidGraphError``).
    """
    config = config or LayoutConfig()
    node_list = _coerce_nodes(nodes)
    edge_list = _coerce_edges(edges)

    if not node_list:
        logger.info("No nodes to lay out")
        return _empty_result(width, height, config, LayoutStatus.EMPTY_INPUT)
    if width <= 0 or height <= 0:
        logger.info("Canvas not sized yet (%sx%s), skipping layout", width, height)
        return _empty_result(0, 0, config, LayoutStatus.INVALID_DIMENSIONS)

    bounds = LayoutBounds.from_dimensions(width, height, config.margins)
    try:
        result = _timeline_layout(node_list, edge_list, bounds, config)
    except Exception as e:
        logger.warning("Layout calculation failed, using fallback grid: %s", e)
        return fallback_layout(node_list, edge_list, width, height, config)

    if len(result.positions) != len(node_list):
        logger.warning(
            "Layout positioned %s of %s nodes, using fallback grid",
            len(result.positions),
            len(node_list),
        )
        return fallback_layout(node_list, edge_list, width, height, config)
    return result


def fallback_layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    width: float,
    height: float,
    config: LayoutConfig,
) -> LayoutResult:
    """Plain row-major grid centered on the canvas."""
    bounds = LayoutBounds.from_dimensions(width, height, config.margins)
    per_row = max(1, min(config.max_nodes_per_row, MAX_NODES_PER_ROW))
    rows = math.ceil(len(nodes) / per_row)
    center_x, center_y = width / 2, height / 2

    positions: dict[str, Position] = {}
    for i, node in enumerate(nodes):
        row, col = divmod(i, per_row)
        positions[node.id] = Position(
            x=center_x - (per_row - 1) * FALLBACK_SPACING / 2 + col * FALLBACK_SPACING,
            y=center_y - (rows - 1) * FALLBACK_SPACING / 2 + row * FALLBACK_SPACING,
        )

    index = TimeIndex.from_nodes(nodes)
    session = Session(
        id="fallback-session",
        nodes=list(nodes),
        start_time=index.min_time,
        end_time=index.max_time,
    )
    sim_nodes = _simulation_nodes(nodes, positions)
    return LayoutResult(
        positions=positions,
        timeline=index.timeline(bounds, config.orientation),
        sessions=[session],
        bounds=bounds,
        simulation_nodes=sim_nodes,
        simulation_edges=_simulation_edges(edges, sim_nodes),
        config=config,
        status=LayoutStatus.FALLBACK,
    )


class LayoutCache:
    """Reuses the previous layout while its inputs are unchanged.

    Node and edge lists are compared by identity: hand over a new list when
    the data changes. Canvas size and config are compared by value.
    """

    def __init__(self) -> None:
        self._key: tuple | None = None
        self._inputs: tuple | None = None
        self._result: LayoutResult | None = None

    def get(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        width: float,
        height: float,
        config: LayoutConfig | None = None,
    ) -> LayoutResult:
        config = config or LayoutConfig()
        key = (id(nodes), id(edges), width, height, config)
        if self._result is not None and key == self._key:
            return self._result
        result = compute_layout(nodes, edges, width, height, config)
        # Keep the inputs alive so their ids cannot be reused by new objects.
        self._key, self._inputs, self._result = key, (nodes, edges), result
        return result

    def clear(self) -> None:
        self._key = self._inputs = self._result = None


def layout_stats(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    result: LayoutResult,
) -> LayoutStats:
    index = TimeIndex.from_nodes(nodes)
    return LayoutStats(
        total_nodes=len(nodes),
        total_edges=len(edges),
        session_count=len(result.sessions),
        time_span=index.time_range,
        has_timestamps=bool(index.dated),
    )


def _timeline_layout(
    nodes: list[Node],
    edges: list[Edge],
    bounds: LayoutBounds,
    config: LayoutConfig,
) -> LayoutResult:
    index = TimeIndex.from_nodes(nodes)
    sessions = group_into_sessions(nodes, config.session_gap_threshold)

    if config.orientation == VERTICAL:
        positions, timeline = _stacked_positions(index, sessions, bounds, config)
    else:
        positions, timeline = _flow_positions(index, bounds, config)

    sim_nodes = _simulation_nodes(nodes, positions)
    logger.debug(
        "Laid out %s nodes in %s session(s), orientation=%s",
        len(positions),
        len(sessions),
        config.orientation,
    )
    return LayoutResult(
        positions=positions,
        timeline=timeline,
        sessions=sessions,
        bounds=bounds,
        simulation_nodes=sim_nodes,
        simulation_edges=_simulation_edges(edges, sim_nodes),
        config=config,
    )


def _stacked_positions(
    index: TimeIndex,
    sessions: list[Session],
    bounds: LayoutBounds,
    config: LayoutConfig,
) -> tuple[dict[str, Position], TimelineConfig]:
    usable_width = bounds.available_width - NODE_SIZE
    if usable_width <= 0:
        raise LayoutError(f"Drawing area too narrow for stacked layout ({bounds.available_width}px)")

    grid = NODE_SIZE + NODE_GAP
    fits_per_row = max(1, math.floor(usable_width / grid))
    left = bounds.margins.left
    positions: dict[str, Position] = {}
    bands: list[SessionBand] = []
    top = bounds.margins.top

    for session in sessions:
        members = session.nodes
        if len(members) == 1:
            # A lone visit hugs the left edge instead of floating mid-canvas.
            positions[members[0].id] = Position(left + NODE_SIZE, top)
            rows = 1
        else:
            per_row = min(fits_per_row, config.max_nodes_per_row, len(members))
            row_start = left + NODE_SIZE + (usable_width - (per_row - 1) * grid) / 2
            for i, node in enumerate(members):
                row, col = divmod(i, per_row)
                positions[node.id] = Position(row_start + col * grid, top + row * grid)
            rows = math.ceil(len(members) / per_row)

        bottom = top + (rows - 1) * grid
        # A single-row session still spans time, so its axis band needs height.
        axis_bottom = bottom
        if session.end_time > session.start_time:
            axis_bottom = max(bottom, top + NODE_SIZE)
        bands.append(SessionBand(session.start_time, session.end_time, top, axis_bottom))
        top = bottom + config.session_spacing

    for i, node in enumerate(index.undated):
        positions[node.id] = Position(left, top + i * config.node_spacing)

    timeline = StackedTimelineConfig(
        min_time=index.min_time,
        max_time=index.max_time,
        bounds=bounds,
        orientation=VERTICAL,
        bands=bands,
    )
    return positions, timeline


def _flow_positions(
    index: TimeIndex,
    bounds: LayoutBounds,
    config: LayoutConfig,
) -> tuple[dict[str, Position], TimelineConfig]:
    positions: dict[str, Position] = {}
    lead_x = bounds.margins.left + FLOW_LEAD_IN
    timeline = FlowTimelineConfig(
        min_time=index.min_time,
        max_time=index.max_time,
        bounds=bounds,
        orientation=HORIZONTAL,
    )

    if index.dated:
        bucket_count = math.ceil(len(index.dated) / config.target_bucket_density)
        if index.time_range == 0:
            bucket_count = 1
        duration = index.time_range / bucket_count
        groups: list[list[Node]] = [[] for _ in range(bucket_count)]
        for node in index.dated:
            slot = 0
            if duration > 0:
                slot = math.floor((node.timestamp - index.min_time) / duration)
            groups[max(0, min(bucket_count - 1, slot))].append(node)

        per_column = config.max_nodes_per_column
        x = lead_x
        buckets: list[FlowBucket] = []
        for i, members in enumerate(groups):
            columns = math.ceil(len(members) / per_column)
            width = max(config.min_bucket_width, (columns + 1) * FLOW_COLUMN_SPACING)
            bucket = FlowBucket(
                index=i,
                start_time=index.min_time + i * duration,
                end_time=index.min_time + (i + 1) * duration,
                start_x=x,
                end_x=x + width,
                node_ids=[n.id for n in members],
            )
            for j, node in enumerate(members):
                column, row = divmod(j, per_column)
                positions[node.id] = Position(
                    bucket.center_x + (column - (columns - 1) / 2) * FLOW_COLUMN_SPACING,
                    bounds.margins.top + FLOW_AXIS_OFFSET + row * FLOW_ROW_SPACING,
                )
            buckets.append(bucket)
            x += width

        content_width = x + bounds.margins.right + FLOW_LEAD_IN
        offset = max(0.0, (bounds.width - content_width) / 2)
        if offset:
            for bucket in buckets:
                bucket.shift(offset)
            for position in positions.values():
                position.x += offset

        timeline.buckets = buckets
        timeline.bucket_duration = duration
        timeline.content_width = content_width
        timeline.centering_offset = offset
        lane_x = buckets[-1].end_x + config.node_spacing
        logger.debug("Flow layout used %s bucket(s), content width %s", bucket_count, content_width)
    else:
        lane_x = lead_x

    for i, node in enumerate(index.undated):
        positions[node.id] = Position(lane_x + i * config.node_spacing, bounds.margins.top)

    return positions, timeline


def _simulation_nodes(nodes: Sequence[Node], positions: dict[str, Position]) -> list[SimulationNode]:
    sim_nodes = []
    for node in nodes:
        pos = positions.get(node.id) or Position(0, 0)
        sim_nodes.append(SimulationNode(node=node, x=pos.x, y=pos.y))
    return sim_nodes


def _simulation_edges(edges: Sequence[Edge], sim_nodes: list[SimulationNode]) -> list[SimulationEdge]:
    """Resolve edge endpoints; edges with a missing endpoint or a self-loop are dropped."""
    by_id = {sim.id: sim for sim in sim_nodes}
    resolved = []
    for edge in edges:
        source, target = by_id.get(edge.source), by_id.get(edge.target)
        if source is None or target is None or edge.is_self_loop:
            continue
        resolved.append(SimulationEdge(source=source, target=target, edge=edge))
    return resolved


def _empty_result(width: float, height: float, config: LayoutConfig, status: LayoutStatus) -> LayoutResult:
    bounds = LayoutBounds.from_dimensions(width, height, config.margins)
    return LayoutResult(
        positions={},
        timeline=TimelineConfig(min_time=0, max_time=0, bounds=bounds, orientation=config.orientation),
        sessions=[],
        bounds=bounds,
        simulation_nodes=[],
        simulation_edges=[],
        config=config,
        status=status,
    )


def _coerce_nodes(nodes: Iterable[Node | dict] | None) -> list[Node]:
    result: list[Node] = []
    seen: set[str] = set()
    duplicates = 0
    for item in nodes or []:
        node = Node.from_dict(item) if isinstance(item, dict) else item
        if not isinstance(node, Node):
            raise InvalidGraphError(f"Expected Node, got {type(item).__name__}")
        if node.id in seen:
            duplicates += 1
            continue
        seen.add(node.id)
        result.append(node)
    if duplicates:
        logger.warning("Ignored %s duplicate node id(s)", duplicates)
    return result


def _coerce_edges(edges: Iterable[Edge | dict] | None) -> list[Edge]:
    result: list[Edge] = []
    for item in edges or []:
        edge = Edge.from_dict(item) if isinstance(item, dict) else item
        if not isinstance(edge, Edge):
            raise InvalidGraphError(f"Expected Edge, got {type(item).__name__}")
        result.append(edge)
    return result
