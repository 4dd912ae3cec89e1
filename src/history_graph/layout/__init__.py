"""Timeline layout: time index, session grouping and position assignment."""

from history_graph.layout.engine import LayoutCache, compute_layout, fallback_layout, layout_stats
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
    build_timeline,
)

__all__ = [
    "LayoutCache",
    "compute_layout",
    "fallback_layout",
    "layout_stats",
    "LayoutBounds",
    "LayoutResult",
    "LayoutStats",
    "LayoutStatus",
    "Position",
    "Session",
    "SimulationEdge",
    "SimulationNode",
    "group_into_sessions",
    "FlowBucket",
    "FlowTimelineConfig",
    "SessionBand",
    "StackedTimelineConfig",
    "TimeIndex",
    "TimelineConfig",
    "build_timeline",
]
