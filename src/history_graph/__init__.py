"""Timeline layout and analysis for browsing-history graphs."""

from history_graph.analysis import ClusterHull, PathResult, PathTracer, compute_clusters
from history_graph.config import ClusterConfig, EvolutionConfig, LayoutConfig, Margins
from history_graph.evolution import EvolutionState, EvolutionStatus, EvolutionTimeline
from history_graph.graph import Edge, HistoryGraph, Node, Transition, build_graph
from history_graph.layout import LayoutCache, LayoutResult, LayoutStatus, compute_layout

__all__ = [
    "ClusterHull",
    "PathResult",
    "PathTracer",
    "compute_clusters",
    "ClusterConfig",
    "EvolutionConfig",
    "LayoutConfig",
    "Margins",
    "EvolutionState",
    "EvolutionStatus",
    "EvolutionTimeline",
    "Edge",
    "HistoryGraph",
    "Node",
    "Transition",
    "build_graph",
    "LayoutCache",
    "LayoutResult",
    "LayoutStatus",
    "compute_layout",
]
