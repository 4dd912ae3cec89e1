"""Derived analyses over a laid-out graph: navigation paths and tab clusters."""

from history_graph.analysis.clusters import (
    Cluster,
    ClusterHull,
    compute_clusters,
    convex_hull,
    expand_hull,
    point_in_polygon,
    polygon_area,
    polygon_centroid,
)
from history_graph.analysis.path import PathResult, PathSummary, PathTracer, summarize_path

__all__ = [
    "Cluster",
    "ClusterHull",
    "compute_clusters",
    "convex_hull",
    "expand_hull",
    "point_in_polygon",
    "polygon_area",
    "polygon_centroid",
    "PathResult",
    "PathSummary",
    "PathTracer",
    "summarize_path",
]
