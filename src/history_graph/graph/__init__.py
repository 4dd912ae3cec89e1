"""Browsing graph model: nodes, edges, visit parsing and graph building."""

from history_graph.graph.builder import build_graph
from history_graph.graph.models import (
    CHAIN,
    HYPERLINK,
    Edge,
    HistoryGraph,
    Node,
    ParsedVisit,
    Transition,
    edge_key,
)
from history_graph.graph.parser import normalize_url, parse_visit, parse_visit_time

__all__ = [
    "CHAIN",
    "HYPERLINK",
    "Edge",
    "HistoryGraph",
    "Node",
    "ParsedVisit",
    "Transition",
    "edge_key",
    "build_graph",
    "normalize_url",
    "parse_visit",
    "parse_visit_time",
]
