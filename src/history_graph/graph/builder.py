"""Fold chronological browser visits into a node/edge graph."""

from __future__ import annotations

import logging
from typing import Iterable

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
from history_graph.graph.parser import normalize_url, parse_visit

logger = logging.getLogger(__name__)


def build_graph(
    visits: Iterable[dict | ParsedVisit],
    excluded_domains: list[str] | None = None,
) -> HistoryGraph:
    """Build the navigation graph from raw or already-parsed visits.

    Chain visits are linked from the previous visit in the same tab; hyperlink
    visits are linked from the page named by ``source_url`` if it was seen
    earlier.
    """
    parsed: list[ParsedVisit] = []
    dropped = 0
    for raw in visits:
        visit = raw if isinstance(raw, ParsedVisit) else parse_visit(raw, excluded_domains)
        if visit is None:
            dropped += 1
            continue
        parsed.append(visit)
    if dropped:
        logger.warning("Dropped %s visit(s) that could not be parsed", dropped)

    parsed.sort(key=lambda v: v.visited_at)

    nodes: dict[str, Node] = {}
    edges: dict[str, Edge] = {}
    last_in_tab: dict[int, str] = {}

    for visit in parsed:
        node_id = visit.normalized_url
        node = nodes.get(node_id)
        if node is None:
            node = Node(
                id=node_id,
                url=visit.normalized_url,
                timestamp=visit.visited_at,
                tab_id=visit.tab_id,
                title=visit.title or visit.url,
                domain=visit.domain,
            )
            nodes[node_id] = node
        _accumulate(node, visit)

        source_id = _source_for(visit, nodes, last_in_tab)
        if source_id and source_id != node_id:
            key = edge_key(source_id, node_id)
            edge = edges.get(key)
            if edge is None:
                edge = edges[key] = Edge(source=source_id, target=node_id)
            edge.transitions.append(
                Transition(timestamp=visit.visited_at, kind=visit.creation_mode)
            )

        if visit.tab_id is not None:
            last_in_tab[visit.tab_id] = node_id

    logger.debug("Built graph with %s nodes and %s edges", len(nodes), len(edges))
    return HistoryGraph(nodes=list(nodes.values()), edges=list(edges.values()))


def _accumulate(node: Node, visit: ParsedVisit) -> None:
    node.time_spent += visit.duration
    if visit.is_active:
        node.active_time += visit.duration
        node.is_active = True
    if node.tab_id is None:
        node.tab_id = visit.tab_id


def _source_for(
    visit: ParsedVisit,
    nodes: dict[str, Node],
    last_in_tab: dict[int, str],
) -> str | None:
    if visit.creation_mode == HYPERLINK and visit.source_url:
        source_id = normalize_url(visit.source_url)
        return source_id if source_id in nodes else None
    if visit.creation_mode == CHAIN and visit.tab_id is not None:
        return last_in_tab.get(visit.tab_id)
    return None
