"""Reconstruct the chain of navigations that led to a page."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from history_graph.graph.models import HYPERLINK, Edge, edge_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathResult:
    """Origin-to-target node sequence plus the edges walked to build it."""

    ordered_node_ids: tuple[str, ...] = ()
    edge_ids: frozenset[str] = frozenset()
    order_index: dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> PathResult:
        return cls()

    @property
    def target(self) -> str | None:
        return self.ordered_node_ids[-1] if self.ordered_node_ids else None

    @property
    def origin(self) -> str | None:
        return self.ordered_node_ids[0] if self.ordered_node_ids else None

    def __len__(self) -> int:
        return len(self.ordered_node_ids)

    def contains_node(self, node_id: str) -> bool:
        return node_id in self.order_index

    def contains_edge(self, source: str, target: str) -> bool:
        return edge_key(source, target) in self.edge_ids

    def order_of(self, node_id: str) -> int | None:
        """1-based rank of the node on the path."""
        return self.order_index.get(node_id)


@dataclass(frozen=True)
class PathSummary:
    node_count: int
    edge_count: int
    hyperlink_count: int
    chain_count: int
    elapsed_ms: int


class PathTracer:
    """Backward greedy walk over incoming edges.

    Each step follows the incoming edge whose earliest transition is oldest,
    taken to be the navigation that first brought the user to the page. Ties
    go to the edge listed first. The incoming-edge index is built once per
    edge set; every ``trace`` starts from scratch.
    """

    def __init__(self, edges: Sequence[Edge]):
        self._incoming: dict[str, list[Edge]] = {}
        for edge in edges:
            if edge.is_self_loop:
                continue
            self._incoming.setdefault(edge.target, []).append(edge)

    def incoming(self, node_id: str) -> list[Edge]:
        return list(self._incoming.get(node_id, []))

    def trace(self, target_id: str) -> PathResult:
        path: list[str] = []
        path_edges: set[str] = set()
        visited: set[str] = set()
        current = target_id

        while current not in visited:
            visited.add(current)
            path.append(current)

            incoming = self._incoming.get(current)
            if not incoming:
                break

            cause = min(incoming, key=lambda e: e.earliest_timestamp)
            if cause.source not in visited:
                path_edges.add(edge_key(cause.source, current))
            current = cause.source

        path.reverse()
        logger.debug("Traced %s-node path to %s", len(path), target_id)
        return PathResult(
            ordered_node_ids=tuple(path),
            edge_ids=frozenset(path_edges),
            order_index={node_id: i for i, node_id in enumerate(path, start=1)},
        )


def summarize_path(result: PathResult, edges: Sequence[Edge]) -> PathSummary:
    """Count navigation kinds along the path and the time it spans."""
    hyperlinks = chains = 0
    timestamps: list[int] = []
    for edge in edges:
        if edge.key not in result.edge_ids:
            continue
        for transition in edge.transitions:
            timestamps.append(transition.timestamp)
            if transition.kind == HYPERLINK:
                hyperlinks += 1
            else:
                chains += 1
    return PathSummary(
        node_count=len(result.ordered_node_ids),
        edge_count=len(result.edge_ids),
        hyperlink_count=hyperlinks,
        chain_count=chains,
        elapsed_ms=max(timestamps) - min(timestamps) if timestamps else 0,
    )
