"""Data models for the browsing graph."""

from __future__ import annotations

from dataclasses import dataclass, field

from history_graph.exceptions import InvalidGraphError

CHAIN = "chain"
HYPERLINK = "hyperlink"
TRANSITION_KINDS = (CHAIN, HYPERLINK)


def edge_key(source: str, target: str) -> str:
    """Stable identifier for the edge between two nodes."""
    return f"{source}->{target}"


@dataclass
class Node:
    """A visited page. Repeat visits to the same normalized URL share one node."""

    id: str
    url: str = ""
    timestamp: int = 0  # ms since epoch, 0 = unknown
    tab_id: int | None = None
    time_spent: int = 0
    active_time: int = 0
    title: str = ""
    domain: str = ""
    is_active: bool = False

    @property
    def has_timestamp(self) -> bool:
        return self.timestamp > 0

    @classmethod
    def from_dict(cls, raw: dict) -> Node:
        """Build a node from a collaborator record (camelCase or snake_case keys)."""
        if not isinstance(raw, dict):
            raise InvalidGraphError(f"Node record must be a dict, got {type(raw).__name__}")
        node_id = raw.get("id")
        if not node_id:
            raise InvalidGraphError("Node record has no id")
        timestamp = _first(raw, "timestamp", "visitTimestamp", "visit_timestamp", "lastVisited")
        tab_id = _first(raw, "tab_id", "tabId")
        try:
            return cls(
                id=str(node_id),
                url=str(raw.get("url") or ""),
                timestamp=int(timestamp or 0),
                tab_id=int(tab_id) if tab_id is not None else None,
                time_spent=int(_first(raw, "time_spent", "timeSpent", "totalTime") or 0),
                active_time=int(_first(raw, "active_time", "activeTime") or 0),
                title=str(raw.get("title") or ""),
                domain=str(raw.get("domain") or ""),
                is_active=bool(_first(raw, "is_active", "isActive")),
            )
        except (TypeError, ValueError) as e:
            raise InvalidGraphError(f"Malformed node record {node_id!r}: {e}") from e


@dataclass(frozen=True)
class Transition:
    """One observed navigation between two pages."""

    timestamp: int
    kind: str = CHAIN


@dataclass
class Edge:
    """All transitions observed from ``source`` to ``target``."""

    source: str
    target: str
    transitions: list[Transition] = field(default_factory=list)

    @property
    def key(self) -> str:
        return edge_key(self.source, self.target)

    @property
    def weight(self) -> int:
        return len(self.transitions)

    @property
    def earliest_timestamp(self) -> float:
        """Earliest known transition time, or infinity when none was recorded."""
        return min(
            (t.timestamp for t in self.transitions if t.timestamp > 0),
            default=float("inf"),
        )

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    @classmethod
    def from_dict(cls, raw: dict) -> Edge:
        if not isinstance(raw, dict):
            raise InvalidGraphError(f"Edge record must be a dict, got {type(raw).__name__}")
        source, target = raw.get("source"), raw.get("target")
        if not source or not target:
            raise InvalidGraphError("Edge record needs both source and target")
        transitions = []
        for item in raw.get("transitions") or []:
            kind = _first(item, "kind", "sourceType", "source_type") or CHAIN
            try:
                transitions.append(Transition(timestamp=int(item["timestamp"]), kind=str(kind)))
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidGraphError(
                    f"Malformed transition on edge {edge_key(source, target)}: {e}"
                ) from e
        return cls(source=str(source), target=str(target), transitions=transitions)


@dataclass
class HistoryGraph:
    """Nodes and edges handed to the layout and analysis passes."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def node_map(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    @classmethod
    def from_dict(cls, raw: dict) -> HistoryGraph:
        nodes = [Node.from_dict(n) for n in raw.get("nodes") or []]
        edges = [Edge.from_dict(e) for e in raw.get("edges") or raw.get("links") or []]
        return cls(nodes=nodes, edges=edges)


def _first(raw: dict, *keys):
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


@dataclass
class ParsedVisit:
    """A normalized browser visit, ready to be folded into the graph."""

    url: str
    normalized_url: str
    domain: str
    visited_at: int  # ms since epoch
    title: str = ""
    tab_id: int | None = None
    duration: int = 0
    is_active: bool = False
    creation_mode: str = CHAIN
    source_url: str | None = None
