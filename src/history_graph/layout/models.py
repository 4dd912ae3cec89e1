"""Data models produced by a layout pass."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from history_graph.config import LayoutConfig, Margins
from history_graph.graph.models import Edge, Node, Transition

if TYPE_CHECKING:
    from history_graph.layout.timeline import TimelineConfig


@dataclass
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class LayoutBounds:
    """Canvas size together with the area left inside the margins."""

    width: float
    height: float
    margins: Margins
    available_width: float
    available_height: float

    @classmethod
    def from_dimensions(cls, width: float, height: float, margins: Margins) -> LayoutBounds:
        return cls(
            width=width,
            height=height,
            margins=margins,
            available_width=width - margins.left - margins.right,
            available_height=height - margins.top - margins.bottom,
        )

    @property
    def center_x(self) -> float:
        return self.margins.left + self.available_width / 2

    @property
    def center_y(self) -> float:
        return self.margins.top + self.available_height / 2


@dataclass
class Session:
    """A burst of visits with no idle gap longer than the threshold."""

    id: str
    nodes: list[Node]
    start_time: int
    end_time: int

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    @property
    def node_count(self) -> int:
        return len(self.nodes)


@dataclass
class SimulationNode:
    """A node with its resolved position, ready for drawing."""

    node: Node
    x: float
    y: float

    @property
    def id(self) -> str:
        return self.node.id


@dataclass
class SimulationEdge:
    """An edge whose endpoints are resolved to positioned nodes."""

    source: SimulationNode
    target: SimulationNode
    edge: Edge

    @property
    def key(self) -> str:
        return self.edge.key

    @property
    def weight(self) -> int:
        return self.edge.weight

    @property
    def transitions(self) -> list[Transition]:
        return self.edge.transitions


class LayoutStatus(enum.Enum):
    OK = "ok"
    EMPTY_INPUT = "empty_input"
    INVALID_DIMENSIONS = "invalid_dimensions"
    FALLBACK = "fallback"


@dataclass
class LayoutResult:
    """Everything the rendering surface needs for one layout pass."""

    positions: dict[str, Position]
    timeline: TimelineConfig
    sessions: list[Session]
    bounds: LayoutBounds
    simulation_nodes: list[SimulationNode]
    simulation_edges: list[SimulationEdge]
    config: LayoutConfig
    status: LayoutStatus = LayoutStatus.OK
    _edges_by_node: dict[str, list[SimulationEdge]] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @property
    def is_ready(self) -> bool:
        """False while the caller should wait for data or a sized canvas."""
        return self.status in (LayoutStatus.OK, LayoutStatus.FALLBACK) and bool(self.positions)

    def position_of(self, node_id: str) -> Position | None:
        return self.positions.get(node_id)

    def edges_touching(self, node_id: str) -> list[SimulationEdge]:
        if self._edges_by_node is None:
            index: dict[str, list[SimulationEdge]] = {}
            for sim_edge in self.simulation_edges:
                index.setdefault(sim_edge.source.id, []).append(sim_edge)
                index.setdefault(sim_edge.target.id, []).append(sim_edge)
            self._edges_by_node = index
        return self._edges_by_node.get(node_id, [])

    def move_node(self, node_id: str, x: float, y: float) -> list[SimulationEdge]:
        """Reposition one node in place (drag) and return the edges to redraw.

        Sessions, the timeline and every other position are left untouched.
        """
        position = self.positions.get(node_id)
        if position is None:
            raise KeyError(node_id)
        position.x, position.y = x, y
        for sim_node in self.simulation_nodes:
            if sim_node.id == node_id:
                sim_node.x, sim_node.y = x, y
                break
        return self.edges_touching(node_id)


@dataclass(frozen=True)
class LayoutStats:
    total_nodes: int
    total_edges: int
    session_count: int
    time_span: int
    has_timestamps: bool
