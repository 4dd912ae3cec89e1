"""Group pages by browser tab and outline each group with a padded hull."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence

from history_graph.config import ClusterConfig
from history_graph.formatting import format_compact_duration
from history_graph.graph.models import Node
from history_graph.layout.models import Position

logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass
class Cluster:
    tab_id: int
    members: list[Node]
    hull: list[Point]
    centroid: Point
    label_position: Point
    total_time: int
    is_active: bool

    @property
    def label(self) -> str:
        return format_compact_duration(self.total_time)


def convex_hull(points: Sequence[Point]) -> list[Point]:
    """Counter-clockwise convex hull (monotone chain), collinear points dropped."""
    unique = sorted(set(points))
    if len(unique) < 3:
        return unique

    def build(sequence):
        chain: list[Point] = []
        for p in sequence:
            while len(chain) >= 2 and _cross(chain[-2], chain[-1], p) <= 0:
                chain.pop()
            chain.append(p)
        return chain

    lower = build(unique)
    upper = build(reversed(unique))
    return lower[:-1] + upper[:-1]


def polygon_area(ring: Sequence[Point]) -> float:
    """Absolute shoelace area."""
    total = 0.0
    for (x0, y0), (x1, y1) in zip(ring, list(ring[1:]) + list(ring[:1])):
        total += x0 * y1 - x1 * y0
    return abs(total) / 2


def polygon_centroid(ring: Sequence[Point]) -> Point:
    """Area centroid; falls back to the vertex mean for degenerate rings."""
    if not ring:
        raise ValueError("Centroid of an empty polygon")
    signed = 0.0
    cx = cy = 0.0
    for (x0, y0), (x1, y1) in zip(ring, list(ring[1:]) + list(ring[:1])):
        cross = x0 * y1 - x1 * y0
        signed += cross
        cx += (x0 + x1) * cross
        cy += (y0 + y1) * cross
    if signed == 0:
        return (
            sum(p[0] for p in ring) / len(ring),
            sum(p[1] for p in ring) / len(ring),
        )
    return cx / (3 * signed), cy / (3 * signed)


def expand_hull(hull: Sequence[Point], padding: float) -> list[Point]:
    """Push every vertex ``padding`` pixels further from the centroid."""
    if not hull:
        return []
    cx, cy = polygon_centroid(hull)
    expanded = []
    for x, y in hull:
        dx, dy = x - cx, y - cy
        distance = math.hypot(dx, dy)
        if distance == 0:
            expanded.append((x, y))
            continue
        scale = (distance + padding) / distance
        expanded.append((cx + dx * scale, cy + dy * scale))
    return expanded


def point_in_polygon(point: Point, ring: Sequence[Point], tolerance: float = 1e-9) -> bool:
    """True when ``point`` lies inside or on the boundary of a convex-or-star ring."""
    x, y = point
    n = len(ring)
    inside = False
    for i in range(n):
        (x0, y0), (x1, y1) = ring[i], ring[(i + 1) % n]
        if _on_segment(point, (x0, y0), (x1, y1), tolerance):
            return True
        if (y0 > y) != (y1 > y):
            crossing = x0 + (y - y0) * (x1 - x0) / (y1 - y0)
            if x < crossing:
                inside = not inside
    return inside


class ClusterHull:
    """Tab clusters for one node set.

    Membership is fixed at construction; ``clusters`` only recomputes the
    geometry, so it can be called after every drag.
    """

    def __init__(self, nodes: Sequence[Node], config: ClusterConfig | None = None):
        self.config = config or ClusterConfig()
        groups: dict[int, list[Node]] = {}
        for node in nodes:
            if node.tab_id is None:
                continue
            groups.setdefault(node.tab_id, []).append(node)
        self.groups = {
            tab_id: members
            for tab_id, members in groups.items()
            if len(members) >= self.config.min_members
        }
        logger.debug(
            "%s of %s tab group(s) large enough to outline", len(self.groups), len(groups)
        )

    def clusters(self, positions: Mapping[str, Position]) -> list[Cluster]:
        result = []
        for tab_id, members in self.groups.items():
            cluster = self._build(tab_id, members, positions)
            if cluster is not None:
                result.append(cluster)
        return result

    def _build(
        self,
        tab_id: int,
        members: list[Node],
        positions: Mapping[str, Position],
    ) -> Cluster | None:
        points = [
            (positions[n.id].x, positions[n.id].y) for n in members if n.id in positions
        ]
        if len(points) < self.config.min_members:
            return None
        hull = expand_hull(convex_hull(points), self.config.padding)
        cx, cy = polygon_centroid(hull)
        return Cluster(
            tab_id=tab_id,
            members=list(members),
            hull=hull,
            centroid=(cx, cy),
            label_position=(cx, cy - self.config.label_offset),
            total_time=sum(n.time_spent for n in members),
            is_active=any(n.is_active for n in members),
        )


def compute_clusters(
    nodes: Sequence[Node],
    positions: Mapping[str, Position],
    config: ClusterConfig | None = None,
) -> list[Cluster]:
    return ClusterHull(nodes, config).clusters(positions)


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def _on_segment(p: Point, a: Point, b: Point, tolerance: float) -> bool:
    if abs(_cross(a, b, p)) > tolerance * max(1.0, math.dist(a, b)):
        return False
    return (
        min(a[0], b[0]) - tolerance <= p[0] <= max(a[0], b[0]) + tolerance
        and min(a[1], b[1]) - tolerance <= p[1] <= max(a[1], b[1]) + tolerance
    )
