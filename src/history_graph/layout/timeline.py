"""Timestamp extent of a node set and the timestamp <-> pixel mappings."""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass, field
from typing import Sequence

from history_graph.config import HORIZONTAL, VERTICAL
from history_graph.graph.models import Node
from history_graph.layout.models import LayoutBounds


@dataclass
class TimelineConfig:
    """Linear mapping between visit time and canvas coordinates.

    When there is no time range (no timestamps, or every event at the same
    instant) the forward mapping returns the middle of the drawing area and
    the inverse returns ``min_time``.
    """

    min_time: int
    max_time: int
    bounds: LayoutBounds
    orientation: str = VERTICAL

    @property
    def time_range(self) -> int:
        return self.max_time - self.min_time

    @property
    def is_degenerate(self) -> bool:
        return self.time_range == 0

    def time_to_x(self, timestamp: float) -> float:
        if self.is_degenerate:
            return self.bounds.center_x
        progress = (timestamp - self.min_time) / self.time_range
        return self.bounds.margins.left + progress * self.bounds.available_width

    def time_to_y(self, timestamp: float) -> float:
        if self.is_degenerate:
            return self.bounds.center_y
        progress = (timestamp - self.min_time) / self.time_range
        return self.bounds.margins.top + progress * self.bounds.available_height

    def x_to_time(self, x: float) -> float:
        if self.is_degenerate or self.bounds.available_width == 0:
            return self.min_time
        progress = (x - self.bounds.margins.left) / self.bounds.available_width
        return self.min_time + progress * self.time_range

    def y_to_time(self, y: float) -> float:
        if self.is_degenerate or self.bounds.available_height == 0:
            return self.min_time
        progress = (y - self.bounds.margins.top) / self.bounds.available_height
        return self.min_time + progress * self.time_range

    def time_to_pixel(self, timestamp: float) -> float:
        """Coordinate along the time axis (y when vertical, x when horizontal)."""
        if self.orientation == HORIZONTAL:
            return self.time_to_x(timestamp)
        return self.time_to_y(timestamp)

    def pixel_to_time(self, coord: float) -> float:
        if self.orientation == HORIZONTAL:
            return self.x_to_time(coord)
        return self.y_to_time(coord)


@dataclass(frozen=True)
class SessionBand:
    """Vertical extent occupied by one session in stacked mode."""

    start_time: int
    end_time: int
    top: float
    bottom: float


@dataclass
class StackedTimelineConfig(TimelineConfig):
    """Time axis that runs through the session bands in stacked mode.

    Inside a band time is interpolated between its top and bottom row; the
    idle gaps between sessions are interpolated between neighbouring bands.
    """

    bands: list[SessionBand] = field(default_factory=list)

    def _anchors(self) -> tuple[list[float], list[float]]:
        times: list[float] = []
        coords: list[float] = []
        for band in self.bands:
            times.extend((band.start_time, band.end_time))
            coords.extend((band.top, band.bottom))
        return times, coords

    def time_to_y(self, timestamp: float) -> float:
        if not self.bands:
            return super().time_to_y(timestamp)
        times, coords = self._anchors()
        return _interpolate(times, coords, timestamp)

    def y_to_time(self, y: float) -> float:
        if not self.bands:
            return super().y_to_time(y)
        times, coords = self._anchors()
        return _interpolate(coords, times, y)


@dataclass
class FlowBucket:
    """An equal-duration time slice in flow mode and the strip it occupies."""

    index: int
    start_time: float
    end_time: float
    start_x: float
    end_x: float
    node_ids: list[str] = field(default_factory=list)

    @property
    def center_x(self) -> float:
        return (self.start_x + self.end_x) / 2

    @property
    def width(self) -> float:
        return self.end_x - self.start_x

    def shift(self, dx: float) -> None:
        self.start_x += dx
        self.end_x += dx


@dataclass
class FlowTimelineConfig(TimelineConfig):
    """Time axis for flow mode: every timestamp maps to its bucket's centre."""

    buckets: list[FlowBucket] = field(default_factory=list)
    bucket_duration: float = 0
    content_width: float = 0
    centering_offset: float = 0

    def bucket_index(self, timestamp: float) -> int:
        if not self.buckets:
            return 0
        if self.bucket_duration <= 0:
            return 0
        index = math.floor((timestamp - self.min_time) / self.bucket_duration)
        return max(0, min(len(self.buckets) - 1, index))

    def time_to_x(self, timestamp: float) -> float:
        if not self.buckets:
            return super().time_to_x(timestamp)
        return self.buckets[self.bucket_index(timestamp)].center_x

    def x_to_time(self, x: float) -> float:
        if not self.buckets:
            return super().x_to_time(x)
        starts = [b.start_x for b in self.buckets]
        index = max(0, bisect.bisect_right(starts, x) - 1)
        bucket = self.buckets[index]
        if bucket.width <= 0:
            return bucket.start_time
        progress = min(1.0, max(0.0, (x - bucket.start_x) / bucket.width))
        return bucket.start_time + progress * (bucket.end_time - bucket.start_time)


@dataclass
class TimeIndex:
    """Nodes split into dated (ascending) and undated (input order)."""

    dated: list[Node]
    undated: list[Node]

    @classmethod
    def from_nodes(cls, nodes: Sequence[Node]) -> TimeIndex:
        dated = sorted((n for n in nodes if n.timestamp > 0), key=lambda n: n.timestamp)
        undated = [n for n in nodes if n.timestamp <= 0]
        return cls(dated=dated, undated=undated)

    @property
    def min_time(self) -> int:
        return self.dated[0].timestamp if self.dated else 0

    @property
    def max_time(self) -> int:
        return self.dated[-1].timestamp if self.dated else 0

    @property
    def time_range(self) -> int:
        return self.max_time - self.min_time

    def timeline(self, bounds: LayoutBounds, orientation: str = VERTICAL) -> TimelineConfig:
        return TimelineConfig(
            min_time=self.min_time,
            max_time=self.max_time,
            bounds=bounds,
            orientation=orientation,
        )


def build_timeline(
    nodes: Sequence[Node],
    bounds: LayoutBounds,
    orientation: str = VERTICAL,
) -> TimelineConfig:
    return TimeIndex.from_nodes(nodes).timeline(bounds, orientation)


def _interpolate(xs: list[float], ys: list[float], value: float) -> float:
    """Piecewise-linear lookup through non-decreasing ``xs``, clamped at both ends."""
    if value <= xs[0]:
        return ys[0]
    if value >= xs[-1]:
        return ys[-1]
    i = bisect.bisect_right(xs, value)
    x0, x1 = xs[i - 1], xs[i]
    y0, y1 = ys[i - 1], ys[i]
    if x1 == x0:
        return y0
    return y0 + (value - x0) / (x1 - x0) * (y1 - y0)
