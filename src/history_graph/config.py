"""Layout, cluster and evolution configuration with defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace

VERTICAL = "vertical"
HORIZONTAL = "horizontal"
ORIENTATIONS = (VERTICAL, HORIZONTAL)

# One hour of inactivity closes a browsing session.
DEFAULT_SESSION_GAP_MS = int(os.environ.get("HISTORY_GRAPH_SESSION_GAP_MS", 60 * 60 * 1000))

DEFAULT_MARGIN = 100
SESSION_SPACING = 150
NODE_SPACING = 80
MAX_NODES_PER_ROW = 6
MAX_NODES_PER_COLUMN = 6

# Footprint of a drawn node and the gap kept around it in stacked mode.
NODE_SIZE = 40
NODE_GAP = 20

# Flow mode geometry.
TARGET_BUCKET_DENSITY = 8
MIN_BUCKET_WIDTH = 120
FLOW_COLUMN_SPACING = 80
FLOW_ROW_SPACING = 70
FLOW_AXIS_OFFSET = 120
FLOW_LEAD_IN = 100

FALLBACK_SPACING = 100

HULL_PADDING = 25
HULL_LABEL_OFFSET = 30
MIN_CLUSTER_MEMBERS = 3

EVOLUTION_BASE_INTERVAL_MS = 1000
EVOLUTION_SPEEDS = (0.25, 0.5, 1, 2, 4, 8)


@dataclass(frozen=True)
class Margins:
    """Blank space kept around the drawing area, in pixels."""

    top: float = DEFAULT_MARGIN
    right: float = DEFAULT_MARGIN
    bottom: float = DEFAULT_MARGIN
    left: float = DEFAULT_MARGIN


@dataclass(frozen=True)
class LayoutConfig:
    """Options for a layout pass.

    ``orientation`` selects the strategy: ``"vertical"`` stacks sessions top to
    bottom, ``"horizontal"`` lets time flow left to right in buckets.
    """

    orientation: str = VERTICAL
    max_nodes_per_row: int = MAX_NODES_PER_ROW
    max_nodes_per_column: int = MAX_NODES_PER_COLUMN
    session_spacing: float = SESSION_SPACING
    node_spacing: float = NODE_SPACING
    session_gap_threshold: int = DEFAULT_SESSION_GAP_MS
    margins: Margins = field(default_factory=Margins)
    target_bucket_density: int = TARGET_BUCKET_DENSITY
    min_bucket_width: float = MIN_BUCKET_WIDTH

    def __post_init__(self) -> None:
        if self.orientation not in ORIENTATIONS:
            raise ValueError(
                f"Unknown orientation {self.orientation!r}; expected one of {ORIENTATIONS}"
            )
        if self.max_nodes_per_row < 1 or self.max_nodes_per_column < 1:
            raise ValueError("Nodes per row/column must be at least 1")
        if self.target_bucket_density < 1:
            raise ValueError("Target bucket density must be at least 1")

    @property
    def is_vertical(self) -> bool:
        return self.orientation == VERTICAL

    def with_overrides(self, **overrides) -> LayoutConfig:
        """Return a copy with the given fields replaced.

        A ``margins`` dict is merged into the current margins.
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown layout option(s): {', '.join(sorted(unknown))}")
        margins = overrides.get("margins")
        if isinstance(margins, dict):
            overrides["margins"] = replace(self.margins, **margins)
        return replace(self, **overrides)


@dataclass(frozen=True)
class ClusterConfig:
    padding: float = HULL_PADDING
    label_offset: float = HULL_LABEL_OFFSET
    min_members: int = MIN_CLUSTER_MEMBERS


@dataclass(frozen=True)
class EvolutionConfig:
    base_interval_ms: float = EVOLUTION_BASE_INTERVAL_MS
    speeds: tuple[float, ...] = EVOLUTION_SPEEDS
    default_speed: float = 1

    def __post_init__(self) -> None:
        if self.default_speed not in self.speeds:
            raise ValueError(f"Default speed {self.default_speed} not in {self.speeds}")
        if self.base_interval_ms <= 0:
            raise ValueError("Base interval must be positive")
