"""Unified exception hierarchy for history-graph."""


class HistoryGraphError(Exception):
    """Base exception for all history-graph errors."""


# Graph input
class GraphError(HistoryGraphError):
    """Base exception for node/edge input problems."""


class InvalidGraphError(GraphError):
    """Malformed node or edge record supplied by the caller."""


class VisitParseError(GraphError):
    """A raw visit carries a time value that cannot be interpreted."""


# Layout
class LayoutError(HistoryGraphError):
    """Internal failure while assigning node positions."""


# Evolution
class EvolutionError(HistoryGraphError):
    """Base exception for evolution replay operations."""


class InvalidSpeedError(EvolutionError):
    """Requested playback speed is not one of the allowed multipliers."""
