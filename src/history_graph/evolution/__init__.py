"""Evolution replay: step through the graph's growth in time order."""

from history_graph.evolution.player import (
    EvolutionState,
    EvolutionStatus,
    EvolutionTimeline,
    transition_timestamps,
    visible_at,
)
from history_graph.evolution.scheduler import (
    ManualScheduler,
    ScheduledTask,
    Scheduler,
    ThreadingScheduler,
)

__all__ = [
    "EvolutionState",
    "EvolutionStatus",
    "EvolutionTimeline",
    "transition_timestamps",
    "visible_at",
    "ManualScheduler",
    "ScheduledTask",
    "Scheduler",
    "ThreadingScheduler",
]
