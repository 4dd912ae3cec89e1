"""Chronological replay of how the graph grew, one transition instant at a time."""

from __future__ import annotations

import bisect
import enum
import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from history_graph.config import EvolutionConfig
from history_graph.evolution.scheduler import ScheduledTask, Scheduler, ThreadingScheduler
from history_graph.exceptions import InvalidSpeedError
from history_graph.graph.models import Edge

logger = logging.getLogger(__name__)


class EvolutionStatus(enum.Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class EvolutionState:
    status: EvolutionStatus
    current_timestamp: int | None
    visible_node_ids: frozenset[str]
    visible_edge_ids: frozenset[str]
    step: int
    total_steps: int
    speed: float
    time_remaining_ms: float

    @property
    def progress(self) -> float:
        """Fraction of distinct timestamps already revealed."""
        return self.step / self.total_steps if self.total_steps else 0.0

    @property
    def is_playing(self) -> bool:
        return self.status is EvolutionStatus.PLAYING


def transition_timestamps(edges: Sequence[Edge]) -> list[int]:
    """Every distinct (known) transition time, ascending."""
    return sorted({t.timestamp for edge in edges for t in edge.transitions if t.timestamp > 0})


def visible_at(edges: Sequence[Edge], timestamp: float) -> tuple[frozenset[str], frozenset[str]]:
    """Node and edge ids that have appeared by ``timestamp``."""
    nodes: set[str] = set()
    keys: set[str] = set()
    for edge in edges:
        if any(0 < t.timestamp <= timestamp for t in edge.transitions):
            nodes.update((edge.source, edge.target))
            keys.add(edge.key)
    return frozenset(nodes), frozenset(keys)


class EvolutionTimeline:
    """Step cursor over the distinct transition timestamps.

    Status moves ``IDLE -> PLAYING -> PAUSED | COMPLETED``; ``reset`` returns
    to ``IDLE`` from anywhere. Each tick moves to the next timestamp and
    reveals every node and edge whose first transition is at or before it.
    Ticks come from an injected ``Scheduler`` and at most one tick task is
    alive per timeline.
    """

    def __init__(
        self,
        edges: Sequence[Edge],
        scheduler: Scheduler | None = None,
        config: EvolutionConfig | None = None,
        on_change: Callable[[EvolutionState], None] | None = None,
    ):
        self.config = config or EvolutionConfig()
        self._scheduler = scheduler or ThreadingScheduler()
        self._on_change = on_change
        self._lock = threading.RLock()
        self._task: ScheduledTask | None = None
        self._generation = 0

        self._timestamps = transition_timestamps(edges)
        self._reveals = self._build_reveals(edges)

        self._status = EvolutionStatus.IDLE
        self._cursor = -1
        self._speed = self.config.default_speed
        self._visible_nodes: set[str] = set()
        self._visible_edges: set[str] = set()

    def _build_reveals(self, edges: Sequence[Edge]) -> list[tuple[list[str], list[str]]]:
        """For each step, the node and edge ids that first appear at that instant."""
        edge_first: dict[str, int] = {}
        node_first: dict[str, int] = {}
        for edge in edges:
            known = [t.timestamp for t in edge.transitions if t.timestamp > 0]
            if not known:
                continue
            first = min(known)
            edge_first[edge.key] = min(first, edge_first.get(edge.key, first))
            for node_id in (edge.source, edge.target):
                node_first[node_id] = min(first, node_first.get(node_id, first))

        step_of = {ts: i for i, ts in enumerate(self._timestamps)}
        reveals: list[tuple[list[str], list[str]]] = [([], []) for _ in self._timestamps]
        for node_id, ts in node_first.items():
            reveals[step_of[ts]][0].append(node_id)
        for key, ts in edge_first.items():
            reveals[step_of[ts]][1].append(key)
        return reveals

    @property
    def timestamps(self) -> list[int]:
        return list(self._timestamps)

    @property
    def status(self) -> EvolutionStatus:
        return self._status

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def interval_ms(self) -> float:
        return self.config.base_interval_ms / self._speed

    @property
    def state(self) -> EvolutionState:
        with self._lock:
            total = len(self._timestamps)
            step = self._cursor + 1
            remaining = 0.0
            if self._status is EvolutionStatus.PLAYING:
                remaining = (total - step) * self.interval_ms
            return EvolutionState(
                status=self._status,
                current_timestamp=self._timestamps[self._cursor] if self._cursor >= 0 else None,
                visible_node_ids=frozenset(self._visible_nodes),
                visible_edge_ids=frozenset(self._visible_edges),
                step=step,
                total_steps=total,
                speed=self._speed,
                time_remaining_ms=remaining,
            )

    def play(self) -> None:
        with self._lock:
            if self._status is EvolutionStatus.PLAYING:
                return
            if not self._timestamps:
                logger.info("Nothing to replay: no transition timestamps")
                self._status = EvolutionStatus.COMPLETED
            else:
                if self._status is EvolutionStatus.COMPLETED:
                    self._rewind()
                self._status = EvolutionStatus.PLAYING
                self._start_ticking()
        self._notify()

    def pause(self) -> None:
        with self._lock:
            if self._status is not EvolutionStatus.PLAYING:
                return
            self._stop_ticking()
            self._status = EvolutionStatus.PAUSED
        self._notify()

    def reset(self) -> None:
        with self._lock:
            self._stop_ticking()
            self._rewind()
            self._status = EvolutionStatus.IDLE
        self._notify()

    def set_speed(self, speed: float) -> None:
        """Change the playback multiplier; a running playback keeps its progress."""
        if speed not in self.config.speeds:
            raise InvalidSpeedError(
                f"Unsupported speed {speed}; choose one of {list(self.config.speeds)}"
            )
        with self._lock:
            self._speed = speed
            if self._status is EvolutionStatus.PLAYING:
                self._stop_ticking()
                self._start_ticking()
        self._notify()

    def step(self) -> bool:
        """Reveal the next timestamp by hand. Returns False at the end."""
        with self._lock:
            if self._cursor + 1 >= len(self._timestamps):
                return False
            self._advance()
            if self._status is EvolutionStatus.IDLE:
                self._status = EvolutionStatus.PAUSED
        self._notify()
        return True

    def seek(self, timestamp: float) -> None:
        """Jump to the last step at or before ``timestamp``; playback stops."""
        with self._lock:
            self._stop_ticking()
            self._cursor = bisect.bisect_right(self._timestamps, timestamp) - 1
            self._visible_nodes.clear()
            self._visible_edges.clear()
            for nodes, keys in self._reveals[: self._cursor + 1]:
                self._visible_nodes.update(nodes)
                self._visible_edges.update(keys)
            if self._cursor < 0:
                self._status = EvolutionStatus.IDLE
            elif self._cursor == len(self._timestamps) - 1:
                self._status = EvolutionStatus.COMPLETED
            else:
                self._status = EvolutionStatus.PAUSED
        self._notify()

    def seek_fraction(self, fraction: float) -> None:
        if not self._timestamps:
            return
        fraction = min(1.0, max(0.0, fraction))
        index = math.floor(fraction * (len(self._timestamps) - 1))
        self.seek(self._timestamps[index])

    def close(self) -> None:
        """Stop any running playback without touching the revealed sets."""
        with self._lock:
            self._stop_ticking()
            if self._status is EvolutionStatus.PLAYING:
                self._status = EvolutionStatus.PAUSED

    def __enter__(self) -> EvolutionTimeline:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _tick(self, generation: int) -> None:
        with self._lock:
            # A callback already dispatched by a cancelled task must not advance.
            if generation != self._generation or self._status is not EvolutionStatus.PLAYING:
                return
            self._advance()
        self._notify()

    def _advance(self) -> None:
        self._cursor += 1
        nodes, keys = self._reveals[self._cursor]
        self._visible_nodes.update(nodes)
        self._visible_edges.update(keys)
        if self._cursor == len(self._timestamps) - 1:
            self._stop_ticking()
            self._status = EvolutionStatus.COMPLETED

    def _rewind(self) -> None:
        self._cursor = -1
        self._visible_nodes.clear()
        self._visible_edges.clear()

    def _start_ticking(self) -> None:
        self._stop_ticking()
        generation = self._generation
        self._task = self._scheduler.call_repeating(
            self.interval_ms, lambda: self._tick(generation)
        )

    def _stop_ticking(self) -> None:
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)
