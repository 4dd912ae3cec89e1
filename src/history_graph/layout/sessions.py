"""Split chronologically sorted visits into sessions separated by idle gaps."""

from __future__ import annotations

from typing import Sequence

from history_graph.config import DEFAULT_SESSION_GAP_MS
from history_graph.graph.models import Node
from history_graph.layout.models import Session


def group_into_sessions(
    nodes: Sequence[Node],
    gap_threshold: int = DEFAULT_SESSION_GAP_MS,
) -> list[Session]:
    """Group nodes into sessions, earliest first.

    Nodes without a timestamp never join a session. A gap equal to the
    threshold still continues the current session.
    """
    dated = sorted((n for n in nodes if n.timestamp > 0), key=lambda n: n.timestamp)

    sessions: list[Session] = []
    current: list[Node] = []
    last_timestamp = 0

    for node in dated:
        if current and node.timestamp - last_timestamp > gap_threshold:
            sessions.append(_close(current, len(sessions)))
            current = []
        current.append(node)
        last_timestamp = node.timestamp

    if current:
        sessions.append(_close(current, len(sessions)))
    return sessions


def _close(members: list[Node], index: int) -> Session:
    return Session(
        id=f"session-{index}",
        nodes=list(members),
        start_time=members[0].timestamp,
        end_time=members[-1].timestamp,
    )
