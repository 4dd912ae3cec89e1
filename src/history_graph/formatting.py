"""Human-readable durations and timeline axis markers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

SECOND = 1000
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR

MAX_TIMELINE_MARKERS = 12


@dataclass(frozen=True)
class TimelineMarker:
    timestamp: float
    label: str
    is_hour: bool


def format_duration(ms: float) -> str:
    """``"1h 5m"``, ``"3m 20s"`` or ``"42s"``."""
    hours, rest = divmod(int(ms), HOUR)
    minutes, rest = divmod(rest, MINUTE)
    seconds = rest // SECOND
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_compact_duration(ms: float) -> str:
    """Seconds under a minute, whole minutes otherwise."""
    seconds = int(ms) // SECOND
    minutes = seconds // 60
    if minutes < 1:
        return f"{seconds}s"
    return f"{minutes}m"


def format_session_duration(start_time: float, end_time: float) -> str:
    duration = int(end_time - start_time)
    if duration < MINUTE:
        return "< 1 minute"
    hours, rest = divmod(duration, HOUR)
    minutes = rest // MINUTE
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def timeline_marker_interval(time_range: float) -> int:
    """Tick spacing that keeps the axis readable for the given range."""
    if time_range <= 2 * HOUR:
        return 15 * MINUTE
    if time_range <= 6 * HOUR:
        return 30 * MINUTE
    if time_range <= 12 * HOUR:
        return HOUR
    return 2 * HOUR


def generate_timeline_markers(
    start_time: float,
    end_time: float,
    max_markers: int = MAX_TIMELINE_MARKERS,
) -> list[TimelineMarker]:
    """Axis ticks between two epoch-ms instants, labelled in local time.

    Ranges under an hour get evenly spaced ticks across the data; longer
    ranges get ticks aligned to interval boundaries.
    """
    time_range = end_time - start_time
    if max_markers < 2:
        raise ValueError("max_markers must be at least 2")
    if time_range <= 0:
        return [_marker(start_time, with_minutes=True)]

    if time_range < HOUR:
        step = time_range / (max_markers - 1)
        return [_marker(start_time + step * i, with_minutes=True) for i in range(max_markers)]

    interval = timeline_marker_interval(time_range)
    first = _align(start_time, interval)

    markers = []
    timestamp = first
    while timestamp <= end_time and len(markers) < max_markers:
        markers.append(_marker(timestamp, with_minutes=interval < HOUR))
        timestamp += interval

    if len(markers) < 2:
        markers.append(_marker(end_time, with_minutes=True))
    return markers


def _align(start_time: float, interval: int) -> float:
    start = _local(start_time)
    if interval >= HOUR:
        aligned = start.replace(minute=0, second=0, microsecond=0)
    else:
        step_minutes = interval // MINUTE
        minute = -(-start.minute // step_minutes) * step_minutes
        aligned = start.replace(minute=0, second=0, microsecond=0) + timedelta(minutes=minute)
    first = aligned.timestamp() * 1000
    if first < start_time:
        first += interval
    return first


def _marker(timestamp: float, with_minutes: bool) -> TimelineMarker:
    moment = _local(timestamp)
    hour = moment.strftime("%I").lstrip("0") or "12"
    suffix = moment.strftime("%p")
    label = f"{hour}:{moment:%M} {suffix}" if with_minutes else f"{hour} {suffix}"
    return TimelineMarker(timestamp=timestamp, label=label, is_hour=moment.minute == 0)


def _local(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp / 1000)
