"""Parse raw browser visits into normalized visit records."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import urlparse

import dateutil.parser as parser

from history_graph.exceptions import VisitParseError
from history_graph.graph.models import CHAIN, TRANSITION_KINDS, ParsedVisit

NEW_TAB = "about:newtab"
_NEW_TAB_PREFIXES = ("chrome://newtab", "about:newtab", "edge://newtab")
_INDEX_SUFFIX = re.compile(r"/(index\.(html?|php|asp|jsp))?$")


def normalize_url(url: str) -> str:
    """Collapse cosmetic URL differences so repeat visits map to one node."""
    if url.startswith(_NEW_TAB_PREFIXES):
        return NEW_TAB
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url

    host = _normalize_domain(parsed.netloc)
    path = _INDEX_SUFFIX.sub("", parsed.path.rstrip("/"))
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{parsed.scheme}://{host}{path}{query}"


def parse_visit_time(value) -> int:
    """Visit time as epoch milliseconds.

    Numbers are taken as milliseconds already; strings are parsed as ISO-8601
    (naive values are read as local time).
    """
    if isinstance(value, bool) or value is None:
        raise VisitParseError(f"Unsupported visit time: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    text = str(value).strip()
    if not text:
        raise VisitParseError("Empty visit time")
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        dt = parser.parse(text)
    except (ValueError, OverflowError) as e:
        raise VisitParseError(f"Cannot parse visit time {text!r}") from e
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return int(dt.astimezone(timezone.utc).timestamp() * 1000)


def parse_visit(
    raw: dict,
    excluded_domains: list[str] | None = None,
    max_url_length: int = 2000,
    max_title_length: int = 300,
) -> ParsedVisit | None:
    """Normalize one raw visit row; returns None for filtered/invalid rows."""
    url = (raw.get("url") or "").strip()
    if not url:
        return None
    if len(url) > max_url_length:
        url = url[:max_url_length]

    normalized = normalize_url(url)
    if normalized == NEW_TAB:
        domain = ""
    else:
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"}:
            return None
        domain = _normalize_domain(parsed.netloc)
        if not domain:
            return None
        if _is_excluded_domain(domain, excluded_domains or []):
            return None

    try:
        visited_at = parse_visit_time(raw.get("visited_at"))
    except VisitParseError:
        return None
    if visited_at <= 0:
        return None

    title = (raw.get("title") or "").strip()
    if len(title) > max_title_length:
        title = title[:max_title_length]

    try:
        tab_id = int(raw["tab_id"]) if raw.get("tab_id") is not None else None
        duration = max(0, int(raw.get("duration") or 0))
    except (TypeError, ValueError):
        return None
    creation_mode = str(raw.get("creation_mode") or CHAIN).strip().lower()
    if creation_mode not in TRANSITION_KINDS:
        creation_mode = CHAIN
    source_url = (raw.get("source_url") or "").strip() or None

    return ParsedVisit(
        url=url,
        normalized_url=normalized,
        domain=domain,
        visited_at=visited_at,
        title=title,
        tab_id=tab_id,
        duration=duration,
        is_active=bool(raw.get("is_active")),
        creation_mode=creation_mode,
        source_url=source_url,
    )


def _normalize_domain(netloc: str) -> str:
    domain = (netloc or "").strip().lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def _is_excluded_domain(domain: str, excluded_domains: list[str]) -> bool:
    for blocked in excluded_domains:
        b = blocked.strip().lower()
        if not b:
            continue
        if domain == b or domain.endswith(f".{b}"):
            return True
    return False
