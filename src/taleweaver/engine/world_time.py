"""Story clock arithmetic.

World time is stored as text in the ``YYYY:MM:DD:HH:MM:SS`` format. The
Judge reports how long an action took as free-form text (``"00:00:05:00"``,
``"2 hours"``, ``"30分钟"``), which ``parse_time_delta`` turns into seconds.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta

from taleweaver.core.constants import DEFAULT_TIME_DELTA_SECONDS
from taleweaver.core.logging import get_logger


logger = get_logger(__name__)

_DHMS = re.compile(r"(\d+):(\d+):(\d+):(\d+)")
_HMS = re.compile(r"(\d+):(\d+):(\d+)")
_MS = re.compile(r"(\d+):(\d+)")

_UNITS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"(\d+)\s*(?:d|day|天|日)", re.IGNORECASE), 86400),
    (re.compile(r"(\d+)\s*(?:h|hour|hr|小时|时)", re.IGNORECASE), 3600),
    (re.compile(r"(\d+)\s*(?:m|min|minute|分|分钟)", re.IGNORECASE), 60),
    (re.compile(r"(\d+)\s*(?:s|sec|second|秒)", re.IGNORECASE), 1),
)

_SEPARATORS = re.compile(r"[:\-/ ]")


def parse_time_delta(text: str | int | float | None) -> int:
    """Parse a duration into seconds.

    Accepted forms, tried in order: ``DD:HH:MM:SS``, ``HH:MM:SS``,
    ``MM:SS``, natural language units (English or Chinese) and a plain
    number of seconds.

    Args:
        text: Duration text (numbers are taken as seconds).

    Returns:
        Seconds; 600 when nothing could be parsed.

    Example:
        >>> parse_time_delta("00:01:30:00")
        5400
        >>> parse_time_delta("2 hours 15 min")
        8100
    """
    if text is None:
        return DEFAULT_TIME_DELTA_SECONDS
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return max(0, int(text))

    value = str(text)
    if match := _DHMS.search(value):
        d, h, m, s = (int(g) for g in match.groups())
        return d * 86400 + h * 3600 + m * 60 + s
    if match := _HMS.search(value):
        h, m, s = (int(g) for g in match.groups())
        return h * 3600 + m * 60 + s
    if match := _MS.search(value):
        m, s = (int(g) for g in match.groups())
        return m * 60 + s

    total = 0
    for pattern, unit in _UNITS:
        if match := pattern.search(value):
            total += int(match.group(1)) * unit
    if total > 0:
        return total

    try:
        return max(0, int(float(value.strip())))
    except ValueError:
        logger.debug("Unparseable duration, using default", text=value[:50])
        return DEFAULT_TIME_DELTA_SECONDS


def _parse_world_time(current: str) -> datetime | None:
    try:
        parts = [int(p) for p in _SEPARATORS.split(current.strip()) if p]
    except ValueError:
        return None
    if len(parts) < 3:
        return None
    parts += [0] * (6 - len(parts))
    year, month, day, hour, minute, second = parts[:6]
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def advance_world_time(current: str, seconds: int) -> str:
    """Advance a ``YYYY:MM:DD:HH:MM:SS`` clock.

    Colons, hyphens, slashes and spaces are all accepted as separators on
    input. Values that cannot be parsed are returned unchanged.

    Args:
        current: Current world time.
        seconds: Seconds to add.

    Returns:
        The new world time in canonical format.

    Example:
        >>> advance_world_time("0001:01:01:23:30:00", 3600)
        '0001:01:02:00:30:00'
    """
    moment = _parse_world_time(current)
    if moment is None:
        logger.warning("Unparseable world time, not advancing", world_time=current)
        return current
    try:
        moment += timedelta(seconds=seconds)
    except OverflowError:
        return current
    return (
        f"{moment.year:04d}:{moment.month:02d}:{moment.day:02d}:"
        f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )


def format_world_time(current: str) -> str:
    """Render a world time for story log lines.

    Example:
        >>> format_world_time("0001:03:14:08:05:00")
        'Year 1, Month 3, Day 14, 08:05'
    """
    moment = _parse_world_time(current)
    if moment is None:
        return current
    return (
        f"Year {moment.year}, Month {moment.month}, Day {moment.day}, "
        f"{moment.hour:02d}:{moment.minute:02d}"
    )


__all__ = [
    "parse_time_delta",
    "advance_world_time",
    "format_world_time",
]
