"""Story memory extraction for Judge context windows.

Instead of sending the whole story log with every Judge call, prompts get
one of two bounded views:

1. Global memory: the last N rounds of the story, capped at a fixed
   number of lines. Used for action prompts, condition checks and the
   ``history`` trigger condition.
2. Character memory: whole rounds in which a character was present,
   newest rounds kept. Used for reactions so a character only remembers
   what it could have witnessed.
"""

from __future__ import annotations

from collections.abc import Sequence
from itertools import groupby

from taleweaver.core.constants import ENVIRONMENT_ID_PREFIX
from taleweaver.core.logging import get_logger
from taleweaver.models.game_state import LogEntry


logger = get_logger(__name__)


def format_entry(entry: LogEntry) -> str:
    """Format a log entry as a memory line."""
    return f"[R{entry.round} T{entry.turn_index}] {entry.content}"


def recent_entries(
    history: Sequence[LogEntry],
    current_round: int,
    rounds: int = 20,
    limit: int = 50,
) -> list[LogEntry]:
    """Select entries from the last ``rounds`` rounds, newest ``limit`` kept.

    Args:
        history: Story log, oldest first.
        current_round: The current round number.
        rounds: How many rounds back to include.
        limit: Maximum number of entries.

    Returns:
        The selected entries, oldest first.
    """
    min_round = max(1, current_round - rounds)
    selected = [e for e in history if e.round >= min_round]
    return selected[-limit:] if limit > 0 else []


def global_memory(
    history: Sequence[LogEntry],
    current_round: int,
    rounds: int = 20,
    limit: int = 50,
) -> str:
    """Render the recent story for a Judge prompt.

    Args:
        history: Story log, oldest first.
        current_round: The current round number.
        rounds: How many rounds back to include.
        limit: Maximum number of lines.

    Returns:
        Newline-joined memory lines.
    """
    return "\n".join(
        format_entry(e) for e in recent_entries(history, current_round, rounds, limit)
    )


def _witnessed(entries: list[LogEntry], char_id: str, location_id: str | None) -> bool:
    for entry in entries:
        if char_id in entry.present_char_ids:
            return True
        if location_id is not None and entry.location_id == location_id:
            return True
    if char_id.startswith(ENVIRONMENT_ID_PREFIX):
        own_location = char_id[len(ENVIRONMENT_ID_PREFIX):]
        return any(e.location_id == own_location for e in entries)
    return False


def character_memory(
    history: Sequence[LogEntry],
    char_id: str,
    location_id: str | None = None,
    rounds: int = 20,
) -> str:
    """Render what a character witnessed, as whole rounds.

    A round qualifies if any of its entries lists the character as present,
    happened at the character's current location, or (for environment
    actors) happened at the location the actor represents.

    Args:
        history: Story log, oldest first.
        char_id: The remembering character.
        location_id: The character's current location.
        rounds: Maximum number of qualifying rounds, newest kept.

    Returns:
        Newline-joined memory lines, oldest first.
    """
    if not history:
        return ""

    by_round = [
        (round_number, list(entries))
        for round_number, entries in groupby(
            sorted(history, key=lambda e: e.round), key=lambda e: e.round
        )
    ]

    qualified: list[list[LogEntry]] = []
    for _, entries in reversed(by_round):
        if _witnessed(entries, char_id, location_id):
            qualified.append(entries)
        if len(qualified) >= rounds:
            break

    lines = [format_entry(e) for entries in reversed(qualified) for e in entries]
    logger.debug(
        "Character memory extracted",
        char_id=char_id,
        rounds=len(qualified),
        lines=len(lines),
    )
    return "\n".join(lines)


__all__ = [
    "format_entry",
    "recent_entries",
    "global_memory",
    "character_memory",
]
