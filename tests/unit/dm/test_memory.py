"""Tests for story memory extraction."""

from __future__ import annotations

from taleweaver.dm.memory import (
    character_memory,
    format_entry,
    global_memory,
    recent_entries,
)
from taleweaver.models.game_state import LogEntry


def entry(content: str, round_number: int, **fields: object) -> LogEntry:
    return LogEntry(content=content, round=round_number, **fields)


class TestGlobalMemory:
    """Tests for the recent-story view."""

    def test_format(self) -> None:
        """Test memory lines carry round and turn."""
        assert format_entry(entry("Hello", 3, turn_index=2)) == "[R3 T2] Hello"

    def test_only_recent_rounds(self) -> None:
        """Test entries older than the round window are dropped."""
        history = [entry(f"r{n}", n) for n in range(1, 11)]
        selected = recent_entries(history, current_round=10, rounds=3)
        assert [e.content for e in selected] == ["r7", "r8", "r9", "r10"]

    def test_line_cap_keeps_newest(self) -> None:
        """Test the line cap keeps the newest entries in order."""
        history = [entry(f"line {n}", 1) for n in range(10)]
        text = global_memory(history, current_round=1, limit=3)
        assert text.splitlines() == ["[R1 T0] line 7", "[R1 T0] line 8", "[R1 T0] line 9"]

    def test_zero_limit(self) -> None:
        """Test a zero cap yields nothing."""
        assert recent_entries([entry("x", 1)], current_round=1, limit=0) == []


class TestCharacterMemory:
    """Tests for the per-character view."""

    def test_empty_history(self) -> None:
        """Test an empty log gives an empty memory."""
        assert character_memory([], "c1") == ""

    def test_whole_witnessed_rounds(self) -> None:
        """Test a witnessed round is remembered in full, others not at all."""
        history = [
            entry("seen", 1, present_char_ids=["c1"]),
            entry("also round one", 1, present_char_ids=["c2"]),
            entry("elsewhere", 2, present_char_ids=["c2"], location_id="loc_far"),
        ]
        lines = character_memory(history, "c1", location_id="loc_square").splitlines()
        assert lines == ["[R1 T0] seen", "[R1 T0] also round one"]

    def test_location_counts_as_witnessed(self) -> None:
        """Test events at the character's location are remembered."""
        history = [entry("a shout", 4, location_id="loc_square")]
        assert "a shout" in character_memory(history, "c1", location_id="loc_square")

    def test_environment_actor_remembers_its_location(self) -> None:
        """Test an environment actor remembers what happened at its place."""
        history = [
            entry("the well creaks", 1, location_id="loc_well"),
            entry("market noise", 2, location_id="loc_market"),
        ]
        text = character_memory(history, "env_loc_well")
        assert "the well creaks" in text
        assert "market noise" not in text

    def test_round_cap_keeps_newest(self) -> None:
        """Test only the newest qualifying rounds are kept."""
        history = [entry(f"r{n}", n, present_char_ids=["c1"]) for n in range(1, 6)]
        lines = character_memory(history, "c1", rounds=2).splitlines()
        assert lines == ["[R4 T0] r4", "[R5 T0] r5"]
