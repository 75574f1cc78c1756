"""Judge module for Taleweaver.

This module provides the AI game master ("Judge") used by the engine:
- The Judge protocol the engine depends on
- An OpenAI-compatible Judge implementation
- Prompt templates
- Bounded story memory for Judge context windows

The Judge reasons and narrates; every game mechanic (attribute math,
lottery sampling, turn order) is executed by Python in the engine.
"""

from __future__ import annotations

from .judge import (
    Judge,
    OpenAIJudge,
    parse_condition_results,
    parse_json_response,
    parse_reaction,
    parse_settlement,
    parse_turn_action,
)
from .memory import character_memory, format_entry, global_memory, recent_entries

__all__ = [
    "Judge",
    "OpenAIJudge",
    "parse_json_response",
    "parse_condition_results",
    "parse_turn_action",
    "parse_reaction",
    "parse_settlement",
    "format_entry",
    "recent_entries",
    "global_memory",
    "character_memory",
]
