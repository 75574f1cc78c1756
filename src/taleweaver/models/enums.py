"""Enumeration types for the Taleweaver round engine.

This module defines all enumeration types used by the data model, including
round phases, card and effect classifications, trigger phases and the
comparators understood by scripted trigger conditions.
"""

from __future__ import annotations

from enum import StrEnum


class GamePhase(StrEnum):
    """Phases of the round state machine.

    ``EXECUTING`` is transient: it is entered while a human turn's queued
    actions are drained and left as soon as the batch completes.
    """

    INIT = "init"
    ORDER = "order"
    TURN_START = "turn_start"
    CHAR_ACTING = "char_acting"
    EXECUTING = "executing"
    SETTLEMENT = "settlement"
    ROUND_END = "round_end"


class AttributeType(StrEnum):
    """Value type of a game attribute."""

    NUMBER = "number"
    TEXT = "text"


class Visibility(StrEnum):
    """Visibility of attributes and cards to other characters."""

    PUBLIC = "public"
    PRIVATE = "private"


class TargetType(StrEnum):
    """Who an effect is aimed at."""

    SELF = "self"
    SPECIFIC_CHAR = "specific_char"
    AI_CHOICE = "ai_choice"
    WORLD = "world"
    HIT_TARGET = "hit_target"
    ALL_CHARS = "all_chars"


class ItemType(StrEnum):
    """Classification of a card."""

    SKILL = "skill"
    CONSUMABLE = "consumable"
    EVENT = "event"


class TriggerType(StrEnum):
    """When a card may be used.

    Only ``ACTIVE`` and ``REACTION`` cards can be used as a turn action.
    """

    ACTIVE = "active"
    PASSIVE = "passive"
    SETTLEMENT = "settlement"
    HIDDEN_SETTLEMENT = "hidden_settlement"
    REACTION = "reaction"

    @property
    def is_usable(self) -> bool:
        """Whether a card of this trigger type may be used as an action."""
        return self in (TriggerType.ACTIVE, TriggerType.REACTION)


class TriggerPhase(StrEnum):
    """Judge call sites a scripted trigger can attach to."""

    CHECK_CONDITIONS = "check_conditions"
    DETERMINE_ACTION = "determine_action"
    DETERMINE_REACTION = "determine_reaction"
    RESOLVE_SETTLEMENT = "resolve_settlement"


class ConditionKind(StrEnum):
    """Kinds of scripted trigger conditions."""

    CHAR_ATTR = "char_attr"
    CHAR_CARD = "char_card"
    WORLD_TIME = "world_time"
    WORLD_ATTR = "world_attr"
    CHAR_NAME = "char_name"
    LOC_NAME = "loc_name"
    REGION_NAME = "region_name"
    HISTORY = "history"


class Comparator(StrEnum):
    """Comparison operators for trigger conditions."""

    GT = ">"
    GTE = ">="
    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    CONTAINS = "contains"
    EXACT = "exact"


class LogType(StrEnum):
    """Classification of story log entries."""

    NARRATIVE = "narrative"
    SYSTEM = "system"
    ACTION = "action"


class TransactionType(StrEnum):
    """Direction of a trade from the acting character's point of view."""

    BUY = "buy"
    SELL = "sell"


class LotteryAction(StrEnum):
    """Interactions with a prize pool."""

    DRAW = "draw"
    DEPOSIT = "deposit"
    PEEK = "peek"


__all__ = [
    "GamePhase",
    "AttributeType",
    "Visibility",
    "TargetType",
    "ItemType",
    "TriggerType",
    "TriggerPhase",
    "ConditionKind",
    "Comparator",
    "LogType",
    "TransactionType",
    "LotteryAction",
]
