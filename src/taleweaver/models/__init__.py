"""Pydantic data models for the Taleweaver round engine.

Exports the attribute schema, cards, characters, triggers, prize pools,
the command union, Judge payloads and the aggregate game state.
"""

from __future__ import annotations

from taleweaver.models.attributes import (
    ATTRIBUTE_ALIASES,
    AttributeKey,
    GameAttribute,
    canonical_key,
    coerce_number,
    display_name,
)
from taleweaver.models.cards import Card, Effect, new_id
from taleweaver.models.character import (
    AIConfig,
    Character,
    Conflict,
    Drive,
    remove_instances,
)
from taleweaver.models.commands import (
    AttributeGrant,
    AttributeUpdate,
    Command,
    CreateAttributeCommand,
    CreateCardCommand,
    LotteryCommand,
    MoveToCommand,
    PendingAction,
    PendingLottery,
    PendingMove,
    PendingSkill,
    PlayerTurn,
    RedeemCardCommand,
    UpdateAttributeCommand,
    UseSkillCommand,
    order_pending_actions,
    parse_command,
    parse_commands,
)
from taleweaver.models.enums import (
    AttributeType,
    Comparator,
    ConditionKind,
    GamePhase,
    ItemType,
    LogType,
    LotteryAction,
    TargetType,
    TransactionType,
    TriggerPhase,
    TriggerType,
    Visibility,
)
from taleweaver.models.game_state import (
    CharPosition,
    GameState,
    Location,
    LogEntry,
    MapState,
    Region,
    RoundState,
    WorldState,
)
from taleweaver.models.judge import (
    ConditionRequest,
    ConditionResult,
    GeneratedConflict,
    GeneratedDrive,
    JudgeContext,
    NewAttributeSignal,
    ReactionResult,
    SettlementResult,
    TradeResult,
    TurnAction,
)
from taleweaver.models.lottery import PrizeItem, PrizePool
from taleweaver.models.triggers import Trigger, TriggerCondition


__all__ = [
    # Enums
    "AttributeType",
    "Comparator",
    "ConditionKind",
    "GamePhase",
    "ItemType",
    "LogType",
    "LotteryAction",
    "TargetType",
    "TransactionType",
    "TriggerPhase",
    "TriggerType",
    "Visibility",
    # Attributes
    "ATTRIBUTE_ALIASES",
    "AttributeKey",
    "GameAttribute",
    "canonical_key",
    "coerce_number",
    "display_name",
    # Cards & characters
    "Card",
    "Effect",
    "new_id",
    "AIConfig",
    "Character",
    "Conflict",
    "Drive",
    "remove_instances",
    # Triggers & lottery
    "Trigger",
    "TriggerCondition",
    "PrizeItem",
    "PrizePool",
    # Commands
    "AttributeGrant",
    "AttributeUpdate",
    "Command",
    "CreateAttributeCommand",
    "CreateCardCommand",
    "LotteryCommand",
    "MoveToCommand",
    "PendingAction",
    "PendingLottery",
    "PendingMove",
    "PendingSkill",
    "PlayerTurn",
    "RedeemCardCommand",
    "UpdateAttributeCommand",
    "UseSkillCommand",
    "order_pending_actions",
    "parse_command",
    "parse_commands",
    # Game state
    "CharPosition",
    "GameState",
    "Location",
    "LogEntry",
    "MapState",
    "Region",
    "RoundState",
    "WorldState",
    # Judge payloads
    "ConditionRequest",
    "ConditionResult",
    "GeneratedConflict",
    "GeneratedDrive",
    "JudgeContext",
    "NewAttributeSignal",
    "ReactionResult",
    "SettlementResult",
    "TradeResult",
    "TurnAction",
]
