"""Round engine for Taleweaver.

This module provides the turn-based orchestration engine: the state
store, turn ordering, card resolution, settlement, the lottery, reactions
and scripted triggers, all driven by the round scheduler.

Submodules:
    store: Single-owner StateStore applying copy-on-write commands
    scheduler: RoundScheduler phase state machine
    turn_order: Automatic and manual turn order
    skills: SkillEffectResolver for card use, trades and effects
    settlement: End-of-round conflicts, drives, decay and world status
    actions: ActionProcessor for AI and human turns
    lottery: Prize pool draws, deposits and peeks
    reactions: ReactionCoordinator for human and AI reactions
    triggers: Scripted TriggerEvaluator
    world_time: Story clock arithmetic

Example:
    >>> from taleweaver.engine import RoundScheduler
    >>>
    >>> scheduler = RoundScheduler(state, judge)
    >>> await scheduler.resume()
    >>> await scheduler.run()
    >>> if scheduler.awaiting_player:
    ...     await scheduler.submit_turn(PlayerTurn(speech="Hello"))
"""

from __future__ import annotations

# =============================================================================
# State
# =============================================================================
from taleweaver.engine.store import Mutation, StateStore, stamp_log

# =============================================================================
# Resolvers
# =============================================================================
from taleweaver.engine.actions import ActionProcessor, nearby_locations, tick_world_time
from taleweaver.engine.lottery import LotteryEngine, LotteryOutcome, weighted_sample
from taleweaver.engine.reactions import ReactionCoordinator, ReactionRequest
from taleweaver.engine.settlement import SettlementOutcome, SettlementResolver, participants
from taleweaver.engine.skills import AttributeChange, SkillEffectResolver, SkillOutcome
from taleweaver.engine.triggers import (
    TriggerEvaluator,
    TriggerOutcome,
    TriggerUpdate,
    compare,
    run_triggers,
)
from taleweaver.engine.turn_order import TurnOrderResolver, advance_turn

# =============================================================================
# Scheduler
# =============================================================================
from taleweaver.engine.scheduler import RoundScheduler

# =============================================================================
# World Time
# =============================================================================
from taleweaver.engine.world_time import advance_world_time, format_world_time, parse_time_delta


__all__ = [
    # State
    "Mutation",
    "StateStore",
    "stamp_log",
    # Resolvers
    "ActionProcessor",
    "nearby_locations",
    "tick_world_time",
    "LotteryEngine",
    "LotteryOutcome",
    "weighted_sample",
    "ReactionCoordinator",
    "ReactionRequest",
    "SettlementOutcome",
    "SettlementResolver",
    "participants",
    "AttributeChange",
    "SkillEffectResolver",
    "SkillOutcome",
    "TriggerEvaluator",
    "TriggerOutcome",
    "TriggerUpdate",
    "compare",
    "run_triggers",
    "TurnOrderResolver",
    "advance_turn",
    # Scheduler
    "RoundScheduler",
    # World Time
    "advance_world_time",
    "format_world_time",
    "parse_time_delta",
]
