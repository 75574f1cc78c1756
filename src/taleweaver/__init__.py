"""Taleweaver - Turn-Based Round Engine for AI-Driven Interactive Fiction.

The engine advances rounds through ordered phases, resolves character
actions against an external AI Judge, applies attribute changes, runs prize
pool lotteries and scripted triggers, and recovers from Judge failures
without corrupting game state.

ARCHITECTURE:
- Python owns TRUTH (GameState, attribute math, sampling, turn order)
- The Judge handles INTERFACE (condition verdicts, narration, reactions)
- The Judge NEVER mutates state directly; every change goes through the StateStore

Example:
    >>> from taleweaver import GameState, OpenAIJudge, RoundScheduler
    >>>
    >>> state = GameState.model_validate_json(saved_game)
    >>> scheduler = RoundScheduler(state, OpenAIJudge())
    >>> await scheduler.resume()
    >>> await scheduler.run()

Modules:
    core: Configuration, logging, constants and base exceptions.
    models: Pydantic V2 data model and tagged-union commands.
    dm: Judge protocol, OpenAI-compatible Judge, prompts and memory.
    engine: State store, resolvers and the round scheduler.
"""

from __future__ import annotations

# Core
from taleweaver.core.config import Settings, get_settings
from taleweaver.core.exceptions import TaleweaverError
from taleweaver.core.logging import configure_logging, get_logger

# Models
from taleweaver.models.cards import Card, Effect
from taleweaver.models.character import Character
from taleweaver.models.commands import PlayerTurn
from taleweaver.models.game_state import GameState

# Judge
from taleweaver.dm.judge import Judge, OpenAIJudge

# Engine
from taleweaver.engine.scheduler import RoundScheduler
from taleweaver.engine.store import StateStore


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "TaleweaverError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Card",
    "Effect",
    "Character",
    "PlayerTurn",
    "GameState",
    # Judge
    "Judge",
    "OpenAIJudge",
    # Engine
    "RoundScheduler",
    "StateStore",
]
