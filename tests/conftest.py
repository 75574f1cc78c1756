"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Taleweaver test suite: a settings cache reset, builders for
characters and game states, and a scripted Judge.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pytest

from taleweaver.models.character import Character
from taleweaver.models.game_state import CharPosition, GameState, Location, MapState, RoundState
from taleweaver.models.judge import (
    ConditionRequest,
    ConditionResult,
    JudgeContext,
    ReactionResult,
    SettlementResult,
    TurnAction,
)


if TYPE_CHECKING:
    from collections.abc import Generator

    from taleweaver.models.character import Conflict, Drive


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from taleweaver.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_logging_config() -> Generator[None, None, None]:
    """Undo any logging configuration a test performed."""
    from taleweaver.core.logging import reset_logging

    yield
    reset_logging()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "TALEWEAVER_JUDGE_API_KEY": "test-judge-key",
        "TALEWEAVER_DEBUG": "true",
        "TALEWEAVER_LOG_LEVEL": "DEBUG",
        "TALEWEAVER_GAME_PLEASURE_DECAY": "15",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def rng() -> random.Random:
    """Provide a seeded random source."""
    return random.Random(1234)


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def make_character() -> Callable[..., Character]:
    """Provide a character builder.

    Characters get health 100, physique 50 and 50 CP unless overridden;
    pass an attribute as None to leave it out.
    """

    def build(
        char_id: str,
        name: str | None = None,
        *,
        is_player: bool = False,
        skills: list[Any] | None = None,
        inventory: list[str] | None = None,
        **attributes: Any,
    ) -> Character:
        values: dict[str, Any] = {"health": 100, "physique": 50, "cp": 50}
        values.update(attributes)
        return Character(
            id=char_id,
            name=name or char_id.replace("_", " ").title(),
            is_player=is_player,
            attributes={k: v for k, v in values.items() if v is not None},
            skills=skills or [],
            inventory=inventory or [],
        )

    return build


@pytest.fixture
def make_state() -> Callable[..., GameState]:
    """Provide a game state builder.

    Every character stands in the Town Square unless ``positions`` says
    otherwise. The round starts unpaused.
    """

    def build(
        *characters: Character,
        positions: dict[str, str] | None = None,
        locations: list[Location] | None = None,
        **round_fields: Any,
    ) -> GameState:
        all_locations = [Location(id="loc_square", name="Town Square", x=0, y=0)]
        all_locations.extend(locations or [])
        placed = {c.id: "loc_square" for c in characters}
        placed.update(positions or {})
        round_fields.setdefault("is_paused", False)
        return GameState(
            map=MapState(
                locations={loc.id: loc for loc in all_locations},
                char_positions={cid: CharPosition(location_id=lid) for cid, lid in placed.items()},
                active_location_id="loc_square",
            ),
            round=RoundState(**round_fields),
            characters={c.id: c for c in characters},
        )

    return build


# =============================================================================
# Judge Fixtures
# =============================================================================


class FakeJudge:
    """A scripted Judge.

    Queued answers are returned in order; once a queue is empty the safe
    default is returned (condition checks default to all effects passing).
    Every call is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.conditions: list[dict[str, ConditionResult]] = []
        self.actions: dict[str, list[TurnAction]] = {}
        self.reactions: list[str] = []
        self.settlements: list[SettlementResult] = []
        self.calls: list[tuple[str, Any]] = []
        self.error: Exception | None = None

    def _check_error(self) -> None:
        if self.error is not None:
            error, self.error = self.error, None
            raise error

    async def check_conditions(
        self,
        requests: list[ConditionRequest],
        context: JudgeContext,
    ) -> dict[str, ConditionResult]:
        self.calls.append(("check_conditions", requests))
        self._check_error()
        if self.conditions:
            return self.conditions.pop(0)
        return {r.id: ConditionResult(result=True, reason="it works") for r in requests}

    async def determine_action(self, character: Character, context: JudgeContext) -> TurnAction:
        self.calls.append(("determine_action", character.id))
        self._check_error()
        queue = self.actions.get(character.id, [])
        return queue.pop(0) if queue else TurnAction()

    async def determine_reaction(
        self,
        character: Character,
        prompt: str,
        context: JudgeContext,
    ) -> ReactionResult:
        self.calls.append(("determine_reaction", (character.id, prompt)))
        self._check_error()
        return ReactionResult(speech=self.reactions.pop(0) if self.reactions else "")

    async def resolve_settlement(
        self,
        conflicts: list[Conflict],
        drives: list[Drive],
        context: JudgeContext,
    ) -> SettlementResult:
        self.calls.append(("resolve_settlement", (conflicts, drives)))
        self._check_error()
        return self.settlements.pop(0) if self.settlements else SettlementResult()

    def called(self, name: str) -> list[Any]:
        """Arguments of every recorded call to ``name``."""
        return [args for call, args in self.calls if call == name]


@pytest.fixture
def judge() -> FakeJudge:
    """Provide a scripted Judge."""
    return FakeJudge()
