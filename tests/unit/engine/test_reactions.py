"""Tests for reaction sourcing."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

from taleweaver.engine.reactions import ReactionCoordinator
from taleweaver.engine.store import StateStore
from taleweaver.engine.triggers import TriggerEvaluator
from taleweaver.models.game_state import GameState


if TYPE_CHECKING:
    from tests.conftest import FakeJudge


def coordinator_for(state: GameState, judge: FakeJudge) -> ReactionCoordinator:
    return ReactionCoordinator(StateStore(state), judge, TriggerEvaluator({}, 50))


class TestReactionCoordinator:
    """Tests for who voices a reaction."""

    async def test_ai_character_voiced_by_judge(
        self,
        judge: FakeJudge,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test an AI character's reaction comes from the Judge and is logged."""
        judge.reactions = ["  Ouch!  "]
        coordinator = coordinator_for(make_state(make_character("c1", "Bob")), judge)

        speech = await coordinator.react("c1", "You were punched.")

        assert speech == "Ouch!"
        assert judge.called("determine_reaction") == [("c1", "You were punched.")]
        entry = coordinator.store.snapshot.world.history[-1]
        assert entry.content == 'Bob: "Ouch!"'
        assert entry.is_reaction is True
        await coordinator.store.close()

    async def test_empty_reaction_not_logged(
        self,
        judge: FakeJudge,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test no reaction leaves the story log untouched."""
        coordinator = coordinator_for(make_state(make_character("c1")), judge)
        assert await coordinator.react("c1", "Nothing much.") == ""
        assert coordinator.store.snapshot.world.history == []
        await coordinator.store.close()

    async def test_unknown_character(self, judge: FakeJudge, make_state: Callable) -> None:
        """Test an unknown character never reacts."""
        coordinator = coordinator_for(make_state(), judge)
        assert await coordinator.react("ghost", "Boo") == ""
        assert judge.calls == []
        await coordinator.store.close()

    async def test_player_answers_themselves(
        self,
        judge: FakeJudge,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a human player's reaction is awaited from the player."""
        state = make_state(make_character("p1", "Hero", is_player=True))
        coordinator = coordinator_for(state, judge)

        task = asyncio.create_task(coordinator.react("p1", "A goblin hits you.", "Hit"))
        while not coordinator.pending:
            await asyncio.sleep(0)

        request = coordinator.pending[0]
        assert request.character_id == "p1"
        assert request.title == "Hit"
        assert coordinator.respond("p1", "Take that!") is True

        assert await task == "Take that!"
        assert coordinator.pending == []
        assert judge.calls == []
        assert coordinator.store.snapshot.world.history[-1].content == 'Hero: "Take that!"'
        await coordinator.store.close()

    async def test_player_declines(
        self,
        judge: FakeJudge,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a player may answer with no reaction."""
        state = make_state(make_character("p1", is_player=True))
        coordinator = coordinator_for(state, judge)

        task = asyncio.create_task(coordinator.react("p1", "Rain falls."))
        while not coordinator.pending:
            await asyncio.sleep(0)
        coordinator.respond("p1", None)

        assert await task == ""
        assert coordinator.store.snapshot.world.history == []
        await coordinator.store.close()

    async def test_auto_reaction_for_player(
        self,
        judge: FakeJudge,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test the auto-reaction toggle lets the Judge voice a player."""
        judge.reactions = ["Hmph."]
        state = make_state(make_character("p1", is_player=True), auto_reaction=True)
        coordinator = coordinator_for(state, judge)

        assert await coordinator.react("p1", "A bird sings.") == "Hmph."
        assert coordinator.pending == []
        await coordinator.store.close()

    def test_respond_without_request(self, judge: FakeJudge, make_state: Callable) -> None:
        """Test answering when nothing is awaited is refused."""
        coordinator = coordinator_for(make_state(), judge)
        assert coordinator.respond("p1", "Hi") is False
