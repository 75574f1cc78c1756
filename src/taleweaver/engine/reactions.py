"""Reaction sourcing.

When something happens to a character the engine asks for a reaction.
Human-controlled characters answer themselves unless the auto-reaction
toggle is on; everyone else is voiced by the Judge from what the
character remembers.

The toggle is read from the latest snapshot each time a reaction is
requested, so an operator flipping it mid-turn takes effect on the next
reaction.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taleweaver.core.config import get_settings
from taleweaver.core.logging import get_logger
from taleweaver.dm.memory import character_memory
from taleweaver.engine.context import local_characters, world_attributes
from taleweaver.engine.triggers import TriggerEvaluator, run_triggers
from taleweaver.models.enums import TriggerPhase
from taleweaver.models.judge import JudgeContext


if TYPE_CHECKING:
    from taleweaver.core.config import MemorySettings
    from taleweaver.dm.judge import Judge
    from taleweaver.engine.store import StateStore

logger = get_logger(__name__)


@dataclass
class ReactionRequest:
    """A reaction awaited from a human player.

    Attributes:
        character_id: The reacting character.
        title: Short label for the presentation layer.
        prompt: What the character is reacting to.
    """

    character_id: str
    title: str
    prompt: str
    future: asyncio.Future[str | None] = field(repr=False)


class ReactionCoordinator:
    """Decides who voices a reaction and records it in the story log."""

    def __init__(
        self,
        store: StateStore,
        judge: Judge,
        triggers: TriggerEvaluator | None = None,
        memory: MemorySettings | None = None,
    ) -> None:
        self.store = store
        self.judge = judge
        self.triggers = triggers or TriggerEvaluator()
        self.memory = memory or get_settings().memory
        self._pending: dict[str, ReactionRequest] = {}

    @property
    def pending(self) -> list[ReactionRequest]:
        """Reactions currently awaited from human players."""
        return list(self._pending.values())

    async def react(self, character_id: str, prompt: str, title: str = "Reaction") -> str:
        """Get a character's reaction and log it.

        Args:
            character_id: The reacting character.
            prompt: Description of what happened to the character.
            title: Short label shown to a human player.

        Returns:
            The reaction text; empty means no reaction.

        Raises:
            JudgeConnectionError: If the Judge cannot be reached.
        """
        state = self.store.snapshot
        char = state.character(character_id)
        if char is None:
            return ""

        if char.is_player and not state.round.auto_reaction:
            speech = await self._await_player(character_id, title, prompt)
        else:
            speech = await self._synthesize(character_id, prompt)

        speech = speech.strip()
        if speech:
            current = self.store.snapshot.character(character_id)
            name = current.name if current is not None else char.name
            await self.store.add_log(f'{name}: "{speech}"', is_reaction=True)
        return speech

    def respond(self, character_id: str, text: str | None) -> bool:
        """Supply a human player's reaction.

        Args:
            character_id: The reacting character.
            text: Reaction text; empty or None means no reaction.

        Returns:
            True if a reaction was awaited for the character.
        """
        request = self._pending.get(character_id)
        if request is None or request.future.done():
            logger.warning("No reaction awaited", character_id=character_id)
            return False
        request.future.set_result(text)
        return True

    async def _await_player(self, character_id: str, title: str, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        request = ReactionRequest(
            character_id=character_id,
            title=title,
            prompt=prompt,
            future=loop.create_future(),
        )
        self._pending[character_id] = request
        logger.info("Awaiting player reaction", character_id=character_id, title=title)
        try:
            text = await request.future
        finally:
            self._pending.pop(character_id, None)
        return text or ""

    async def _synthesize(self, character_id: str, prompt: str) -> str:
        suffix = await run_triggers(
            self.store, self.triggers, TriggerPhase.DETERMINE_REACTION, character_id
        )
        state = self.store.snapshot
        char = state.characters[character_id]
        context = JudgeContext(
            history=character_memory(
                state.world.history,
                character_id,
                state.map.location_of(character_id),
                rounds=self.memory.max_character_memory_rounds,
            ),
            world=world_attributes(state),
            characters=local_characters(state, character_id),
            prompt_suffix=suffix,
        )
        result = await self.judge.determine_reaction(char, prompt, context)
        return result.speech


__all__ = [
    "ReactionRequest",
    "ReactionCoordinator",
]
