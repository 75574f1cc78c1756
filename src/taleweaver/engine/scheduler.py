"""Round state machine.

The RoundScheduler drives a round through its phases::

    init -> order -> turn_start -> char_acting -> (executing) -> turn_start ...
         -> settlement -> round_end -> init

``step()`` evaluates the current phase once. It does nothing while the
round is paused, while it waits for a manual turn order, or while another
operation is still in flight. A failing phase pauses the round and records
the error; ``resume()`` re-enters the same phase.

Example:
    >>> scheduler = RoundScheduler(GameState(...), judge)
    >>> await scheduler.resume()
    >>> await scheduler.run()
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from taleweaver.core.config import Settings, get_settings
from taleweaver.core.exceptions import InvalidGameStateError
from taleweaver.core.logging import bind_context, configure_logging, get_logger
from taleweaver.engine.actions import ActionProcessor
from taleweaver.engine.lottery import LotteryEngine
from taleweaver.engine.reactions import ReactionCoordinator, ReactionRequest
from taleweaver.engine.settlement import SettlementResolver
from taleweaver.engine.skills import SkillEffectResolver
from taleweaver.engine.store import StateStore, stamp_log
from taleweaver.engine.triggers import TriggerEvaluator
from taleweaver.engine.turn_order import TurnOrderResolver, advance_turn
from taleweaver.models.enums import GamePhase, LogType
from taleweaver.models.game_state import GameState


if TYPE_CHECKING:
    from taleweaver.dm.judge import Judge
    from taleweaver.models.commands import PlayerTurn

logger = get_logger(__name__)


class RoundScheduler:
    """Drives rounds, turns and settlement over one StateStore.

    Attributes:
        store: The state store owning the game state.
        judge: The Judge used by every resolver.
        settings: Application settings.
    """

    def __init__(
        self,
        state: GameState | StateStore,
        judge: Judge,
        *,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = state if isinstance(state, StateStore) else StateStore(state)
        self.judge = judge
        self.settings = settings or get_settings()
        configure_logging(self.settings)
        rng = rng or random.Random()

        gameplay = self.settings.gameplay
        memory = self.settings.memory
        self.triggers = TriggerEvaluator(
            self.settings.global_variables, memory.max_history_entries
        )
        self.turn_order = TurnOrderResolver()
        self.lottery = LotteryEngine(rng, gameplay.peek_ceiling)
        self.reactions = ReactionCoordinator(self.store, judge, self.triggers, memory)
        self.skills = SkillEffectResolver(
            self.store, judge, self.reactions, self.triggers, rng=rng, memory=memory
        )
        self.settlement = SettlementResolver(
            self.store, judge, self.triggers, rng=rng, gameplay=gameplay, memory=memory
        )
        self.actions = ActionProcessor(
            self.store,
            judge,
            self.skills,
            self.reactions,
            self.lottery,
            self.triggers,
            rng=rng,
            gameplay=gameplay,
            memory=memory,
        )
        self._in_flight = False

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        """The latest committed snapshot."""
        return self.store.snapshot

    @property
    def in_flight(self) -> bool:
        """Whether a phase step or submitted turn is running."""
        return self._in_flight

    @property
    def awaiting_player(self) -> str | None:
        """Id of the human player whose turn input is awaited, if any."""
        round_state = self.store.snapshot.round
        if round_state.phase is not GamePhase.CHAR_ACTING or self._in_flight:
            return None
        char = self.store.snapshot.character(round_state.active_char_id)
        if char is None or not char.is_player:
            return None
        return char.id

    @property
    def pending_reactions(self) -> list[ReactionRequest]:
        """Reactions awaited from human players."""
        return self.reactions.pending

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    async def step(self) -> bool:
        """Evaluate the current phase once.

        Returns:
            False if the step was gated (paused, waiting for a manual order
            or already in flight), True otherwise.
        """
        round_state = self.store.snapshot.round
        if self._in_flight or round_state.is_paused or round_state.is_waiting_for_manual_order:
            return False

        self._in_flight = True
        bind_context(round=round_state.round_number, phase=round_state.phase.value)
        try:
            await self._dispatch(round_state.phase)
        except Exception as exc:
            await self._fail(exc)
        finally:
            self._in_flight = False
        return True

    async def run(self, max_steps: int | None = None) -> int:
        """Step until the machine blocks.

        The machine blocks when it is paused, waits for a manual order or a
        human turn, or a step changes nothing.

        Args:
            max_steps: Optional bound on the number of steps.

        Returns:
            The number of steps taken.
        """
        steps = 0
        while max_steps is None or steps < max_steps:
            version = self.store.version
            if not await self.step():
                break
            steps += 1
            if self.store.version == version:
                break
        return steps

    async def _dispatch(self, phase: GamePhase) -> None:
        if phase is GamePhase.INIT:
            await self.store.apply(_enter_order, label="init")
        elif phase is GamePhase.ORDER:
            await self._order_phase()
        elif phase is GamePhase.TURN_START:
            await self.store.apply(_start_turn, label="turn_start")
        elif phase is GamePhase.CHAR_ACTING:
            await self._char_acting()
        elif phase is GamePhase.EXECUTING:
            # An interrupted player batch: the rest of it is dropped.
            await self.store.apply(advance_turn, label="advance_turn")
        elif phase is GamePhase.SETTLEMENT:
            await self.settlement.settle()
        elif phase is GamePhase.ROUND_END:
            await self.store.apply(self._end_round, label="round_end")

    async def _order_phase(self) -> None:
        round_state = self.store.snapshot.round
        if not round_state.use_manual_turn_order:
            await self.store.apply(self.turn_order.apply_automatic, label="turn_order")
        elif round_state.auto_advance_count > 0 and round_state.default_order:
            await self.store.apply(self.turn_order.reuse_manual, label="turn_order")
        else:
            await self.store.apply(self.turn_order.request_manual, label="turn_order_wait")
            logger.info("Waiting for manual turn order")

    async def _char_acting(self) -> None:
        state = self.store.snapshot
        char = state.character(state.round.active_char_id)
        if char is None:
            await self.store.apply(advance_turn, label="advance_turn")
            return

        if char.is_incapacitated:
            def skip(s: GameState) -> None:
                stamp_log(s, f"> System: {char.name} is incapacitated, skipping turn.")
                advance_turn(s)

            await self.store.apply(skip, label="skip_turn")
            return

        if char.is_player:
            logger.debug("Awaiting player turn", char_id=char.id)
            return

        await self.actions.perform_ai_turn(char.id)

    def _end_round(self, state: GameState) -> None:
        round_state = state.round
        round_state.round_number += 1
        round_state.turn_index = 0
        round_state.phase = GamePhase.INIT
        round_state.current_order = []
        round_state.active_char_id = None
        round_state.auto_advance_count = max(0, round_state.auto_advance_count - 1)
        round_state.is_paused = round_state.auto_advance_count == 0
        round_state.action_points += self.settings.gameplay.ap_recovery_per_round
        stamp_log(state, f"--- Round {round_state.round_number} begins ---", type=LogType.SYSTEM)
        logger.info(
            "Round ended",
            next_round=round_state.round_number,
            auto_advance_count=round_state.auto_advance_count,
        )

    async def _fail(self, exc: Exception) -> None:
        logger.exception("Phase step failed", error=str(exc))
        message = str(exc) or type(exc).__name__

        def pause(state: GameState) -> None:
            state.round.is_paused = True
            state.round.last_error_message = message
            stamp_log(
                state,
                f"System error: {message}. The round is paused; resume to retry.",
                type=LogType.SYSTEM,
            )

        await self.store.apply(pause, label="pause_on_error")

    # -------------------------------------------------------------------------
    # Operator and player entry points
    # -------------------------------------------------------------------------

    async def resume(self) -> None:
        """Clear the last error and un-pause; the current phase re-enters."""

        def mutate(state: GameState) -> None:
            state.round.last_error_message = None
            state.round.is_paused = False

        await self.store.apply(mutate, label="resume")

    async def pause(self) -> None:
        """Pause the round; an in-flight call finishes but nothing new starts."""

        def mutate(state: GameState) -> None:
            state.round.is_paused = True

        await self.store.apply(mutate, label="pause")

    async def set_manual_order(self, order: list[str]) -> list[str]:
        """Supply a manual turn order for the round being ordered.

        Args:
            order: Character ids; duplicates and omissions are allowed.

        Returns:
            The applied order.

        Raises:
            InvalidGameStateError: If turns of the round already started.
            TurnOrderError: If an id names no known character.
        """
        phase = self.store.snapshot.round.phase
        if phase not in (GamePhase.INIT, GamePhase.ORDER):
            raise InvalidGameStateError(
                "Turn order can only be set before turns start",
                current_phase=phase.value,
                expected_phases=[GamePhase.INIT.value, GamePhase.ORDER.value],
            )
        return await self.store.apply(
            lambda s: self.turn_order.apply_manual(s, order),
            label="manual_order",
        )

    async def submit_turn(self, turn: PlayerTurn) -> None:
        """Submit the awaited human player's turn.

        Failures pause the round like a failing phase step.

        Args:
            turn: The player's speech, queued actions and duration.

        Raises:
            InvalidGameStateError: If no human turn is awaited.
        """
        char_id = self.awaiting_player
        if char_id is None:
            raise InvalidGameStateError(
                "No human player turn is awaited",
                current_phase=self.store.snapshot.round.phase.value,
                expected_phases=[GamePhase.CHAR_ACTING.value],
            )

        self._in_flight = True
        try:
            await self.actions.submit_player_turn(char_id, turn)
        except Exception as exc:
            await self._fail(exc)
        finally:
            self._in_flight = False

    def respond_to_reaction(self, char_id: str, text: str | None) -> bool:
        """Supply a human player's reaction text (empty means no reaction)."""
        return self.reactions.respond(char_id, text)

    async def set_auto_advance(self, count: int) -> None:
        """Set how many rounds run without pausing at round end."""

        def mutate(state: GameState) -> None:
            state.round.auto_advance_count = max(0, count)

        await self.store.apply(mutate, label="auto_advance")

    async def toggle_auto_reaction(self, enabled: bool) -> None:
        """Let the Judge voice human players' reactions."""

        def mutate(state: GameState) -> None:
            state.round.auto_reaction = enabled

        await self.store.apply(mutate, label="auto_reaction")

    async def close(self) -> None:
        """Stop the state store worker."""
        await self.store.close()


def _enter_order(state: GameState) -> None:
    state.round.phase = GamePhase.ORDER


def _start_turn(state: GameState) -> None:
    round_state = state.round
    if round_state.turn_index >= len(round_state.current_order):
        round_state.active_char_id = None
        round_state.phase = GamePhase.SETTLEMENT
        return
    char_id = round_state.current_order[round_state.turn_index]
    if char_id not in state.characters:
        logger.warning("Unknown character in turn order", char_id=char_id)
        round_state.turn_index += 1
        return
    round_state.active_char_id = char_id
    round_state.phase = GamePhase.CHAR_ACTING


__all__ = [
    "RoundScheduler",
]
