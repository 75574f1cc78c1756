"""Turn order resolution.

Automatic order: characters present at the active location, excluding the
incapacitated, with non-environment actors sorted by descending physique
(stable on discovery order) followed by environment actors.

Manual order: an operator-supplied list of character ids. Duplicates and
omissions are both legal; the list becomes both the current order and the
default order reused when rounds auto-advance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from taleweaver.core.constants import WORLD_STATUS_KEY, WORLD_TIME_KEY
from taleweaver.core.exceptions import TurnOrderError
from taleweaver.core.logging import get_logger
from taleweaver.engine.store import stamp_log
from taleweaver.engine.world_time import format_world_time
from taleweaver.models.attributes import AttributeKey
from taleweaver.models.enums import GamePhase, LogType


if TYPE_CHECKING:
    from taleweaver.models.game_state import GameState

logger = get_logger(__name__)


def advance_turn(state: GameState) -> None:
    """Move to the next slot of the turn order."""
    state.round.turn_index += 1
    state.round.active_char_id = None
    state.round.phase = GamePhase.TURN_START


class TurnOrderResolver:
    """Computes and applies the acting sequence of a round."""

    def resolve(self, state: GameState) -> list[str]:
        """Compute the automatic order for the active location.

        Args:
            state: Snapshot to read.

        Returns:
            Character ids: non-environment actors by descending physique,
            then environment actors. May be empty.
        """
        present = state.characters_at(state.map.active_location_id)
        able = [c for c in present if not c.is_incapacitated]
        environment = [c for c in able if c.is_environment]
        others = [c for c in able if not c.is_environment]
        others.sort(key=lambda c: c.number(AttributeKey.PHYSIQUE, 0), reverse=True)
        return [c.id for c in others] + [c.id for c in environment]

    def apply_automatic(self, state: GameState) -> list[str]:
        """Resolve the automatic order and start the round's turns.

        Logs the order (or that nobody can act) and the current story time
        and world status.

        Args:
            state: State to mutate.

        Returns:
            The applied order.
        """
        order = self.resolve(state)
        if order:
            names = ", ".join(self._name(state, cid) for cid in order)
            stamp_log(state, f"System: turn order this round (by physique): [{names}]", type=LogType.SYSTEM)
        else:
            stamp_log(state, "System: nobody at the current location can act.", type=LogType.SYSTEM)

        self._start(state, order)
        stamp_log(
            state,
            f"Story time: {format_world_time(state.world.text(WORLD_TIME_KEY, 'unknown'))}, "
            f"world status: {state.world.text(WORLD_STATUS_KEY, 'unknown')}",
            type=LogType.SYSTEM,
        )
        logger.info("Automatic turn order applied", order=order)
        return order

    def apply_manual(self, state: GameState, order: list[str]) -> list[str]:
        """Apply an operator-supplied order.

        Args:
            state: State to mutate.
            order: Character ids; duplicates and omissions are allowed.

        Returns:
            The applied order.

        Raises:
            TurnOrderError: If an id names no known character.
        """
        unknown = [cid for cid in order if cid not in state.characters]
        if unknown:
            raise TurnOrderError(
                "Manual turn order names unknown characters",
                details={"unknown_ids": unknown},
            )
        state.round.default_order = list(order)
        state.round.is_waiting_for_manual_order = False
        self._start(state, order)
        names = ", ".join(self._name(state, cid) for cid in order)
        stamp_log(state, f"System: manual turn order: [{names}]", type=LogType.SYSTEM)
        logger.info("Manual turn order applied", order=order)
        return list(order)

    def reuse_manual(self, state: GameState) -> list[str]:
        """Reuse the previous manual order without waiting for the operator."""
        order = list(state.round.default_order)
        state.round.is_waiting_for_manual_order = False
        self._start(state, order)
        names = ", ".join(self._name(state, cid) for cid in order)
        stamp_log(
            state,
            f"System: auto-advancing with the previous manual turn order: [{names}]",
            type=LogType.SYSTEM,
        )
        return order

    def request_manual(self, state: GameState) -> None:
        """Wait for the operator, pre-filling the order to edit."""
        state.round.is_waiting_for_manual_order = True
        state.round.current_order = list(state.round.default_order) or list(state.characters)

    @staticmethod
    def _start(state: GameState, order: list[str]) -> None:
        state.round.current_order = list(order)
        state.round.turn_index = 0
        state.round.active_char_id = None
        state.round.phase = GamePhase.TURN_START

    @staticmethod
    def _name(state: GameState, char_id: str) -> str:
        char = state.character(char_id)
        return char.name if char is not None else char_id


__all__ = [
    "TurnOrderResolver",
    "advance_turn",
]
