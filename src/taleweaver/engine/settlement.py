"""End-of-round settlement.

Settlement asks the Judge which open conflicts of the round's participants
were solved and which of their drives were fulfilled, credits the rewards,
applies the universal pleasure and drive-weight decay and finally rolls for
a change of world status.

Conflict crediting is first-match-wins and credit-once: solved ids are
deduplicated before application and a conflict that is already solved is
never credited again.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taleweaver.core.config import get_settings
from taleweaver.core.constants import DEFAULT_NUMBER_ATTRIBUTE, WORLD_STATUS_KEY
from taleweaver.core.logging import get_logger
from taleweaver.dm.memory import global_memory
from taleweaver.engine.context import world_attributes
from taleweaver.engine.store import stamp_log
from taleweaver.engine.triggers import TriggerEvaluator, run_triggers
from taleweaver.models.attributes import AttributeKey, GameAttribute
from taleweaver.models.enums import AttributeType, GamePhase, LogType, TriggerPhase
from taleweaver.models.judge import JudgeContext, SettlementResult


if TYPE_CHECKING:
    from taleweaver.core.config import GameplaySettings, MemorySettings
    from taleweaver.dm.judge import Judge
    from taleweaver.engine.store import StateStore
    from taleweaver.models.character import Character, Conflict, Drive
    from taleweaver.models.game_state import GameState

logger = get_logger(__name__)

SETTLEMENT_HEADER = "--- Settlement ---"


@dataclass
class SettlementOutcome:
    """What a settlement changed.

    Attributes:
        skipped: Whether settlement was bypassed for the round.
        solved_conflict_ids: Conflicts marked solved (each credited once).
        fulfilled_drive_ids: Drives rewarded.
        cp_awarded: CP credited per character id.
        world_status: The new world status, if it changed.
    """

    skipped: bool = False
    solved_conflict_ids: list[str] = field(default_factory=list)
    fulfilled_drive_ids: list[str] = field(default_factory=list)
    cp_awarded: dict[str, int] = field(default_factory=dict)
    world_status: str | None = None


def participants(state: GameState) -> list[Character]:
    """Non-environment characters in the round's order, each once."""
    seen: set[str] = set()
    result: list[Character] = []
    for char_id in state.round.current_order:
        char = state.character(char_id)
        if char is None or char.is_environment or char_id in seen:
            continue
        seen.add(char_id)
        result.append(char)
    return result


class SettlementResolver:
    """Resolves conflicts, drives, decay and world status at round end."""

    def __init__(
        self,
        store: StateStore,
        judge: Judge,
        triggers: TriggerEvaluator | None = None,
        *,
        rng: random.Random | None = None,
        gameplay: GameplaySettings | None = None,
        memory: MemorySettings | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.judge = judge
        self.triggers = triggers or TriggerEvaluator()
        self.rng = rng or random.Random()
        self.gameplay = gameplay or settings.gameplay
        self.memory = memory or settings.memory

    async def settle(self) -> SettlementOutcome:
        """Run the settlement phase and move the round to ``round_end``.

        Returns:
            What the settlement changed.

        Raises:
            JudgeConnectionError: If the Judge cannot be reached.
        """
        state = self.store.snapshot
        if state.round.skip_settlement:
            await self.store.apply(_to_round_end, label="settlement_skipped")
            logger.info("Settlement skipped", round=state.round.round_number)
            return SettlementOutcome(skipped=True)

        await self.store.apply(_open_settlement, label="settlement_header")

        state = self.store.snapshot
        members = participants(state)
        conflicts: list[Conflict] = [c for m in members for c in m.unsolved_conflicts()]
        drives: list[Drive] = [d for m in members for d in m.drives]

        verdict = SettlementResult()
        if conflicts or drives:
            suffix = await run_triggers(self.store, self.triggers, TriggerPhase.RESOLVE_SETTLEMENT)
            state = self.store.snapshot
            context = JudgeContext(
                history=global_memory(
                    state.world.history,
                    state.round.round_number,
                    rounds=self.memory.max_short_history_rounds,
                    limit=self.memory.max_history_entries,
                ),
                world=world_attributes(state),
                prompt_suffix=suffix,
            )
            verdict = await self.judge.resolve_settlement(conflicts, drives, context)

        member_ids = [m.id for m in members]
        return await self.store.apply(
            lambda s: self.apply_verdict(s, member_ids, verdict),
            label="settlement",
        )

    def apply_verdict(
        self,
        state: GameState,
        member_ids: list[str],
        verdict: SettlementResult,
    ) -> SettlementOutcome:
        """Apply a settlement verdict, decay and the world-status roll.

        Args:
            state: State to mutate.
            member_ids: Participating non-environment characters.
            verdict: The Judge's verdict.

        Returns:
            What changed.
        """
        outcome = SettlementOutcome()
        members = [state.characters[cid] for cid in member_ids if cid in state.characters]

        for conflict_id in dict.fromkeys(verdict.solved_conflict_ids):
            self._credit_conflict(state, members, conflict_id, outcome)

        for drive_id in dict.fromkeys(verdict.fulfilled_drive_ids):
            self._fulfil_drive(state, members, drive_id, outcome)

        for char in members:
            self._decay(char)

        outcome.world_status = self._roll_world_status(state)
        state.round.phase = GamePhase.ROUND_END
        return outcome

    def _credit_conflict(
        self,
        state: GameState,
        members: list[Character],
        conflict_id: str,
        outcome: SettlementOutcome,
    ) -> None:
        for char in members:
            conflict = next((c for c in char.conflicts if c.id == conflict_id), None)
            if conflict is None:
                continue
            if conflict.solved:
                logger.debug("Conflict already solved", conflict_id=conflict_id)
                return
            conflict.solved = True
            conflict.solved_at = state.round.round_number
            char.ensure_attribute(AttributeKey.CP, value=0).apply_delta(conflict.ap_reward)
            state.round.action_points += conflict.ap_reward
            outcome.solved_conflict_ids.append(conflict_id)
            outcome.cp_awarded[char.id] = outcome.cp_awarded.get(char.id, 0) + conflict.ap_reward
            stamp_log(
                state,
                f"> Conflict resolved: {char.name} overcame \"{conflict.desc}\" "
                f"(+{conflict.ap_reward} CP)",
            )
            logger.info(
                "Conflict credited",
                char_id=char.id,
                conflict_id=conflict_id,
                reward=conflict.ap_reward,
            )
            return
        logger.warning("Solved conflict not found", conflict_id=conflict_id)

    def _fulfil_drive(
        self,
        state: GameState,
        members: list[Character],
        drive_id: str,
        outcome: SettlementOutcome,
    ) -> None:
        cap = self.gameplay.pleasure_cap
        for char in members:
            drive = next((d for d in char.drives if d.id == drive_id), None)
            if drive is None:
                continue
            pleasure = char.attributes.get(AttributeKey.PLEASURE)
            if pleasure is None:
                char.attributes[AttributeKey.PLEASURE] = GameAttribute(
                    key=AttributeKey.PLEASURE,
                    type=AttributeType.NUMBER,
                    value=min(cap, DEFAULT_NUMBER_ATTRIBUTE + drive.amount),
                )
            elif pleasure.is_number:
                pleasure.set_value(min(cap, (pleasure.number or 0) + drive.amount))
            drive.weight += self.gameplay.drive_fulfilment_bonus
            outcome.fulfilled_drive_ids.append(drive_id)
            stamp_log(
                state,
                f"> Drive fulfilled: {char.name} satisfied \"{drive.condition}\" "
                f"(+{drive.amount} pleasure)",
            )
            return
        logger.warning("Fulfilled drive not found", drive_id=drive_id)

    def _decay(self, char: Character) -> None:
        pleasure = char.attributes.get(AttributeKey.PLEASURE)
        if pleasure is not None and pleasure.is_number:
            pleasure.set_value(max(0, (pleasure.number or 0) - self.gameplay.pleasure_decay))
        for drive in char.drives:
            drive.weight -= self.gameplay.drive_weight_decay
        char.drives = [d for d in char.drives if d.weight > 0]

    def _roll_world_status(self, state: GameState) -> str | None:
        if self.rng.random() >= self.gameplay.world_status_change_probability:
            return None
        distribution = [s for s in self.gameplay.world_status_distribution if s.weight > 0]
        if not distribution:
            return None
        status = self.rng.choices(
            [s.name for s in distribution],
            weights=[s.weight for s in distribution],
        )[0]
        attr = state.world.attributes.get(WORLD_STATUS_KEY)
        if attr is None:
            state.world.attributes[WORLD_STATUS_KEY] = GameAttribute(
                key=WORLD_STATUS_KEY,
                type=AttributeType.TEXT,
                value=status,
            )
        else:
            attr.set_value(status)
        stamp_log(state, f"System: world status changed to [{status}]", type=LogType.SYSTEM)
        logger.info("World status changed", status=status)
        return status


def _open_settlement(state: GameState) -> None:
    # A settlement resumed after an error keeps its original header.
    round_number = state.round.round_number
    if not any(
        e.round == round_number and e.content == SETTLEMENT_HEADER for e in state.world.history
    ):
        stamp_log(state, SETTLEMENT_HEADER, type=LogType.SYSTEM)


def _to_round_end(state: GameState) -> None:
    state.round.phase = GamePhase.ROUND_END


__all__ = [
    "SETTLEMENT_HEADER",
    "SettlementOutcome",
    "SettlementResolver",
    "participants",
]
