"""Turn action processing.

The ActionProcessor turns a decided turn into story log entries and state
changes. AI characters get their turn from the Judge; human players submit
a ``PlayerTurn`` holding their speech and queued actions.

Commands run one at a time in order and the snapshot is re-read before
each one. Once the round is paused no further command starts.
"""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING

from taleweaver.core.config import get_settings
from taleweaver.core.constants import ARRIVAL_CONFLICT_DESC, WORLD_STATUS_KEY, WORLD_TIME_KEY
from taleweaver.core.exceptions import TransactionError
from taleweaver.core.logging import get_logger
from taleweaver.dm.memory import global_memory
from taleweaver.engine.context import (
    held_cards,
    local_characters,
    location_text,
    world_attributes,
)
from taleweaver.engine.lottery import LotteryEngine, LotteryOutcome
from taleweaver.engine.store import stamp_log
from taleweaver.engine.triggers import TriggerEvaluator, run_triggers
from taleweaver.engine.turn_order import advance_turn
from taleweaver.engine.world_time import advance_world_time, format_world_time, parse_time_delta
from taleweaver.models.attributes import AttributeKey, GameAttribute, coerce_number, display_name
from taleweaver.models.cards import Card, new_id
from taleweaver.models.character import Conflict, Drive
from taleweaver.models.commands import (
    CreateAttributeCommand,
    CreateCardCommand,
    LotteryCommand,
    MoveToCommand,
    RedeemCardCommand,
    UpdateAttributeCommand,
    UseSkillCommand,
    order_pending_actions,
    parse_commands,
)
from taleweaver.models.enums import AttributeType, GamePhase, LogType, LotteryAction, TriggerPhase
from taleweaver.models.game_state import CharPosition
from taleweaver.models.judge import JudgeContext, TurnAction


if TYPE_CHECKING:
    from taleweaver.core.config import GameplaySettings, MemorySettings
    from taleweaver.dm.judge import Judge
    from taleweaver.engine.reactions import ReactionCoordinator
    from taleweaver.engine.skills import SkillEffectResolver
    from taleweaver.engine.store import StateStore
    from taleweaver.models.character import Character
    from taleweaver.models.commands import Command, PlayerTurn
    from taleweaver.models.game_state import GameState, Location

logger = get_logger(__name__)

NEARBY_DISTANCE = 1000.0
"""Map distance within which locations count as reachable destinations."""

AI_CARD_DESCRIPTION = "AI generated skill"


# =============================================================================
# Helpers
# =============================================================================


def tick_world_time(state: GameState, seconds: int) -> None:
    """Advance the story clock and log the new time, unless time is paused."""
    if state.round.is_world_time_paused:
        return
    clock = state.world.attributes.get(WORLD_TIME_KEY)
    if clock is None:
        return
    clock.set_value(advance_world_time(str(clock.value), seconds))
    stamp_log(
        state,
        f"Story time: {format_world_time(str(clock.value))}, "
        f"world status: {state.world.text(WORLD_STATUS_KEY, 'unknown')}",
        type=LogType.SYSTEM,
    )


def _distance(a: Location, b: Location) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def nearby_locations(state: GameState, location_id: str | None) -> list[Location]:
    """Other locations within walking distance of a location."""
    origin = state.map.locations.get(location_id) if location_id else None
    if origin is None:
        return []
    return [
        loc for loc in state.map.locations.values()
        if loc.id != origin.id and _distance(origin, loc) <= NEARBY_DISTANCE
    ]


# =============================================================================
# Processor
# =============================================================================


class ActionProcessor:
    """Executes AI and human turns."""

    def __init__(
        self,
        store: StateStore,
        judge: Judge,
        skills: SkillEffectResolver,
        reactions: ReactionCoordinator,
        lottery: LotteryEngine | None = None,
        triggers: TriggerEvaluator | None = None,
        *,
        rng: random.Random | None = None,
        gameplay: GameplaySettings | None = None,
        memory: MemorySettings | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.judge = judge
        self.skills = skills
        self.reactions = reactions
        self.rng = rng or random.Random()
        self.lottery = lottery or LotteryEngine(self.rng)
        self.triggers = triggers or TriggerEvaluator()
        self.gameplay = gameplay or settings.gameplay
        self.memory = memory or settings.memory

    # -------------------------------------------------------------------------
    # Turns
    # -------------------------------------------------------------------------

    async def perform_ai_turn(self, char_id: str) -> TurnAction:
        """Let the Judge decide and execute an AI character's turn.

        Args:
            char_id: The acting character.

        Returns:
            The Judge's decision.

        Raises:
            JudgeConnectionError: If the Judge cannot be reached.
        """
        suffix = await run_triggers(
            self.store, self.triggers, TriggerPhase.DETERMINE_ACTION, char_id
        )
        state = self.store.snapshot
        char = state.character(char_id)
        if char is None:
            await self.store.apply(advance_turn, label="advance_turn")
            return TurnAction()

        action = await self.judge.determine_action(char, self.action_context(state, char, suffix))
        logger.info(
            "AI turn decided",
            char_id=char_id,
            commands=len(action.commands),
            time_passed=action.time_passed,
        )
        await self.store.apply(
            lambda s: self._record_ai_turn(s, char_id, action),
            label="ai_turn",
        )

        for command in parse_commands(action.commands):
            if self.store.snapshot.round.is_paused:
                logger.info("Round paused, dropping remaining commands", char_id=char_id)
                break
            await self.execute(char_id, command)

        await self.store.apply(advance_turn, label="advance_turn")
        return action

    async def submit_player_turn(self, char_id: str, turn: PlayerTurn) -> None:
        """Execute a human player's submitted turn.

        Queued actions run in submission order except that movement always
        comes last.

        Args:
            char_id: The acting character.
            turn: Speech, queued actions and the time the turn takes.
        """
        await self.store.apply(
            lambda s: self._record_player_turn(s, char_id, turn),
            label="player_turn",
        )
        for action in order_pending_actions(turn.actions):
            if self.store.snapshot.round.is_paused:
                logger.info("Round paused, dropping remaining actions", char_id=char_id)
                break
            await self.execute(char_id, action)

        if not self.store.snapshot.round.is_paused:
            await self.store.apply(advance_turn, label="advance_turn")

    def action_context(self, state: GameState, char: Character, suffix: str = "") -> JudgeContext:
        """Build the context for an AI character's decision."""
        location_id = state.map.location_of(char.id)
        destinations = [
            loc.name if loc.is_known else f"an unknown place ({loc.id})"
            for loc in nearby_locations(state, location_id)
        ]
        cards = [
            card for card in held_cards(state, char)
            if card["trigger_type"] in ("active", "reaction")
        ]
        pools = [
            {
                "id": pool.id,
                "name": pool.name,
                "description": pool.description,
                "items_left": len(pool.items),
            }
            for pool in state.prize_pools.values()
            if pool.is_reachable_from(location_id)
        ]
        return JudgeContext(
            history=global_memory(
                state.world.history,
                state.round.round_number,
                rounds=self.memory.max_history_rounds,
                limit=self.memory.max_history_entries,
            ),
            world=world_attributes(state),
            location=location_text(state, location_id),
            guidance=state.world.guidance,
            characters=local_characters(state, char.id),
            cards=cards,
            prize_pools=pools,
            destinations=destinations,
            prompt_suffix=suffix,
        )

    def _record_ai_turn(self, state: GameState, char_id: str, action: TurnAction) -> None:
        char = state.characters[char_id]
        if action.narrative:
            stamp_log(state, action.narrative)
        if action.speech:
            stamp_log(state, f'{char.name}: "{action.speech}"')

        seconds = (
            parse_time_delta(action.time_passed)
            if action.time_passed
            else self.gameplay.default_turn_seconds
        )
        tick_world_time(state, seconds)

        for generated in action.generated_conflicts:
            target = state.character(generated.target_char_id)
            if target is None:
                logger.warning("Conflict for unknown character", target_id=generated.target_char_id)
                continue
            target.conflicts.append(
                Conflict(
                    id=str(state.next_conflict_id()),
                    desc=generated.desc,
                    ap_reward=generated.ap_reward,
                )
            )

        for generated in action.generated_drives:
            target = state.character(generated.target_char_id)
            if target is None:
                logger.warning("Drive for unknown character", target_id=generated.target_char_id)
                continue
            target.drives.append(
                Drive(
                    condition=generated.drive.condition,
                    amount=generated.amount,
                    weight=generated.drive.weight or self.gameplay.default_drive_weight,
                )
            )

    def _record_player_turn(self, state: GameState, char_id: str, turn: PlayerTurn) -> None:
        char = state.characters[char_id]
        speech = turn.speech.strip()
        if speech:
            stamp_log(state, f'{char.name}: "{speech}"')
        elif not turn.actions:
            stamp_log(state, f"> {char.name} let the moment pass.")

        seconds = (
            turn.duration_seconds
            if turn.duration_seconds is not None
            else self.gameplay.player_turn_seconds
        )
        tick_world_time(state, seconds)
        state.round.phase = GamePhase.EXECUTING

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def execute(self, char_id: str, command: Command) -> None:
        """Execute one validated command for a character.

        Transaction failures abort only this command.

        Args:
            char_id: The acting character.
            command: The command.
        """
        if self.store.snapshot.character(char_id) is None:
            logger.warning("Command for unknown character", char_id=char_id)
            return

        if isinstance(command, UseSkillCommand):
            await self._use_skill(char_id, command)
        elif isinstance(command, LotteryCommand):
            await self._lottery(char_id, command)
        elif isinstance(command, CreateCardCommand):
            await self.store.apply(lambda s: self._create_card(s, char_id, command), label="create_card")
        elif isinstance(command, CreateAttributeCommand):
            await self.store.apply(
                lambda s: self._create_attributes(s, char_id, command), label="create_attribute"
            )
        elif isinstance(command, UpdateAttributeCommand):
            await self.store.apply(
                lambda s: self._update_attributes(s, char_id, command), label="update_attribute"
            )
        elif isinstance(command, MoveToCommand):
            await self.store.apply(lambda s: self._move(s, char_id, command), label="move_to")
        elif isinstance(command, RedeemCardCommand):
            await self.store.apply(lambda s: self._redeem(s, command), label="redeem_card")

    @staticmethod
    def _resolve_card(state: GameState, char: Character, reference: str) -> Card | None:
        card = state.find_card(char, reference)
        if card is not None:
            return card
        for held in char.skills:
            if held.name == reference:
                return held
        for card_id in char.inventory:
            held = state.card(card_id)
            if held is not None and held.name == reference:
                return held
        return None

    async def _use_skill(self, char_id: str, command: UseSkillCommand) -> None:
        state = self.store.snapshot
        char = state.characters[char_id]
        card = self._resolve_card(state, char, command.skill_id)
        if card is None:
            await self.store.add_log(f"> {char.name} reached for a card they do not have.")
            logger.warning("Unknown card used", char_id=char_id, skill_id=command.skill_id)
            return
        if not card.trigger_type.is_usable:
            await self.store.add_log(
                f"> [{card.name}] is a {card.trigger_type.value} card and cannot be used directly."
            )
            return

        await self.store.add_log(f"{char.name} used [{card.name}]", type=LogType.ACTION)
        await self.skills.execute(card, char_id, command.target_id, command.effect_overrides)

    async def _lottery(self, char_id: str, command: LotteryCommand) -> None:
        def run(state: GameState) -> LotteryOutcome:
            outcome = self.lottery.execute(state, char_id, command)
            stamp_log(state, outcome.message)
            return outcome

        try:
            outcome: LotteryOutcome = await self.store.apply(run, label="lottery")
        except TransactionError as exc:
            await self.store.add_log(f"> {exc.message}")
            logger.info("Lottery aborted", char_id=char_id, reason=exc.message)
            return

        if outcome.action is LotteryAction.DRAW and outcome.items and outcome.reveal:
            pool = self.store.snapshot.prize_pools.get(command.pool_id)
            pool_name = pool.name if pool is not None else command.pool_id
            await self.reactions.react(
                char_id,
                f"I just drew {outcome.item_names} from [{pool_name}].",
                title="Lottery",
            )

    def _create_card(self, state: GameState, char_id: str, command: CreateCardCommand) -> None:
        char = state.characters[char_id]
        cost = self.gameplay.default_creation_cost
        cp = char.number(AttributeKey.CP, 0)
        requested = command.created_card
        if cp < cost:
            stamp_log(
                state,
                f"> {char.name} lacks the CP to create [{requested.name}] ({cp}/{cost}).",
            )
            return

        card = state.find_card_by_name(requested.name, requested.description or AI_CARD_DESCRIPTION)
        if card is None:
            card = requested.model_copy(
                update={
                    "id": new_id("card_ai"),
                    "description": requested.description or AI_CARD_DESCRIPTION,
                }
            )
            state.card_pool[card.id] = card

        char.ensure_attribute(AttributeKey.CP, value=0).apply_delta(-cost)
        char.inventory.append(card.id)
        stamp_log(state, f"> {char.name} created the card [{card.name}] (-{cost} CP)")
        logger.info("Card created", char_id=char_id, card_id=card.id, cost=cost)

    @staticmethod
    def _create_attributes(state: GameState, char_id: str, command: CreateAttributeCommand) -> None:
        for grant in command.created_attributes:
            target = state.character(grant.target_id or char_id)
            if target is None:
                logger.warning("Attribute for unknown character", target_id=grant.target_id)
                continue
            attr = grant.attribute
            if attr.key in target.attributes:
                continue
            target.attributes[attr.key] = attr.model_copy()
            stamp_log(
                state,
                f"> New attribute: {target.name} gained [{attr.name or display_name(attr.key)}] "
                f"= {attr.value}",
            )

    @staticmethod
    def _update_attributes(state: GameState, char_id: str, command: UpdateAttributeCommand) -> None:
        char = state.characters[char_id]
        for update in command.attribute_updates:
            if update.target == "world":
                owner, attributes = "World", state.world.attributes
            else:
                owner, attributes = char.name, char.attributes

            attr = attributes.get(update.key)
            if attr is None:
                is_number = coerce_number(update.value) is not None
                attr = GameAttribute(
                    key=update.key,
                    type=AttributeType.NUMBER if is_number else AttributeType.TEXT,
                    value=update.value,
                )
                attributes[update.key] = attr
            elif attr.is_number and coerce_number(update.value) is None:
                logger.warning("Non-numeric update ignored", key=update.key, value=update.value)
                continue
            else:
                attr.set_value(update.value)
            if update.visibility is not None:
                attr.visibility = update.visibility
            stamp_log(state, f"> Attribute updated: {owner} {display_name(update.key)} = {attr.value}")

    def _match_destination(
        self,
        state: GameState,
        name: str,
        current: str | None,
    ) -> Location | None:
        candidates = [loc for loc in state.map.locations.values() if loc.id != current]
        wanted = name.strip().casefold()
        for loc in candidates:
            if loc.name == name or loc.id == name:
                return loc
        for loc in candidates:
            if loc.name.casefold() == wanted:
                return loc
        for loc in candidates:
            lowered = loc.name.casefold()
            if wanted and (wanted in lowered or lowered in wanted):
                return loc

        unknown = [loc for loc in nearby_locations(state, current) if not loc.is_known]
        return self.rng.choice(unknown) if unknown else None

    def _move(self, state: GameState, char_id: str, command: MoveToCommand) -> None:
        char = state.characters[char_id]
        current = state.map.location_of(char_id)
        destination = self._match_destination(state, command.destination_name, current)
        if destination is None:
            stamp_log(state, f"> {char.name} found no way to [{command.destination_name}].")
            return

        position = state.map.char_positions.get(char_id) or CharPosition()
        position.location_id = destination.id
        position.x = destination.x
        position.y = destination.y
        state.map.char_positions[char_id] = position

        char.conflicts.append(
            Conflict(
                id=str(state.next_conflict_id()),
                desc=ARRIVAL_CONFLICT_DESC,
                ap_reward=self.gameplay.arrival_conflict_reward,
            )
        )
        label = destination.name if destination.is_known else "an unknown place"
        stamp_log(
            state,
            f"> {char.name} moved to {label}.",
            location_id=current,
            present_char_ids=[c.id for c in state.characters_at(current)] + [char_id],
        )
        logger.info("Character moved", char_id=char_id, location_id=destination.id)

    @staticmethod
    def _redeem(state: GameState, command: RedeemCardCommand) -> bool:
        target = state.character(command.target_char_id)
        old_card = state.card(command.old_card_id)
        if target is None or not target.remove_card_instance(command.old_card_id):
            stamp_log(state, "> [System] Redeem failed: the card is not held.")
            return False

        new_card = command.new_card.model_copy(update={"id": new_id("card_redeem")})
        state.card_pool[new_card.id] = new_card
        target.inventory.append(new_card.id)
        old_name = old_card.name if old_card is not None else command.old_card_id
        stamp_log(
            state,
            f"> [System] Reward redeemed: {target.name} exchanged [{old_name}] for [{new_card.name}]",
        )
        return True


__all__ = [
    "ActionProcessor",
    "NEARBY_DISTANCE",
    "nearby_locations",
    "tick_world_time",
]
