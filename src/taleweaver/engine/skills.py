"""Card resolution.

The SkillEffectResolver executes one card from a source character against
an optional target:

1. Cards without effects succeed narratively (consumables are used up)
   and the target reacts.
2. Reaction-type cards (offers, trades) let the target react first, so the
   judgment can take the answer into account.
3. Every effect's condition is judged in one batch. Cards whose first
   effect targets the world succeed without asking the Judge.
4. A trade verdict moves CP and an item between buyer and seller.
5. If the first effect misses, nothing else applies.
6. A newly discovered attribute is created instead of applying effects.
7. Passing effects change attributes; health at or below zero is death.
8. Consumables lose one inventory instance.
9. The hit character reacts to the outcome.

Every state change happens inside a single StateStore command per step,
so a failing step leaves the snapshot untouched. The snapshot is re-read
after every Judge call and reaction.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from taleweaver.core.config import get_settings
from taleweaver.core.constants import (
    ALWAYS_TRUE_CONDITION,
    DEFAULT_NUMBER_ATTRIBUTE,
    DEFAULT_TEXT_ATTRIBUTE,
    DEFAULT_TRADE_CARD_COST,
    EFFECT_REQUEST_PREFIX,
    ENVIRONMENT_ID_PREFIX,
    ENVIRONMENT_SUCCESS_REASON,
)
from taleweaver.core.logging import get_logger
from taleweaver.dm.memory import global_memory
from taleweaver.engine.context import entity_snapshot, location_text, world_attributes
from taleweaver.engine.store import stamp_log
from taleweaver.engine.triggers import TriggerEvaluator, run_triggers
from taleweaver.models.attributes import (
    AttributeKey,
    GameAttribute,
    canonical_key,
    coerce_number,
    display_name,
)
from taleweaver.models.cards import Card, Effect, new_id
from taleweaver.models.enums import (
    AttributeType,
    LogType,
    TargetType,
    TransactionType,
    TriggerPhase,
    TriggerType,
)
from taleweaver.models.judge import ConditionRequest, ConditionResult, JudgeContext, TradeResult


if TYPE_CHECKING:
    from taleweaver.core.config import MemorySettings
    from taleweaver.dm.judge import Judge
    from taleweaver.engine.reactions import ReactionCoordinator
    from taleweaver.engine.store import StateStore
    from taleweaver.models.character import Character
    from taleweaver.models.game_state import GameState

logger = get_logger(__name__)

WORLD_OWNER = "world"

_PRIMARY_TARGETS = (TargetType.SPECIFIC_CHAR, TargetType.AI_CHOICE, TargetType.HIT_TARGET)


# =============================================================================
# Results
# =============================================================================


@dataclass
class AttributeChange:
    """One applied attribute change.

    Attributes:
        owner_id: Character id, or ``world``.
        key: Canonical attribute key.
        value: Delta (numbers) or replacement (text).
        new_value: Value after the change.
    """

    owner_id: str
    key: str
    value: int | float | str
    new_value: int | float | str


@dataclass
class SkillOutcome:
    """What happened when a card was used.

    Attributes:
        card_id: The card used.
        target_id: Primary target, if any.
        hit: Whether the card took effect.
        traded: Whether a trade completed.
        discovered: Attribute keys created by discovery.
        changes: Applied attribute changes.
        dead: Characters whose health dropped to zero or below.
        reaction_target_id: Character that reacted to the outcome.
    """

    card_id: str
    target_id: str | None = None
    hit: bool = False
    traded: bool = False
    discovered: list[str] = field(default_factory=list)
    changes: list[AttributeChange] = field(default_factory=list)
    dead: list[str] = field(default_factory=list)
    reaction_target_id: str | None = None


@dataclass
class _EffectPlan:
    index: int
    effect: Effect
    target_ids: list[str]
    override: int | float | str | None

    @property
    def request_id(self) -> str:
        return f"{EFFECT_REQUEST_PREFIX}{self.index}"

    @property
    def on_world(self) -> bool:
        return self.effect.target_type is TargetType.WORLD


@dataclass
class _Applied:
    changes: list[AttributeChange] = field(default_factory=list)
    dead: list[str] = field(default_factory=list)
    reaction_target_id: str | None = None
    summary: list[str] = field(default_factory=list)


# =============================================================================
# Resolver
# =============================================================================


class SkillEffectResolver:
    """Executes cards: judgment, trades, attribute changes and reactions."""

    def __init__(
        self,
        store: StateStore,
        judge: Judge,
        reactions: ReactionCoordinator,
        triggers: TriggerEvaluator | None = None,
        *,
        rng: random.Random | None = None,
        memory: MemorySettings | None = None,
    ) -> None:
        self.store = store
        self.judge = judge
        self.reactions = reactions
        self.triggers = triggers or TriggerEvaluator()
        self.rng = rng or random.Random()
        self.memory = memory or get_settings().memory

    async def execute(
        self,
        card: Card,
        source_id: str,
        target_id: str | None = None,
        effect_overrides: dict[int, int | float | str] | None = None,
    ) -> SkillOutcome:
        """Use a card.

        Args:
            card: The card being used.
            source_id: The acting character.
            target_id: Explicit target, if any.
            effect_overrides: Effect index to value chosen by the actor;
                overrides win over Judge-derived and static values.

        Returns:
            What happened.

        Raises:
            JudgeConnectionError: If the Judge cannot be reached.
        """
        overrides = effect_overrides or {}
        state = self.store.snapshot
        source = state.character(source_id)
        outcome = SkillOutcome(card_id=card.id)
        if source is None:
            logger.warning("Skill source not found", source_id=source_id, card_id=card.id)
            return outcome

        primary = self._select_target(state, card, source_id, target_id)
        outcome.target_id = primary
        if primary is not None:
            await self.store.add_log(f"(target: {state.characters[primary].name})")

        logger.info(
            "Executing card",
            card=card.name,
            source_id=source_id,
            target_id=primary,
            effects=len(card.effects),
        )

        # 1. Zero-effect shortcut
        if not card.effects:
            await self.store.apply(
                lambda s: self._narrative_success(s, card, source_id),
                label="skill_narrative",
            )
            outcome.hit = True
            if primary is not None:
                await self.reactions.react(
                    primary,
                    f"{self._source_name(source_id)} used [{card.name}] on you "
                    f"({card.description}). How do you respond?",
                    title="Reaction",
                )
            return outcome

        # 2. Pre-reaction
        if card.trigger_type is TriggerType.REACTION and primary is not None:
            await self.reactions.react(
                primary,
                f"{self._source_name(source_id)} is using [{card.name}] on you. "
                f"Intent: {card.description}. "
                "How do you respond? (If this is a trade, decide whether to accept the price.)",
                title="Reaction to action",
            )

        # 3. Judgment
        state = self.store.snapshot
        plans = [
            _EffectPlan(
                index=index,
                effect=effect,
                target_ids=self._effect_targets(state, effect, source_id, primary),
                override=overrides.get(index),
            )
            for index, effect in enumerate(card.effects)
        ]
        results = await self._judge(state, card, source_id, primary, plans)

        # 4. Trade
        first = results.get(plans[0].request_id)
        if first is not None and first.trade_result is not None:
            trade = first.trade_result
            outcome.traded = await self.store.apply(
                lambda s: self._trade(s, trade, source_id, primary),
                label="skill_trade",
            )
            outcome.hit = outcome.traded
            return outcome

        # 5. Hit failure
        if first is None or not first.result:
            reason = (first.reason if first is not None else "") or "the check did not pass"
            await self.store.add_log(f"> 「{card.name}」 failed: {reason}", is_reaction=True)
            current = self.store.snapshot.character(source_id)
            if current is not None and not current.is_player:
                await self.reactions.react(
                    source_id,
                    f"Tried to use [{card.name}] and failed. Reason: {reason}.",
                    title="Reaction to failure",
                )
            return outcome

        outcome.hit = True

        # 6. New attribute discovery
        discovered = await self.store.apply(
            lambda s: self._discover_attributes(s, plans, results),
            label="skill_discovery",
        )
        if discovered:
            outcome.discovered = discovered
            return outcome

        # 7-8. Apply effects, consume the card
        applied: _Applied = await self.store.apply(
            lambda s: self._apply_effects(s, card, source_id, primary, plans, results),
            label="skill_effects",
        )
        outcome.changes = applied.changes
        outcome.dead = applied.dead
        outcome.reaction_target_id = applied.reaction_target_id

        # 9. Post-reaction
        if (
            card.trigger_type is not TriggerType.REACTION
            and applied.reaction_target_id is not None
            and applied.reaction_target_id not in applied.dead
        ):
            await self.reactions.react(
                applied.reaction_target_id,
                f"Hit by {self._source_name(source_id)}'s [{card.name}]. "
                f"Result: {' '.join(applied.summary)}",
                title="Reaction to effect",
            )
        return outcome

    def _source_name(self, source_id: str) -> str:
        """Name of the acting character as of the latest snapshot."""
        source = self.store.snapshot.character(source_id)
        return source.name if source is not None else source_id

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def _select_target(
        self,
        state: GameState,
        card: Card,
        source_id: str,
        explicit: str | None,
    ) -> str | None:
        if explicit:
            if explicit in state.characters:
                return explicit
            logger.warning("Explicit target not found", target_id=explicit)
            return None

        targeted = next(
            (
                e for e in card.effects
                if e.target_type in (TargetType.SPECIFIC_CHAR, TargetType.AI_CHOICE)
            ),
            None,
        )
        if targeted is None:
            return None
        if targeted.target_id and targeted.target_id in state.characters:
            return targeted.target_id

        candidates = [
            c.id for c in state.characters_at(state.map.active_location_id) if c.id != source_id
        ]
        return self.rng.choice(candidates) if candidates else source_id

    @staticmethod
    def _effect_targets(
        state: GameState,
        effect: Effect,
        source_id: str,
        primary: str | None,
    ) -> list[str]:
        if effect.target_type in _PRIMARY_TARGETS:
            return [primary] if primary is not None else []
        if effect.target_type is TargetType.SELF:
            return [source_id]
        if effect.target_type is TargetType.ALL_CHARS:
            return [
                c.id for c in state.characters_at(state.map.active_location_id)
                if c.id != source_id
            ]
        return []

    # -------------------------------------------------------------------------
    # Judgment
    # -------------------------------------------------------------------------

    async def _judge(
        self,
        state: GameState,
        card: Card,
        source_id: str,
        primary: str | None,
        plans: list[_EffectPlan],
    ) -> dict[str, ConditionResult]:
        source = state.characters[source_id]
        requests: list[ConditionRequest] = []
        entities: dict[str, Any] = {source.name: entity_snapshot(state, source)}

        location_id = state.map.active_location_id
        if location_id in state.map.locations:
            entities["Current_Location"] = location_text(state, location_id)
        if primary is not None:
            target = state.characters[primary]
            entities[target.name] = entity_snapshot(state, target)

        for plan in plans:
            targets = [state.characters[t] for t in plan.target_ids if t in state.characters]
            for target in targets:
                entities.setdefault(target.name, entity_snapshot(state, target))
            requests.append(
                ConditionRequest(
                    id=plan.request_id,
                    card_name=card.name,
                    condition=plan.effect.condition_description or ALWAYS_TRUE_CONDITION,
                    needs_value=plan.effect.dynamic_value and plan.override is None,
                    source=source.name,
                    target=", ".join(t.name for t in targets) or "World",
                    context=self._condition_context(plan.effect, [source, *targets]),
                )
            )

        if plans[0].on_world:
            logger.debug("World-targeted card, skipping judgment", card=card.name)
            return {
                request.id: ConditionResult(result=True, reason=ENVIRONMENT_SUCCESS_REASON)
                for request in requests
            }

        suffix = await run_triggers(
            self.store, self.triggers, TriggerPhase.CHECK_CONDITIONS, source_id
        )
        state = self.store.snapshot
        context = JudgeContext(
            history=global_memory(
                state.world.history,
                state.round.round_number,
                rounds=self.memory.max_short_history_rounds,
                limit=self.memory.max_history_entries,
            ),
            world=world_attributes(state),
            entities=entities,
            prompt_suffix=suffix,
        )
        return await self.judge.check_conditions(requests, context)

    @staticmethod
    def _condition_context(effect: Effect, chars: list[Character]) -> dict[str, Any]:
        context: dict[str, Any] = {}
        for char in chars:
            values = {
                key: char.attributes[key].value
                for key in effect.condition_context_keys
                if key in char.attributes
            }
            if values:
                context[char.name] = values
        return context

    # -------------------------------------------------------------------------
    # State commands
    # -------------------------------------------------------------------------

    @staticmethod
    def _narrative_success(state: GameState, card: Card, source_id: str) -> None:
        stamp_log(state, "> (effect applied)", is_reaction=True)
        source = state.character(source_id)
        if card.is_consumable and source is not None:
            source.remove_card_instance(card.id)

    @staticmethod
    def _trade(
        state: GameState,
        trade: TradeResult,
        source_id: str,
        primary: str | None,
    ) -> bool:
        source = state.character(source_id)
        if source is None:
            return False

        seller_id: str | None
        if trade.transaction_type is TransactionType.SELL:
            seller_id, buyer_id = source_id, primary
            if buyer_id is None:
                stamp_log(state, "> Sale failed: a buyer must be named to sell an item.")
                return False
        else:
            buyer_id, seller_id = source_id, primary
            if trade.counterpart_name and trade.counterpart_name != source.name:
                named = next(
                    (c for c in state.characters.values() if c.name == trade.counterpart_name),
                    None,
                )
                if named is not None:
                    seller_id = named.id

        buyer = state.character(buyer_id)
        seller = state.character(seller_id)
        if buyer is None:
            stamp_log(state, "> Trade failed: the buyer is not here.")
            return False

        price = trade.price
        buyer_cp = buyer.number(AttributeKey.CP, 0)
        if price > 0 and buyer_cp < price:
            stamp_log(
                state,
                f"> Trade aborted: buyer [{buyer.name}] cannot pay ({buyer_cp}/{price} CP).",
            )
            logger.info("Trade aborted, insufficient CP", buyer_id=buyer.id, price=price)
            return False

        if price > 0:
            buyer.ensure_attribute(AttributeKey.CP, value=0).apply_delta(-price)
            if seller is not None:
                seller.ensure_attribute(AttributeKey.CP, value=0).apply_delta(price)

        card_id: str | None = None
        if seller is not None:
            named_ids = {c.id for c in state.card_pool.values() if c.name == trade.item_name}
            card_id = next((cid for cid in seller.inventory if cid in named_ids), None)
            if card_id is not None:
                seller.remove_card_instance(card_id)

        if card_id is None:
            card = state.find_card_by_name(trade.item_name)
            if card is None:
                card = Card(
                    id=new_id("item"),
                    name=trade.item_name,
                    description=trade.description or "Item obtained by trade.",
                    item_type=trade.item_type,
                    trigger_type=TriggerType.ACTIVE,
                    cost=DEFAULT_TRADE_CARD_COST,
                )
                state.card_pool[card.id] = card
            card_id = card.id
        buyer.inventory.append(card_id)

        label = "Sale" if trade.transaction_type is TransactionType.SELL else "Purchase"
        seller_name = seller.name if seller is not None else "unknown source"
        stamp_log(
            state,
            f"> {label} succeeded: {buyer.name} obtained [{trade.item_name}] (from: {seller_name}).",
        )
        if price > 0:
            stamp_log(state, f"> Payment: {buyer.name} paid {price} CP to {seller_name}.")
        logger.info(
            "Trade completed",
            buyer_id=buyer.id,
            seller_id=seller.id if seller is not None else None,
            item=trade.item_name,
            price=price,
        )
        return True

    @staticmethod
    def _discover_attributes(
        state: GameState,
        plans: list[_EffectPlan],
        results: dict[str, ConditionResult],
    ) -> list[str]:
        discovered: list[str] = []
        for plan in plans:
            result = results.get(plan.request_id)
            if result is None or result.new_attribute is None:
                continue
            signal = result.new_attribute
            key = canonical_key(signal.name)
            for target_id in plan.target_ids:
                target = state.character(target_id)
                if target is None or key in target.attributes:
                    continue
                is_text = signal.type is AttributeType.TEXT
                target.ensure_attribute(
                    key,
                    attr_type=signal.type,
                    value=DEFAULT_TEXT_ATTRIBUTE if is_text else DEFAULT_NUMBER_ATTRIBUTE,
                )
                stamp_log(
                    state,
                    f"> Attribute awakened: {result.reason or f'discovered new attribute [{signal.name}]'}",
                )
                logger.info("Attribute discovered", target_id=target_id, key=key)
                discovered.append(key)
        return discovered

    @staticmethod
    def _resolve_value(plan: _EffectPlan, result: ConditionResult) -> int | float | str:
        if plan.override is not None:
            return plan.override
        if plan.effect.dynamic_value and result.derived_value is not None:
            return result.derived_value
        return plan.effect.value

    def _apply_effects(
        self,
        state: GameState,
        card: Card,
        source_id: str,
        primary: str | None,
        plans: list[_EffectPlan],
        results: dict[str, ConditionResult],
    ) -> _Applied:
        applied = _Applied()

        for plan in plans:
            result = results.get(plan.request_id)
            if result is None or not result.result:
                continue
            value = self._resolve_value(plan, result)
            key = plan.effect.target_attribute

            holders: list[tuple[str, str, dict[str, GameAttribute]]] = []
            if plan.on_world:
                holders.append((WORLD_OWNER, "World", state.world.attributes))
            for target_id in plan.target_ids:
                target = state.character(target_id)
                if target is not None:
                    holders.append((target.id, target.name, target.attributes))

            for owner_id, owner_name, attributes in holders:
                attr = attributes.get(key)
                if attr is None:
                    attr = GameAttribute(
                        key=key,
                        type=AttributeType.NUMBER,
                        value=DEFAULT_NUMBER_ATTRIBUTE,
                    )
                    attributes[key] = attr

                if attr.is_number:
                    delta = coerce_number(value)
                    if delta is None:
                        logger.warning(
                            "Non-numeric value for numeric attribute",
                            owner_id=owner_id,
                            key=key,
                            value=value,
                        )
                        continue
                    new_value: int | float | str = attr.apply_delta(delta)
                    value_text = f"+{delta}" if delta > 0 else f"{delta}"
                    if (
                        key == AttributeKey.HEALTH
                        and new_value <= 0
                        and owner_id != WORLD_OWNER
                        and not owner_id.startswith(ENVIRONMENT_ID_PREFIX)
                        and owner_id not in applied.dead
                    ):
                        applied.dead.append(owner_id)
                else:
                    attr.set_value(value)
                    new_value = attr.value
                    value_text = f'"{value}"'

                applied.changes.append(AttributeChange(owner_id, key, value, new_value))

                pure_hit_check = (
                    plan.index == 0
                    and isinstance(value, (int, float))
                    and not isinstance(value, bool)
                    and value == 0
                )
                if not pure_hit_check:
                    line = f"> Effect: {owner_name} {display_name(key)} {value_text} (now: {new_value})"
                    stamp_log(state, line)
                    applied.summary.append(line)

                if owner_id == primary and owner_id != source_id:
                    applied.reaction_target_id = owner_id

        for dead_id in applied.dead:
            stamp_log(
                state,
                f"System: [{state.characters[dead_id].name}] is dead or unconscious (health <= 0).",
                type=LogType.SYSTEM,
            )
            logger.info("Character incapacitated", char_id=dead_id)

        source = state.character(source_id)
        if card.is_consumable and source is not None:
            source.remove_card_instance(card.id)

        return applied


__all__ = [
    "AttributeChange",
    "SkillOutcome",
    "SkillEffectResolver",
]
