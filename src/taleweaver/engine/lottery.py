"""Prize pool lottery.

Characters can draw weighted prizes from a pool, deposit inventory cards
back into it as prizes, or peek at a few of its items. Pools may be
restricted to locations; using a pool from elsewhere is a transaction
failure that aborts only that action.

All state-changing operations take the ``GameState`` copy of the current
StateStore command and mutate it in place. Randomness comes from an
injected ``random.Random`` so draws are reproducible in tests.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taleweaver.core.config import get_settings
from taleweaver.core.exceptions import TransactionError
from taleweaver.core.logging import get_logger
from taleweaver.models.cards import Card, new_id
from taleweaver.models.character import remove_instances
from taleweaver.models.enums import ItemType, LotteryAction, TriggerType, Visibility
from taleweaver.models.lottery import PrizeItem, PrizePool


if TYPE_CHECKING:
    from taleweaver.models.character import Character
    from taleweaver.models.commands import LotteryCommand
    from taleweaver.models.game_state import GameState

logger = get_logger(__name__)


@dataclass
class LotteryOutcome:
    """Result of one lottery interaction.

    Attributes:
        action: The interaction performed.
        message: Story log line describing it.
        items: Prize items drawn, deposited or peeked at.
        card_ids: Card ids granted to the drawer.
        reveal: Whether item names were shown (draws may be hidden).
    """

    action: LotteryAction
    message: str
    items: list[PrizeItem] = field(default_factory=list)
    card_ids: list[str] = field(default_factory=list)
    reveal: bool = True

    @property
    def item_names(self) -> str:
        """Bracketed item names for log lines."""
        return ", ".join(f"[{item.name}]" for item in self.items)


def weighted_sample(
    items: list[PrizeItem],
    amount: int,
    rng: random.Random,
) -> tuple[list[PrizeItem], list[PrizeItem]]:
    """Draw items without replacement, proportionally to weight.

    Zero-weight items are never drawn; sampling stops early when the
    remaining weight is zero.

    Args:
        items: Candidate items.
        amount: Number of items wanted.
        rng: Random source.

    Returns:
        The drawn items and the remaining items.
    """
    remaining = list(items)
    drawn: list[PrizeItem] = []
    for _ in range(amount):
        total = sum(item.weight for item in remaining)
        if total <= 0:
            break
        r = rng.random() * total
        selected: PrizeItem | None = None
        for item in remaining:
            if r < item.weight:
                selected = item
                break
            r -= item.weight
        if selected is None:
            selected = [item for item in remaining if item.weight > 0][-1]
        drawn.append(selected)
        remaining.remove(selected)
    return drawn, remaining


class LotteryEngine:
    """Weighted sampling over prize pools.

    Attributes:
        rng: Random source.
        peek_ceiling: Maximum number of items a peek reveals.
    """

    def __init__(self, rng: random.Random | None = None, peek_ceiling: int | None = None) -> None:
        self.rng = rng or random.Random()
        self.peek_ceiling = peek_ceiling or get_settings().gameplay.peek_ceiling

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    @staticmethod
    def draw_amount(pool: PrizePool, amount: int) -> int:
        """Clamp a requested amount to the pool's draw bounds."""
        return max(pool.min_draws, min(pool.max_draws, amount))

    def draw(self, state: GameState, char_id: str, pool_id: str, amount: int) -> list[PrizeItem]:
        """Draw prizes and grant them to a character.

        Each drawn item becomes an inventory card; one card definition is
        minted per distinct (name, description) pair and reused afterwards.

        Args:
            state: State to mutate.
            char_id: The drawing character.
            pool_id: Pool to draw from.
            amount: Requested number of items (clamped to the pool bounds).

        Returns:
            The drawn items; empty when the pool has no drawable weight.

        Raises:
            TransactionError: If the pool is unknown or out of reach.
        """
        char, pool = self._access(state, char_id, pool_id)
        drawn, remaining = weighted_sample(pool.items, self.draw_amount(pool, amount), self.rng)
        if not drawn:
            logger.info("Nothing drawable in pool", pool_id=pool_id)
            return []

        pool.items = remaining
        for item in drawn:
            card = state.find_card_by_name(item.name, item.description)
            if card is None:
                card = Card(
                    id=new_id("prize_card"),
                    name=item.name,
                    description=item.description,
                    item_type=ItemType.CONSUMABLE,
                    trigger_type=TriggerType.ACTIVE,
                    cost=0,
                    visibility=Visibility.PRIVATE if item.is_hidden else Visibility.PUBLIC,
                )
                state.card_pool[card.id] = card
            char.inventory.append(card.id)

        logger.info(
            "Prizes drawn",
            char_id=char_id,
            pool_id=pool_id,
            items=[item.name for item in drawn],
        )
        return drawn

    def deposit(
        self,
        state: GameState,
        char_id: str,
        pool_id: str,
        card_ids: list[str],
        item_name: str | None = None,
    ) -> list[PrizeItem]:
        """Turn inventory cards into prizes of a pool.

        Exactly one inventory instance is removed per requested id, so
        duplicates the character still holds are kept. Ids the character
        does not hold are ignored.

        Args:
            state: State to mutate.
            char_id: The depositing character.
            pool_id: Pool to deposit into.
            card_ids: Card ids to deposit.
            item_name: Card name to deposit when no ids are given.

        Returns:
            The prize items added to the pool.

        Raises:
            TransactionError: If the pool is unknown or out of reach.
        """
        char, pool = self._access(state, char_id, pool_id)
        requested = list(card_ids)
        if not requested and item_name:
            for card_id in char.inventory:
                card = state.card(card_id)
                if card is not None and card.name == item_name:
                    requested.append(card_id)
                    break

        available: list[str] = []
        scratch = list(char.inventory)
        for card_id in requested:
            if card_id in scratch:
                scratch.remove(card_id)
                available.append(card_id)

        items: list[PrizeItem] = []
        for card_id in available:
            card = state.card(card_id)
            if card is None:
                continue
            items.append(
                PrizeItem(
                    id=new_id("pitem_dep"),
                    name=card.name,
                    description=card.description,
                    weight=1,
                    is_hidden=card.visibility == Visibility.PRIVATE,
                )
            )

        if items:
            char.inventory = remove_instances(char.inventory, available)
            pool.items.extend(items)
            logger.info(
                "Prizes deposited",
                char_id=char_id,
                pool_id=pool_id,
                items=[item.name for item in items],
            )
        return items

    def peek(self, pool: PrizePool, amount: int) -> list[PrizeItem]:
        """Look at a few random items without removing them.

        Args:
            pool: The pool.
            amount: Items requested (at least 1, at most the peek ceiling).

        Returns:
            Distinct items, drawn uniformly without replacement.
        """
        count = min(max(1, amount), self.peek_ceiling, len(pool.items))
        return self.rng.sample(pool.items, count)

    # -------------------------------------------------------------------------
    # Command execution
    # -------------------------------------------------------------------------

    def execute(self, state: GameState, char_id: str, command: LotteryCommand) -> LotteryOutcome:
        """Run a lottery command and describe the result.

        Args:
            state: State to mutate.
            char_id: The acting character.
            command: Validated lottery command.

        Returns:
            The outcome, including the story log line.

        Raises:
            TransactionError: If the pool is unknown or out of reach.
        """
        char, pool = self._access(state, char_id, command.pool_id)

        if command.action is LotteryAction.DRAW:
            drawn = self.draw(state, char_id, pool.id, command.amount)
            if not drawn:
                return LotteryOutcome(
                    action=command.action,
                    message=f"> Lottery failed: [{pool.name}] is empty.",
                )
            outcome = LotteryOutcome(action=command.action, message="", items=drawn)
            outcome.reveal = not command.is_hidden
            if outcome.reveal:
                outcome.message = (
                    f"> Lottery: {char.name} drew {outcome.item_names} from [{pool.name}]!"
                )
            else:
                outcome.message = (
                    f"> Lottery: {char.name} drew {len(drawn)} item(s) from [{pool.name}]..."
                )
            return outcome

        if command.action is LotteryAction.DEPOSIT:
            deposited = self.deposit(
                state, char_id, pool.id, command.card_ids, command.item_name
            )
            if not deposited:
                return LotteryOutcome(
                    action=command.action,
                    message=(
                        f"> Deposit failed: {char.name} tried to deposit items "
                        "that are not in their inventory."
                    ),
                )
            outcome = LotteryOutcome(action=command.action, message="", items=deposited)
            outcome.message = f"> Deposit: {char.name} put {outcome.item_names} into [{pool.name}]."
            return outcome

        if not pool.items:
            return LotteryOutcome(
                action=command.action,
                message=f"> Peek: {char.name} looked into [{pool.name}], but it is empty.",
            )
        peeked = self.peek(pool, command.amount)
        names = ", ".join(item.name for item in peeked)
        return LotteryOutcome(
            action=command.action,
            message=f"> Peek: {char.name} glanced into [{pool.name}] and saw: {names}...",
            items=peeked,
        )

    @staticmethod
    def _access(state: GameState, char_id: str, pool_id: str) -> tuple[Character, PrizePool]:
        char = state.character(char_id)
        pool = state.prize_pools.get(pool_id)
        if char is None or pool is None:
            raise TransactionError(
                f"Unknown prize pool or character for lottery: {pool_id}",
                character_id=char_id,
                pool_id=pool_id,
            )
        if not pool.is_reachable_from(state.map.location_of(char_id)):
            raise TransactionError(
                f"{char.name} tried to use [{pool.name}], but it is not here.",
                character_id=char_id,
                pool_id=pool_id,
            )
        return char, pool


__all__ = [
    "LotteryEngine",
    "LotteryOutcome",
    "weighted_sample",
]
