"""Command models for character actions.

Commands arrive from the Judge (AI turns) or from the presentation layer
(queued player intents) as loosely shaped JSON. They are validated once,
here, into a closed tagged union discriminated by ``type``; resolvers only
ever see validated command objects.

Models:
    UseSkillCommand: Use an innate skill or an inventory card.
    CreateCardCommand: Spend CP to create a new card.
    CreateAttributeCommand: Add attributes to characters.
    UpdateAttributeCommand: Change own or world attributes.
    MoveToCommand: Move to a named location.
    LotteryCommand: Draw from, deposit into, or peek at a prize pool.
    RedeemCardCommand: Exchange a held card for a new one.
    PlayerTurn: A human player's submitted turn.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from taleweaver.core.logging import get_logger
from taleweaver.models.attributes import GameAttribute, canonical_key
from taleweaver.models.cards import Card
from taleweaver.models.enums import LotteryAction, Visibility


logger = get_logger(__name__)


class CommandModel(BaseModel):
    """Base for boundary payloads: accepts snake_case and camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Commands
# =============================================================================


class UseSkillCommand(CommandModel):
    """Use a card, optionally against a target.

    Attributes:
        skill_id: Card id (innate skill or inventory card).
        target_id: Optional target character id.
        effect_overrides: Effect index to value chosen by the acting AI.
    """

    type: Literal["use_skill"] = "use_skill"
    skill_id: str
    target_id: str | None = None
    effect_overrides: dict[int, int | float | str] = Field(default_factory=dict)


class CreateCardCommand(CommandModel):
    """Create a new card, paying the creation cost in CP."""

    type: Literal["create_card"] = "create_card"
    created_card: Card


class AttributeGrant(CommandModel):
    """A new attribute for a character (``None`` target means the actor)."""

    target_id: str | None = None
    attribute: GameAttribute


class CreateAttributeCommand(CommandModel):
    """Add one or more attributes to characters."""

    type: Literal["create_attribute", "create_attr"] = "create_attribute"
    created_attributes: list[AttributeGrant] = Field(default_factory=list)


class AttributeUpdate(CommandModel):
    """A change to an attribute of the actor or of the world."""

    target: Literal["self", "world"] = "self"
    key: str
    value: int | float | str
    visibility: Visibility | None = None

    @field_validator("key", mode="before")
    @classmethod
    def canonicalize_key(cls, v: Any) -> Any:
        """Translate aliases to canonical keys."""
        if isinstance(v, str):
            return canonical_key(v)
        return v


class UpdateAttributeCommand(CommandModel):
    """Change attributes of the actor or of the world."""

    type: Literal["update_attribute", "update_attr"] = "update_attribute"
    attribute_updates: list[AttributeUpdate] = Field(default_factory=list)


class MoveToCommand(CommandModel):
    """Move to a location named by the actor."""

    type: Literal["move_to"] = "move_to"
    destination_name: str = Field(min_length=1)


class LotteryCommand(CommandModel):
    """Interact with a prize pool.

    Attributes:
        pool_id: Target pool.
        action: draw, deposit or peek.
        amount: Items to draw or peek at.
        card_ids: Inventory card ids to deposit.
        item_name: Deposit by card name when no ids are given.
        is_hidden: Suppress item names in the draw log.
    """

    type: Literal["lottery"] = "lottery"
    pool_id: str
    action: LotteryAction = LotteryAction.DRAW
    amount: int = Field(default=1, ge=0)
    card_ids: list[str] = Field(default_factory=list)
    item_name: str | None = None
    is_hidden: bool = False

    @field_validator("card_ids", mode="before")
    @classmethod
    def accept_single_id(cls, v: Any) -> Any:
        """Accept a single id string in place of a list."""
        if isinstance(v, str):
            return [v]
        if v is None:
            return []
        return v


class RedeemCardCommand(CommandModel):
    """Replace one instance of a held card with a new card definition."""

    type: Literal["redeem_card"] = "redeem_card"
    target_char_id: str
    old_card_id: str
    new_card: Card


Command = Annotated[
    UseSkillCommand
    | CreateCardCommand
    | CreateAttributeCommand
    | UpdateAttributeCommand
    | MoveToCommand
    | LotteryCommand
    | RedeemCardCommand,
    Field(discriminator="type"),
]

_COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)


def parse_command(raw: Any) -> Command | None:
    """Validate a single raw command.

    Args:
        raw: Loosely shaped command payload.

    Returns:
        The validated command, or None if it is unknown or malformed.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(by_alias=False)
    if not isinstance(raw, dict):
        logger.warning("Dropping non-object command", raw=repr(raw)[:200])
        return None
    try:
        return _COMMAND_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        logger.warning(
            "Dropping invalid command",
            command_type=raw.get("type"),
            errors=exc.error_count(),
        )
        return None


def parse_commands(raw: Any) -> list[Command]:
    """Validate a list of raw commands, dropping unknown or malformed ones.

    Args:
        raw: A list of command payloads (a single payload is also accepted).

    Returns:
        Validated commands in their original order.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raw = [raw]
    commands: list[Command] = []
    for item in raw:
        command = parse_command(item)
        if command is not None:
            commands.append(command)
    return commands


# =============================================================================
# Player Intents
# =============================================================================

PendingSkill = UseSkillCommand
PendingMove = MoveToCommand
PendingLottery = LotteryCommand

PendingAction = Annotated[
    PendingSkill | PendingMove | PendingLottery,
    Field(discriminator="type"),
]


class PlayerTurn(CommandModel):
    """A human player's submitted turn.

    Attributes:
        speech: What the character says; empty with no actions means skip.
        actions: Queued intents, executed in order with movement last.
        duration_seconds: Story time the turn takes (settings default if None).
    """

    speech: str = ""
    actions: list[PendingAction] = Field(default_factory=list)
    duration_seconds: int | None = Field(default=None, ge=0)


def order_pending_actions(actions: list[Any]) -> list[Any]:
    """Order queued actions for execution: submission order, movement last.

    Args:
        actions: Pending actions in submission order.

    Returns:
        A new list with every movement action moved to the end (stable).
    """
    return sorted(actions, key=lambda a: isinstance(a, MoveToCommand))


__all__ = [
    "CommandModel",
    "UseSkillCommand",
    "CreateCardCommand",
    "AttributeGrant",
    "CreateAttributeCommand",
    "AttributeUpdate",
    "UpdateAttributeCommand",
    "MoveToCommand",
    "LotteryCommand",
    "RedeemCardCommand",
    "Command",
    "parse_command",
    "parse_commands",
    "PendingSkill",
    "PendingMove",
    "PendingLottery",
    "PendingAction",
    "PlayerTurn",
    "order_pending_actions",
]
