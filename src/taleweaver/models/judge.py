"""Judge request and response payload models.

The Judge returns loosely typed JSON. Every response model here defaults
all optional fields safely and coerces common deviations (numeric strings,
single strings where lists are expected, camelCase keys) so that callers
never need to check whether an optional field is present.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from taleweaver.core.constants import (
    DEFAULT_GENERATED_CONFLICT_REWARD,
    DEFAULT_GENERATED_DRIVE_AMOUNT,
)
from taleweaver.models.attributes import coerce_number
from taleweaver.models.enums import AttributeType, ItemType, TransactionType


class JudgePayload(BaseModel):
    """Base for Judge payloads: accepts snake_case and camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _as_list(v: Any) -> Any:
    if v is None:
        return []
    if isinstance(v, (str, int)):
        return [v]
    return v


def _as_text(v: Any) -> Any:
    return "" if v is None else v


def _as_objects(v: Any) -> Any:
    if isinstance(v, dict):
        v = [v]
    if not isinstance(v, list):
        return []
    return [item for item in v if isinstance(item, dict)]


class JudgeContext(BaseModel):
    """Story context assembled by the engine for one Judge call.

    Attributes:
        history: Rendered recent story or character memory.
        world: World attributes by key.
        entities: Attribute snapshots of the entities involved.
        location: Current location description.
        guidance: Author guidance.
        characters: Summaries of co-located characters.
        cards: Summaries of cards usable by the actor.
        prize_pools: Summaries of reachable prize pools.
        destinations: Names of reachable locations.
        prompt_suffix: Urgent requirements injected by triggers.
    """

    model_config = ConfigDict(extra="ignore")

    history: str = ""
    world: dict[str, Any] = Field(default_factory=dict)
    entities: dict[str, Any] = Field(default_factory=dict)
    location: str = ""
    guidance: str = ""
    characters: list[dict[str, Any]] = Field(default_factory=list)
    cards: list[dict[str, Any]] = Field(default_factory=list)
    prize_pools: list[dict[str, Any]] = Field(default_factory=list)
    destinations: list[str] = Field(default_factory=list)
    prompt_suffix: str = ""


# =============================================================================
# Condition Checks
# =============================================================================


class ConditionRequest(JudgePayload):
    """One effect's hit condition, sent to the Judge in a batch.

    Attributes:
        id: Request id (``eff_<index>``).
        card_name: Name of the card being used.
        condition: Natural language condition ("True" when unconditional).
        needs_value: Whether the Judge should derive a numeric value.
        source: Name of the acting character.
        target: Name of the effect's target ("World" when none).
        context: Attribute snapshots of the entities involved.
    """

    id: str
    card_name: str = ""
    condition: str = "True"
    needs_value: bool = False
    source: str = ""
    target: str = "World"
    context: dict[str, Any] = Field(default_factory=dict)


class NewAttributeSignal(JudgePayload):
    """A previously unknown attribute the Judge discovered on a target."""

    name: str
    type: AttributeType = AttributeType.NUMBER

    @field_validator("type", mode="before")
    @classmethod
    def lowercase_type(cls, v: Any) -> Any:
        """Accept NUMBER/TEXT in any case."""
        if v is None:
            return AttributeType.NUMBER
        if isinstance(v, str):
            return v.strip().lower()
        return v


class TradeResult(JudgePayload):
    """Details of a trade detected by the Judge.

    Attributes:
        item_name: Traded item name.
        price: Price in CP (0 for a voluntary exchange).
        transaction_type: buy or sell, from the acting character's view.
        counterpart_name: Original holder of the item, if named.
        description: Description used when a card must be minted.
        item_type: Item type used when a card must be minted.
    """

    item_name: str
    price: int = Field(default=0, ge=0)
    transaction_type: TransactionType = TransactionType.BUY
    counterpart_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "counterpart_name",
            "counterpartName",
            "sourceCharacterName",
            "source_character_name",
        ),
    )
    description: str = ""
    item_type: ItemType = ItemType.CONSUMABLE

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Any:
        """Accept numeric strings; anything unparseable is free."""
        number = coerce_number(v)
        return max(0, int(number)) if number is not None else 0

    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, v: Any) -> Any:
        return _as_text(v)

    @field_validator("transaction_type", "item_type", mode="before")
    @classmethod
    def lowercase_enum(cls, v: Any, info: ValidationInfo) -> Any:
        """Accept enum values in any case; null means the default."""
        if v is None:
            return cls.model_fields[info.field_name].default
        if isinstance(v, str):
            return v.strip().lower()
        return v


class ConditionResult(JudgePayload):
    """The Judge's verdict on one condition request.

    Attributes:
        result: Whether the condition holds.
        reason: Short explanation.
        derived_value: Judge-derived value for dynamic effects.
        target_name: Target inferred by the Judge, if any.
        new_attribute: A newly discovered attribute, if any.
        trade_result: Trade details, if the action was a trade.
    """

    result: bool = False
    reason: str = ""
    derived_value: int | float | str | None = None
    target_name: str | None = None
    new_attribute: NewAttributeSignal | None = None
    trade_result: TradeResult | None = None

    @field_validator("reason", mode="before")
    @classmethod
    def null_reason(cls, v: Any) -> Any:
        """A null reason is an empty one."""
        return _as_text(v)

    @field_validator("derived_value", mode="before")
    @classmethod
    def coerce_derived_value(cls, v: Any) -> Any:
        """Numeric strings become numbers; empty values become None."""
        if v is None or v == "":
            return None
        number = coerce_number(v)
        return number if number is not None else v

    @field_validator("result", mode="before")
    @classmethod
    def coerce_result(cls, v: Any) -> Any:
        """Unrecognized verdicts count as failures."""
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "1", "success", "pass")
        if v is None:
            return False
        return v


# =============================================================================
# Actions, Reactions & Settlement
# =============================================================================


class GeneratedConflict(JudgePayload):
    """A conflict an actor creates for another character."""

    target_char_id: str
    desc: str
    ap_reward: int = DEFAULT_GENERATED_CONFLICT_REWARD

    @field_validator("ap_reward", mode="before")
    @classmethod
    def default_reward(cls, v: Any) -> Any:
        """Missing or zero rewards fall back to the default."""
        number = coerce_number(v)
        return int(number) if number else DEFAULT_GENERATED_CONFLICT_REWARD


class GeneratedDriveSpec(JudgePayload):
    """Drive fields as returned by the Judge."""

    condition: str
    amount: int | None = None
    weight: int | None = None


class GeneratedDrive(JudgePayload):
    """A drive an actor creates for another character."""

    target_char_id: str
    drive: GeneratedDriveSpec

    @property
    def amount(self) -> int:
        """Pleasure amount, defaulted when omitted."""
        return self.drive.amount or DEFAULT_GENERATED_DRIVE_AMOUNT


class TurnAction(JudgePayload):
    """An AI character's decided turn.

    Commands are kept raw here and validated into the command union by the
    action processor, so a single malformed command never discards the
    whole turn.

    Attributes:
        narrative: Third-person narration.
        speech: What the character says.
        commands: Raw command payloads.
        time_passed: Story time the action takes (free-form duration text).
        generated_conflicts: Conflicts created for other characters.
        generated_drives: Drives created for other characters.
    """

    narrative: str = ""
    speech: str = ""
    commands: list[dict[str, Any]] = Field(default_factory=list)
    time_passed: str | None = None
    generated_conflicts: list[GeneratedConflict] = Field(default_factory=list)
    generated_drives: list[GeneratedDrive] = Field(default_factory=list)

    @field_validator("commands", mode="before")
    @classmethod
    def keep_object_commands(cls, v: Any) -> Any:
        """Drop non-object commands instead of failing the whole turn."""
        return _as_objects(v)

    @field_validator("narrative", "speech", mode="before")
    @classmethod
    def null_text(cls, v: Any) -> Any:
        """Null narration or speech means none."""
        return _as_text(v)

    @field_validator("generated_conflicts", "generated_drives", mode="before")
    @classmethod
    def generated_objects(cls, v: Any) -> Any:
        """Null means none; a single object is one item."""
        return _as_objects(v)

    @field_validator("time_passed", mode="before")
    @classmethod
    def stringify_time(cls, v: Any) -> Any:
        """Accept plain numbers of seconds."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class ReactionResult(JudgePayload):
    """A synthesized reaction."""

    speech: str = ""

    @field_validator("speech", mode="before")
    @classmethod
    def null_speech(cls, v: Any) -> Any:
        return _as_text(v)


class SettlementResult(JudgePayload):
    """The Judge's end-of-round verdict.

    Attributes:
        solved_conflict_ids: Conflicts resolved this round (may repeat).
        fulfilled_drive_ids: Drives fulfilled this round.
    """

    solved_conflict_ids: list[str] = Field(default_factory=list)
    fulfilled_drive_ids: list[str] = Field(default_factory=list)

    @field_validator("solved_conflict_ids", "fulfilled_drive_ids", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        """Accept a single id and numeric ids."""
        return [str(x) for x in _as_list(v)]


__all__ = [
    "JudgePayload",
    "JudgeContext",
    "ConditionRequest",
    "NewAttributeSignal",
    "TradeResult",
    "ConditionResult",
    "GeneratedConflict",
    "GeneratedDriveSpec",
    "GeneratedDrive",
    "TurnAction",
    "ReactionResult",
    "SettlementResult",
]
