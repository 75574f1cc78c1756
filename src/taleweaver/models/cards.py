"""Card and effect models.

A card is the unit of action in Taleweaver: innate skills, inventory items
and lottery prizes are all cards. Cards are immutable once created; new
definitions are appended to the global card pool and characters reference
them by id.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taleweaver.models.attributes import canonical_key
from taleweaver.models.enums import ItemType, TargetType, TriggerType, Visibility


def new_id(prefix: str) -> str:
    """Generate a unique identifier with a readable prefix.

    Args:
        prefix: Identifier prefix (e.g. 'card').

    Returns:
        A string like ``card_3f2a9c1e``.
    """
    return f"{prefix}_{uuid4().hex[:12]}"


class Effect(BaseModel):
    """A single attribute mutation attached to a card, gated by a condition.

    Attributes:
        id: Effect identifier.
        name: Display name.
        target_type: Who the effect is aimed at.
        target_id: Explicit target for specific/AI-chosen effects.
        target_attribute: Canonical key of the attribute to change.
        value: Static delta (numeric) or replacement text.
        dynamic_value: Whether the Judge should derive the value.
        condition_description: Natural language hit condition.
        condition_context_keys: Attribute keys to include in the judgment context.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=lambda: new_id("eff"))
    name: str = Field(default="")
    target_type: TargetType = Field(default=TargetType.SELF)
    target_id: str | None = Field(default=None)
    target_attribute: str = Field(default="health")
    value: int | float | str = Field(default=0)
    dynamic_value: bool = Field(default=False)
    condition_description: str = Field(default="")
    condition_context_keys: tuple[str, ...] = Field(default=())

    @field_validator("target_attribute", mode="before")
    @classmethod
    def canonicalize_attribute(cls, v: Any) -> Any:
        """Translate aliases to canonical keys."""
        if isinstance(v, str):
            return canonical_key(v)
        return v

    @field_validator("condition_context_keys", mode="before")
    @classmethod
    def canonicalize_context_keys(cls, v: Any) -> Any:
        """Accept a single key and translate aliases."""
        if isinstance(v, str):
            v = [v]
        if isinstance(v, (list, tuple)):
            return tuple(canonical_key(str(k)) for k in v)
        return v


class Card(BaseModel):
    """An immutable card definition.

    Attributes:
        id: Card identifier, referenced from inventories.
        name: Display name.
        description: Narrative description.
        item_type: skill, consumable or event.
        trigger_type: When the card may be used.
        cost: Price in CP.
        effects: Ordered effects; the first effect decides hit or miss.
        visibility: Whether other characters can see the card.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(default_factory=lambda: new_id("card"))
    name: str = Field(min_length=1)
    description: str = Field(default="")
    item_type: ItemType = Field(default=ItemType.SKILL)
    trigger_type: TriggerType = Field(default=TriggerType.ACTIVE)
    cost: int = Field(default=0, ge=0)
    effects: tuple[Effect, ...] = Field(default=())
    visibility: Visibility = Field(default=Visibility.PUBLIC)

    @property
    def is_consumable(self) -> bool:
        """Whether using the card consumes one inventory instance."""
        return self.item_type == ItemType.CONSUMABLE

    @property
    def first_effect(self) -> Effect | None:
        """The effect that decides whether the card hits."""
        return self.effects[0] if self.effects else None

    def summary(self) -> str:
        """One-line description of the card's effects for log lines."""
        if not self.effects:
            return "none"
        return ", ".join(
            f"{e.target_attribute} {e.value} ({e.target_type.value})" for e in self.effects
        )


__all__ = [
    "new_id",
    "Effect",
    "Card",
]
