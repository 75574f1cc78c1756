"""Character models.

Characters are player-controlled, AI-controlled, or environment
pseudo-actors that represent a location itself. Attributes are keyed by
canonical key; aliases supplied on input are translated by the validators
here and nowhere else.

Models:
    Conflict: An unresolved tension that rewards CP when solved.
    Drive: A weighted desire that grants pleasure when fulfilled.
    AIConfig: Per-character Judge overrides.
    Character: A participant in the story.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taleweaver.core.constants import DEFAULT_NUMBER_ATTRIBUTE, ENVIRONMENT_ID_PREFIX
from taleweaver.models.attributes import (
    AttributeKey,
    GameAttribute,
    canonical_key,
    coerce_number,
    display_name,
)
from taleweaver.models.cards import Card, new_id
from taleweaver.models.enums import AttributeType, Visibility


# =============================================================================
# Conflicts & Drives
# =============================================================================


class Conflict(BaseModel):
    """An unresolved tension attached to a character.

    Attributes:
        id: Conflict id (sequential numeric strings across the game).
        desc: Description of the tension.
        ap_reward: CP credited when the conflict is solved.
        solved: Whether the conflict has been resolved.
        solved_at: Round in which it was solved.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    desc: str
    ap_reward: int = Field(default=5, ge=0)
    solved: bool = Field(default=False)
    solved_at: int | None = Field(default=None)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Any:
        """Conflict ids are strings even when supplied as numbers."""
        if isinstance(v, int):
            return str(v)
        return v


class Drive(BaseModel):
    """A weighted desire whose fulfilment grants pleasure.

    Attributes:
        id: Drive identifier.
        condition: What would fulfil the drive.
        amount: Pleasure granted when fulfilled.
        weight: Likelihood weight; the drive is pruned at 0.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: new_id("drive"))
    condition: str
    amount: int = Field(default=10)
    weight: int = Field(default=50)


class AIConfig(BaseModel):
    """Per-character overrides for Judge calls."""

    model_config = ConfigDict(extra="ignore")

    model: str | None = Field(default=None, description="Judge model override")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    persona: str = Field(default="", description="Extra instructions for this character")


# =============================================================================
# Character
# =============================================================================


class Character(BaseModel):
    """A participant in the story.

    Attributes:
        id: Character id; ids starting with ``env_`` are environment actors.
        name: Display name.
        is_player: Whether a human controls this character.
        description: Background and personality.
        appearance: Physical description.
        attributes: Attributes keyed by canonical key.
        skills: Innate cards.
        inventory: Card ids held, duplicates allowed.
        conflicts: Conflicts in order of creation.
        drives: Current drives.
        ai_config: Judge overrides.

    Example:
        >>> hero = Character(id="c1", name="Ayla", attributes={"健康": {"value": 80}})
        >>> hero.number("health")
        80
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    is_player: bool = Field(default=False)
    description: str = Field(default="")
    appearance: str = Field(default="")
    attributes: dict[str, GameAttribute] = Field(default_factory=dict)
    skills: list[Card] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)
    drives: list[Drive] = Field(default_factory=list)
    ai_config: AIConfig = Field(default_factory=AIConfig)

    @field_validator("attributes", mode="before")
    @classmethod
    def canonicalize_attributes(cls, v: Any) -> Any:
        """Key attributes by canonical key and accept bare values."""
        if not isinstance(v, dict):
            return v
        result: dict[str, Any] = {}
        for raw_key, raw in v.items():
            key = canonical_key(str(raw_key))
            if isinstance(raw, GameAttribute):
                result[key] = raw.model_copy(update={"key": key})
            elif isinstance(raw, dict):
                result[key] = {**raw, "key": key}
            else:
                attr_type = (
                    AttributeType.NUMBER
                    if coerce_number(raw) is not None
                    else AttributeType.TEXT
                )
                result[key] = {"key": key, "type": attr_type, "value": raw}
        return result

    @property
    def is_environment(self) -> bool:
        """Whether this is an environment pseudo-actor."""
        return self.id.startswith(ENVIRONMENT_ID_PREFIX)

    @property
    def is_incapacitated(self) -> bool:
        """Whether health is at or below zero (environment actors are exempt)."""
        if self.is_environment:
            return False
        health = self.number(AttributeKey.HEALTH)
        return health is not None and health <= 0

    def attribute(self, key: str) -> GameAttribute | None:
        """Get an attribute by canonical key."""
        return self.attributes.get(key)

    def number(self, key: str, default: int | float | None = None) -> int | float | None:
        """Get a numeric attribute value by canonical key.

        Args:
            key: Canonical attribute key.
            default: Value returned when missing or non-numeric.

        Returns:
            The numeric value or the default.
        """
        attr = self.attributes.get(key)
        if attr is None:
            return default
        value = attr.number
        return default if value is None else value

    def ensure_attribute(
        self,
        key: str,
        *,
        attr_type: AttributeType = AttributeType.NUMBER,
        value: int | float | str = DEFAULT_NUMBER_ATTRIBUTE,
        visibility: Visibility = Visibility.PUBLIC,
    ) -> GameAttribute:
        """Get an attribute, creating it with a default value if missing.

        Args:
            key: Canonical attribute key.
            attr_type: Type used when creating.
            value: Initial value used when creating.
            visibility: Visibility used when creating.

        Returns:
            The existing or newly created attribute.
        """
        attr = self.attributes.get(key)
        if attr is None:
            attr = GameAttribute(
                key=key,
                name=display_name(key),
                type=attr_type,
                value=value,
                visibility=visibility,
            )
            self.attributes[key] = attr
        return attr

    def has_card(self, card_id: str) -> bool:
        """Whether the card is an innate skill or held in the inventory."""
        return card_id in self.inventory or any(s.id == card_id for s in self.skills)

    def remove_card_instance(self, card_id: str) -> bool:
        """Remove exactly one inventory instance of a card.

        Args:
            card_id: Card id to remove.

        Returns:
            True if an instance was removed.
        """
        try:
            self.inventory.remove(card_id)
        except ValueError:
            return False
        return True

    def unsolved_conflicts(self) -> list[Conflict]:
        """Conflicts that are still open."""
        return [c for c in self.conflicts if not c.solved]


def remove_instances(inventory: list[str], card_ids: list[str]) -> list[str]:
    """Remove one inventory instance per requested id (multiset difference).

    Args:
        inventory: Inventory card ids, duplicates allowed.
        card_ids: Ids to remove; an id listed twice removes two instances.

    Returns:
        A new inventory list.

    Example:
        >>> remove_instances(["a", "a", "b"], ["a"])
        ['a', 'b']
    """
    remaining = list(inventory)
    for card_id in card_ids:
        if card_id in remaining:
            remaining.remove(card_id)
    return remaining


__all__ = [
    "Conflict",
    "Drive",
    "AIConfig",
    "Character",
    "remove_instances",
]
