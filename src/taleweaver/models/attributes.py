"""Attribute models and the canonical attribute key schema.

Every attribute is stored under a canonical key. Localized or title-cased
names (``健康``, ``Health``) exist only in the presentation alias table and
are translated once, when data enters the system through a model validator
or a Judge payload. Engine code never looks attributes up by alias.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from taleweaver.core.constants import ATTRIBUTE_FLOOR
from taleweaver.models.enums import AttributeType, Visibility


# =============================================================================
# Canonical Keys
# =============================================================================


class AttributeKey(StrEnum):
    """Canonical keys of the attributes the engine itself reads."""

    HEALTH = "health"
    PHYSIQUE = "physique"
    PLEASURE = "pleasure"
    ENERGY = "energy"
    CP = "cp"
    STATUS = "status"


ATTRIBUTE_ALIASES: dict[str, AttributeKey] = {
    "健康": AttributeKey.HEALTH,
    "体能": AttributeKey.PHYSIQUE,
    "快感": AttributeKey.PLEASURE,
    "能量": AttributeKey.ENERGY,
    "创造点": AttributeKey.CP,
    "状态": AttributeKey.STATUS,
    "hp": AttributeKey.HEALTH,
    "creation points": AttributeKey.CP,
}
"""Presentation aliases mapped to canonical keys (lookup is case-insensitive)."""

DISPLAY_NAMES: dict[AttributeKey, str] = {
    AttributeKey.HEALTH: "Health",
    AttributeKey.PHYSIQUE: "Physique",
    AttributeKey.PLEASURE: "Pleasure",
    AttributeKey.ENERGY: "Energy",
    AttributeKey.CP: "CP",
    AttributeKey.STATUS: "Status",
}


def canonical_key(name: str) -> str:
    """Translate an attribute name or alias into its canonical key.

    Names that are neither canonical nor aliased are custom attributes and
    are returned stripped but otherwise unchanged.

    Args:
        name: Attribute name as supplied by a user, a card or the Judge.

    Returns:
        The canonical key.

    Example:
        >>> canonical_key("健康")
        'health'
        >>> canonical_key(" Physique ")
        'physique'
    """
    stripped = name.strip()
    lowered = stripped.lower()
    if lowered in AttributeKey._value2member_map_:
        return lowered
    alias = ATTRIBUTE_ALIASES.get(stripped) or ATTRIBUTE_ALIASES.get(lowered)
    if alias is not None:
        return alias.value
    return stripped


def display_name(key: str) -> str:
    """Get the presentation name for a canonical key."""
    try:
        return DISPLAY_NAMES[AttributeKey(key)]
    except ValueError:
        return key


def coerce_number(value: Any) -> int | float | None:
    """Interpret a loosely typed value as a number.

    Args:
        value: An int, float or numeric-looking string.

    Returns:
        The number (int when integral), or None if the value is not numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else number
    return None


def clamp_number(value: int | float) -> int | float:
    """Clamp a numeric attribute value at the attribute floor."""
    return max(ATTRIBUTE_FLOOR, value)


# =============================================================================
# Attribute Model
# =============================================================================


class GameAttribute(BaseModel):
    """A single named attribute of a character or of the world.

    Numeric values are coerced from numeric strings and never drop below
    the attribute floor of -1.

    Attributes:
        key: Canonical key.
        name: Display name.
        type: NUMBER or TEXT.
        value: Current value.
        visibility: Whether other characters may see the value.
        description: Optional free-text description.
    """

    model_config = ConfigDict(extra="ignore")

    key: str = Field(min_length=1, description="Canonical attribute key")
    name: str = Field(default="", description="Display name")
    type: AttributeType = Field(default=AttributeType.NUMBER, description="Value type")
    value: int | float | str = Field(default=0, description="Current value")
    visibility: Visibility = Field(default=Visibility.PUBLIC)
    description: str = Field(default="")

    @model_validator(mode="before")
    @classmethod
    def fill_key_and_name(cls, data: Any) -> Any:
        """Derive the key from the name (or vice versa) when only one is given."""
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("key") and data.get("name"):
                data["key"] = data["name"]
            if data.get("key") and not data.get("name"):
                data["name"] = display_name(canonical_key(str(data["key"])))
        return data

    @field_validator("key", mode="before")
    @classmethod
    def canonicalize_key(cls, v: Any) -> Any:
        """Translate aliases to canonical keys."""
        if isinstance(v, str):
            return canonical_key(v)
        return v

    @field_validator("value")
    @classmethod
    def normalize_value(cls, v: int | float | str, info: ValidationInfo) -> int | float | str:
        """Coerce and clamp numeric values; stringify text values."""
        if info.data.get("type") == AttributeType.TEXT:
            return str(v)
        number = coerce_number(v)
        if number is None:
            raise ValueError(f"Numeric attribute value expected, got {v!r}")
        return clamp_number(number)

    @property
    def is_number(self) -> bool:
        """Whether this is a numeric attribute."""
        return self.type == AttributeType.NUMBER

    @property
    def number(self) -> int | float | None:
        """Numeric value, or None for text attributes."""
        if not self.is_number:
            return coerce_number(self.value)
        return self.value  # type: ignore[return-value]

    def set_value(self, value: int | float | str) -> None:
        """Replace the value, applying the same normalization as validation.

        Args:
            value: The new value.
        """
        if self.is_number:
            number = coerce_number(value)
            if number is None:
                raise ValueError(f"Numeric attribute value expected, got {value!r}")
            self.value = clamp_number(number)
        else:
            self.value = str(value)

    def apply_delta(self, delta: int | float) -> int | float:
        """Add a delta to a numeric value, clamped at the floor.

        Args:
            delta: Amount to add (negative to subtract).

        Returns:
            The new value.
        """
        current = self.number or 0
        self.set_value(current + delta)
        return self.value  # type: ignore[return-value]


__all__ = [
    "AttributeKey",
    "ATTRIBUTE_ALIASES",
    "DISPLAY_NAMES",
    "canonical_key",
    "display_name",
    "coerce_number",
    "clamp_number",
    "GameAttribute",
]
