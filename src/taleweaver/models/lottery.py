"""Prize pool models for the lottery sub-system."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from taleweaver.models.cards import new_id


class PrizeItem(BaseModel):
    """A weighted item in a prize pool.

    Attributes:
        id: Item id.
        name: Item name, used as the minted card's name.
        description: Item description.
        weight: Relative draw weight; 0 means never drawn.
        is_hidden: Hidden prizes become private cards.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: new_id("pitem"))
    name: str = Field(min_length=1)
    description: str = Field(default="")
    weight: float = Field(default=1, ge=0)
    is_hidden: bool = Field(default=False)


class PrizePool(BaseModel):
    """A lottery pool reachable from a set of locations.

    Attributes:
        id: Pool id.
        name: Display name.
        description: Narrative description.
        location_ids: Locations the pool is reachable from; empty means anywhere.
        items: Remaining items.
        min_draws: Minimum items per draw.
        max_draws: Maximum items per draw.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: new_id("pool"))
    name: str = Field(min_length=1)
    description: str = Field(default="")
    location_ids: list[str] = Field(default_factory=list)
    items: list[PrizeItem] = Field(default_factory=list)
    min_draws: int = Field(default=1, ge=1)
    max_draws: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def validate_draw_bounds(self) -> "PrizePool":
        """Ensure min_draws does not exceed max_draws."""
        if self.min_draws > self.max_draws:
            raise ValueError(
                f"min_draws ({self.min_draws}) must not exceed max_draws ({self.max_draws})"
            )
        return self

    @property
    def total_weight(self) -> float:
        """Sum of item weights."""
        return sum(item.weight for item in self.items)

    def is_reachable_from(self, location_id: str | None) -> bool:
        """Whether a character at the given location may use the pool."""
        if not self.location_ids:
            return True
        return location_id is not None and location_id in self.location_ids


__all__ = [
    "PrizeItem",
    "PrizePool",
]
