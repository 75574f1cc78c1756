"""Game state models for the Taleweaver round engine.

This module defines the authoritative game-state snapshot: the map records
consumed from the world-building collaborator, the story log, the world
attributes, the round state machine's fields, and the aggregate
``GameState`` owned by the StateStore.

Models:
    Location / Region / CharPosition / MapState: World geometry records.
    LogEntry: One line of the in-game story log.
    WorldState: World attributes, story history and guidance.
    RoundState: Phase state machine fields for the current round.
    GameState: The complete snapshot.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taleweaver.core.constants import WORLD_STATUS_KEY, WORLD_TIME_KEY
from taleweaver.models.attributes import GameAttribute, canonical_key
from taleweaver.models.cards import Card, new_id
from taleweaver.models.character import Character
from taleweaver.models.enums import AttributeType, GamePhase, LogType
from taleweaver.models.lottery import PrizePool
from taleweaver.models.triggers import Trigger


# =============================================================================
# Map
# =============================================================================


class Location(BaseModel):
    """A place on the map.

    Attributes:
        id: Location id.
        name: Display name.
        description: Narrative description.
        region_id: Enclosing region, if any.
        x: Map x coordinate in metres.
        y: Map y coordinate in metres.
        is_known: Whether the party has discovered the location.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str = ""
    region_id: str | None = None
    x: float = 0.0
    y: float = 0.0
    is_known: bool = True


class Region(BaseModel):
    """A named region grouping locations."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str = ""


class CharPosition(BaseModel):
    """Where a character currently is."""

    model_config = ConfigDict(extra="ignore")

    location_id: str | None = None
    x: float = 0.0
    y: float = 0.0


class MapState(BaseModel):
    """Map records supplied by the world-building collaborator.

    Attributes:
        locations: Locations by id.
        regions: Regions by id.
        char_positions: Character positions by character id.
        active_location_id: Location the story is currently focused on.
    """

    model_config = ConfigDict(extra="ignore")

    locations: dict[str, Location] = Field(default_factory=dict)
    regions: dict[str, Region] = Field(default_factory=dict)
    char_positions: dict[str, CharPosition] = Field(default_factory=dict)
    active_location_id: str | None = None

    def location_of(self, char_id: str) -> str | None:
        """Get the location id of a character, if positioned."""
        position = self.char_positions.get(char_id)
        return position.location_id if position else None


# =============================================================================
# Story Log
# =============================================================================


class LogEntry(BaseModel):
    """One line of the in-game story log.

    Attributes:
        id: Entry id.
        round: Round number when written.
        turn_index: Turn index when written.
        location_id: Location the line happened at.
        present_char_ids: Characters present, used for character memory.
        content: The text.
        timestamp: Story time when written.
        type: narrative, system or action.
        is_reaction: Whether the line is a character's reaction.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: new_id("log"))
    round: int = 1
    turn_index: int = 0
    location_id: str | None = None
    present_char_ids: list[str] = Field(default_factory=list)
    content: str
    timestamp: str = ""
    type: LogType = LogType.NARRATIVE
    is_reaction: bool = False


# =============================================================================
# World & Round
# =============================================================================


class WorldState(BaseModel):
    """World attributes, story history and author guidance.

    Attributes:
        attributes: World attributes by key (includes world_time and world_status).
        history: Story log, oldest first.
        guidance: Author guidance prepended to action prompts.
    """

    model_config = ConfigDict(extra="ignore")

    attributes: dict[str, GameAttribute] = Field(
        default_factory=lambda: {
            WORLD_TIME_KEY: GameAttribute(
                key=WORLD_TIME_KEY,
                name="World Time",
                type=AttributeType.TEXT,
                value="0001:01:01:08:00:00",
            ),
            WORLD_STATUS_KEY: GameAttribute(
                key=WORLD_STATUS_KEY,
                name="World Status",
                type=AttributeType.TEXT,
                value="Clear day",
            ),
        }
    )
    history: list[LogEntry] = Field(default_factory=list)
    guidance: str = ""

    @field_validator("attributes", mode="before")
    @classmethod
    def canonicalize_attributes(cls, v: Any) -> Any:
        """Key world attributes by canonical key."""
        if isinstance(v, dict):
            return {canonical_key(str(k)): val for k, val in v.items()}
        return v

    def text(self, key: str, default: str = "") -> str:
        """Get a world attribute as text."""
        attr = self.attributes.get(key)
        return str(attr.value) if attr is not None else default


class RoundState(BaseModel):
    """Fields of the round state machine.

    Attributes:
        round_number: Current round (1-based).
        turn_index: Index into ``current_order``.
        phase: Current phase.
        current_order: Actor ids for this round, duplicates allowed.
        default_order: The last manual order, reused when auto-advancing.
        active_char_id: The acting character.
        is_paused: Whether the scheduler is stopped.
        auto_advance_count: Rounds that may complete without pausing.
        use_manual_turn_order: Whether the operator supplies the order.
        is_waiting_for_manual_order: Whether the scheduler waits for an order.
        skip_settlement: Whether settlement is bypassed.
        auto_reaction: Whether human reactions are synthesized by the Judge.
        action_points: Party action points.
        last_error_message: The error that paused the round.
        is_world_time_paused: Whether actions advance story time.
    """

    model_config = ConfigDict(extra="ignore")

    round_number: int = Field(default=1, ge=1)
    turn_index: int = Field(default=0, ge=0)
    phase: GamePhase = GamePhase.INIT
    current_order: list[str] = Field(default_factory=list)
    default_order: list[str] = Field(default_factory=list)
    active_char_id: str | None = None
    is_paused: bool = True
    auto_advance_count: int = Field(default=0, ge=0)
    use_manual_turn_order: bool = False
    is_waiting_for_manual_order: bool = False
    skip_settlement: bool = False
    auto_reaction: bool = False
    action_points: int = 0
    last_error_message: str | None = None
    is_world_time_paused: bool = False


# =============================================================================
# Game State
# =============================================================================


class GameState(BaseModel):
    """The complete authoritative snapshot.

    Characters keep insertion order, which is the discovery order used for
    stable tie-breaks in turn ordering.

    Attributes:
        world: World attributes and history.
        map: Map records.
        round: Round state machine fields.
        characters: Characters by id.
        card_pool: Card definitions by id.
        prize_pools: Prize pools by id.
        triggers: Scripted triggers.
    """

    model_config = ConfigDict(extra="ignore")

    world: WorldState = Field(default_factory=WorldState)
    map: MapState = Field(default_factory=MapState)
    round: RoundState = Field(default_factory=RoundState)
    characters: dict[str, Character] = Field(default_factory=dict)
    card_pool: dict[str, Card] = Field(default_factory=dict)
    prize_pools: dict[str, PrizePool] = Field(default_factory=dict)
    triggers: list[Trigger] = Field(default_factory=list)

    @field_validator("card_pool", mode="before")
    @classmethod
    def index_card_pool(cls, v: Any) -> Any:
        """Accept the card pool as a list of cards."""
        if isinstance(v, list):
            indexed: dict[str, Any] = {}
            for card in v:
                card_id = card.id if isinstance(card, Card) else card["id"]
                indexed[card_id] = card
            return indexed
        return v

    def character(self, char_id: str | None) -> Character | None:
        """Get a character by id."""
        if char_id is None:
            return None
        return self.characters.get(char_id)

    def card(self, card_id: str) -> Card | None:
        """Get a card definition by id from the pool."""
        return self.card_pool.get(card_id)

    def find_card(self, char: Character, card_id: str) -> Card | None:
        """Find a card usable by a character: innate skill or held card.

        Args:
            char: The character.
            card_id: Card id.

        Returns:
            The card, or None if the character neither knows nor holds it.
        """
        for skill in char.skills:
            if skill.id == card_id:
                return skill
        if card_id in char.inventory:
            return self.card_pool.get(card_id)
        return None

    def find_card_by_name(self, name: str, description: str | None = None) -> Card | None:
        """Find a pool card by name (and description, when given)."""
        for card in self.card_pool.values():
            if card.name == name and (description is None or card.description == description):
                return card
        return None

    def characters_at(self, location_id: str | None) -> list[Character]:
        """Characters positioned at a location, in discovery order."""
        if location_id is None:
            return []
        return [
            c for c in self.characters.values()
            if self.map.location_of(c.id) == location_id
        ]

    def next_conflict_id(self) -> int:
        """Next sequential numeric conflict id across all characters."""
        highest = 0
        for char in self.characters.values():
            for conflict in char.conflicts:
                try:
                    highest = max(highest, int(conflict.id))
                except ValueError:
                    continue
        return highest + 1


__all__ = [
    "Location",
    "Region",
    "CharPosition",
    "MapState",
    "LogEntry",
    "WorldState",
    "RoundState",
    "GameState",
]
