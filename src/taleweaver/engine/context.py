"""Judge context builders.

Helpers that turn the latest snapshot into the plain dictionaries placed
in Judge prompts. They only read state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from taleweaver.models.enums import Visibility


if TYPE_CHECKING:
    from taleweaver.models.character import Character
    from taleweaver.models.game_state import GameState


def world_attributes(state: GameState) -> dict[str, Any]:
    """World attribute values by key."""
    return {key: attr.value for key, attr in state.world.attributes.items()}


def attribute_values(char: Character, *, include_private: bool = True) -> dict[str, Any]:
    """Attribute values of a character by key."""
    return {
        key: attr.value
        for key, attr in char.attributes.items()
        if include_private or attr.visibility == Visibility.PUBLIC
    }


def held_cards(state: GameState, char: Character) -> list[dict[str, Any]]:
    """Innate skills and inventory cards of a character, as summaries."""
    cards = list(char.skills)
    for card_id in char.inventory:
        card = state.card(card_id)
        if card is not None:
            cards.append(card)
    return [
        {
            "id": card.id,
            "name": card.name,
            "description": card.description,
            "trigger_type": card.trigger_type.value,
            "item_type": card.item_type.value,
            "effects": card.summary(),
        }
        for card in cards
    ]


def entity_snapshot(state: GameState, char: Character) -> dict[str, Any]:
    """Attributes and cards of a character for condition checks."""
    return {
        "id": char.id,
        "attributes": attribute_values(char),
        "cards": [c["name"] for c in held_cards(state, char)],
    }


def character_summary(char: Character) -> dict[str, Any]:
    """What other characters can see of a character."""
    return {
        "id": char.id,
        "name": char.name,
        "is_player": char.is_player,
        "appearance": char.appearance,
        "attributes": attribute_values(char, include_private=False),
    }


def local_characters(state: GameState, char_id: str) -> list[dict[str, Any]]:
    """Summaries of the other characters at a character's location."""
    location_id = state.map.location_of(char_id) or state.map.active_location_id
    return [
        character_summary(c) for c in state.characters_at(location_id) if c.id != char_id
    ]


def location_text(state: GameState, location_id: str | None) -> str:
    """Name and description of a location."""
    location = state.map.locations.get(location_id) if location_id else None
    if location is None:
        return ""
    region = state.map.regions.get(location.region_id) if location.region_id else None
    prefix = f"{location.name} ({region.name})" if region else location.name
    return f"{prefix}: {location.description}" if location.description else prefix


__all__ = [
    "world_attributes",
    "attribute_values",
    "held_cards",
    "entity_snapshot",
    "character_summary",
    "local_characters",
    "location_text",
]
