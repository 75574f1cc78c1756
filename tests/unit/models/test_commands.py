"""Tests for the command union."""

from __future__ import annotations

from taleweaver.models.commands import (
    CreateAttributeCommand,
    LotteryCommand,
    MoveToCommand,
    PlayerTurn,
    UpdateAttributeCommand,
    UseSkillCommand,
    order_pending_actions,
    parse_command,
    parse_commands,
)
from taleweaver.models.enums import LotteryAction


class TestParseCommand:
    """Tests for boundary validation of commands."""

    def test_use_skill_camel_case(self) -> None:
        """Test a camelCase use_skill payload."""
        command = parse_command(
            {"type": "use_skill", "skillId": "card_1", "targetId": "c2", "effectOverrides": {"0": -5}}
        )

        assert isinstance(command, UseSkillCommand)
        assert command.skill_id == "card_1"
        assert command.target_id == "c2"
        assert command.effect_overrides == {0: -5}

    def test_short_type_aliases(self) -> None:
        """Test abbreviated attribute command types."""
        created = parse_command(
            {"type": "create_attr", "createdAttributes": [{"attribute": {"name": "Courage", "value": 3}}]}
        )
        updated = parse_command(
            {"type": "update_attr", "attributeUpdates": [{"target": "world", "key": "体能", "value": 1}]}
        )

        assert isinstance(created, CreateAttributeCommand)
        assert created.created_attributes[0].attribute.key == "Courage"
        assert isinstance(updated, UpdateAttributeCommand)
        assert updated.attribute_updates[0].key == "physique"

    def test_lottery_single_card_id(self) -> None:
        """Test a deposit may name a single card id."""
        command = parse_command(
            {"type": "lottery", "poolId": "p1", "action": "deposit", "cardIds": "card_9"}
        )

        assert isinstance(command, LotteryCommand)
        assert command.action is LotteryAction.DEPOSIT
        assert command.card_ids == ["card_9"]

    def test_unknown_type_dropped(self) -> None:
        """Test unknown command types are dropped."""
        assert parse_command({"type": "fly", "height": 3}) is None

    def test_malformed_dropped(self) -> None:
        """Test malformed payloads are dropped."""
        assert parse_command({"type": "move_to"}) is None
        assert parse_command("move north") is None

    def test_parse_commands_keeps_valid(self) -> None:
        """Test invalid commands do not discard valid ones."""
        commands = parse_commands(
            [
                {"type": "move_to", "destinationName": "Harbor"},
                {"type": "dance"},
                {"type": "use_skill", "skillId": "s1"},
            ]
        )

        assert [type(c) for c in commands] == [MoveToCommand, UseSkillCommand]

    def test_parse_commands_single_and_none(self) -> None:
        """Test a single payload and None are accepted."""
        assert len(parse_commands({"type": "move_to", "destinationName": "Harbor"})) == 1
        assert parse_commands(None) == []


class TestPendingActions:
    """Tests for player turns and action ordering."""

    def test_player_turn_actions(self) -> None:
        """Test queued intents are validated into the union."""
        turn = PlayerTurn.model_validate(
            {
                "speech": "Let's go",
                "actions": [
                    {"type": "move_to", "destinationName": "Harbor"},
                    {"type": "use_skill", "skillId": "s1"},
                ],
            }
        )

        assert isinstance(turn.actions[0], MoveToCommand)
        assert isinstance(turn.actions[1], UseSkillCommand)

    def test_movement_last(self) -> None:
        """Test movement runs last and other actions keep their order."""
        move = MoveToCommand(destination_name="Harbor")
        first = UseSkillCommand(skill_id="s1")
        draw = LotteryCommand(pool_id="p1")
        second = UseSkillCommand(skill_id="s2")

        ordered = order_pending_actions([move, first, draw, second])

        assert ordered == [first, draw, second, move]

    def test_multiple_moves_stable(self) -> None:
        """Test several moves keep their relative order at the end."""
        a = MoveToCommand(destination_name="A")
        b = MoveToCommand(destination_name="B")
        skill = UseSkillCommand(skill_id="s1")

        assert order_pending_actions([a, skill, b]) == [skill, a, b]
