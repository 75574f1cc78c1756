"""Tests for Judge payload models."""

from __future__ import annotations

from taleweaver.models.enums import AttributeType, ItemType, TransactionType
from taleweaver.models.judge import (
    ConditionResult,
    GeneratedConflict,
    GeneratedDrive,
    ReactionResult,
    SettlementResult,
    TurnAction,
)


class TestConditionResult:
    """Tests for ConditionResult coercion."""

    def test_defaults(self) -> None:
        """Test every optional field defaults safely."""
        result = ConditionResult()

        assert result.result is False
        assert result.derived_value is None
        assert result.trade_result is None
        assert result.new_attribute is None

    def test_string_verdicts(self) -> None:
        """Test textual verdicts."""
        assert ConditionResult(result="true").result is True
        assert ConditionResult(result="no").result is False

    def test_derived_value_coercion(self) -> None:
        """Test numeric strings become numbers and empty becomes None."""
        assert ConditionResult.model_validate({"derivedValue": "-12"}).derived_value == -12
        assert ConditionResult.model_validate({"derivedValue": ""}).derived_value is None
        assert ConditionResult.model_validate({"derivedValue": "angry"}).derived_value == "angry"

    def test_trade_result(self) -> None:
        """Test a camelCase trade payload."""
        result = ConditionResult.model_validate(
            {
                "result": True,
                "tradeResult": {
                    "itemName": "Lantern",
                    "price": "15",
                    "transactionType": "SELL",
                    "sourceCharacterName": "Merchant",
                },
            }
        )

        trade = result.trade_result
        assert trade is not None
        assert trade.price == 15
        assert trade.transaction_type is TransactionType.SELL
        assert trade.counterpart_name == "Merchant"

    def test_unparseable_price_is_free(self) -> None:
        """Test an unparseable price counts as zero."""
        result = ConditionResult.model_validate(
            {"tradeResult": {"itemName": "Rope", "price": "a lot"}}
        )

        assert result.trade_result is not None
        assert result.trade_result.price == 0

    def test_new_attribute_type(self) -> None:
        """Test attribute types are case-insensitive."""
        result = ConditionResult.model_validate(
            {"result": True, "newAttribute": {"name": "Mana", "type": "TEXT"}}
        )

        assert result.new_attribute is not None
        assert result.new_attribute.type is AttributeType.TEXT

    def test_null_fields(self) -> None:
        """Test null optional fields fall back to their defaults."""
        result = ConditionResult.model_validate(
            {
                "result": True,
                "reason": None,
                "newAttribute": {"name": "Mana", "type": None},
                "tradeResult": {
                    "itemName": "Rope",
                    "description": None,
                    "transactionType": None,
                    "itemType": None,
                },
            }
        )

        assert result.result is True
        assert result.reason == ""
        assert result.new_attribute is not None
        assert result.new_attribute.type is AttributeType.NUMBER
        trade = result.trade_result
        assert trade is not None
        assert trade.description == ""
        assert trade.transaction_type is TransactionType.BUY
        assert trade.item_type is ItemType.CONSUMABLE


class TestTurnAction:
    """Tests for TurnAction coercion."""

    def test_non_object_commands_dropped(self) -> None:
        """Test stray strings in the command list are dropped."""
        action = TurnAction.model_validate(
            {"commands": ["jump", {"type": "move_to", "destinationName": "Harbor"}]}
        )

        assert action.commands == [{"type": "move_to", "destinationName": "Harbor"}]

    def test_numeric_time_passed(self) -> None:
        """Test a plain number of seconds is accepted."""
        assert TurnAction.model_validate({"timePassed": 90}).time_passed == "90"

    def test_generated_defaults(self) -> None:
        """Test generated conflicts and drives fall back to defaults."""
        conflict = GeneratedConflict.model_validate({"targetCharId": "c1", "desc": "Owes money"})
        drive = GeneratedDrive.model_validate(
            {"targetCharId": "c1", "drive": {"condition": "Win a duel"}}
        )

        assert conflict.ap_reward == 5
        assert drive.amount == 10
        assert drive.drive.weight is None

    def test_null_fields(self) -> None:
        """Test null narration, speech and generated lists keep the turn."""
        action = TurnAction.model_validate(
            {
                "narrative": None,
                "speech": None,
                "commands": None,
                "generatedConflicts": None,
                "generatedDrives": {"targetCharId": "c1", "drive": {"condition": "Sleep"}},
            }
        )

        assert action.narrative == ""
        assert action.speech == ""
        assert action.commands == []
        assert action.generated_conflicts == []
        assert [d.drive.condition for d in action.generated_drives] == ["Sleep"]


class TestReactionResult:
    """Tests for ReactionResult coercion."""

    def test_null_speech(self) -> None:
        """Test a null speech is no reaction."""
        assert ReactionResult.model_validate({"speech": None}).speech == ""


class TestSettlementResult:
    """Tests for SettlementResult coercion."""

    def test_single_and_numeric_ids(self) -> None:
        """Test single ids and numeric ids become string lists."""
        result = SettlementResult.model_validate({"solvedConflictIds": 5, "fulfilledDriveIds": "d1"})

        assert result.solved_conflict_ids == ["5"]
        assert result.fulfilled_drive_ids == ["d1"]

    def test_duplicates_preserved(self) -> None:
        """Test duplicate ids survive parsing; deduplication is the resolver's job."""
        result = SettlementResult(solved_conflict_ids=["5", "5"])

        assert result.solved_conflict_ids == ["5", "5"]
