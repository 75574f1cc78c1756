"""Tests for turn action processing."""

from __future__ import annotations

import random
from collections.abc import Callable
from typing import TYPE_CHECKING

import pytest

from taleweaver.core.config import GameplaySettings
from taleweaver.engine.actions import AI_CARD_DESCRIPTION, ActionProcessor, nearby_locations
from taleweaver.engine.lottery import LotteryEngine
from taleweaver.engine.reactions import ReactionCoordinator
from taleweaver.engine.skills import SkillEffectResolver
from taleweaver.engine.store import StateStore
from taleweaver.engine.triggers import TriggerEvaluator
from taleweaver.models.attributes import GameAttribute
from taleweaver.models.cards import Card, Effect
from taleweaver.models.commands import (
    AttributeGrant,
    AttributeUpdate,
    CreateAttributeCommand,
    CreateCardCommand,
    LotteryCommand,
    MoveToCommand,
    PlayerTurn,
    RedeemCardCommand,
    UpdateAttributeCommand,
    UseSkillCommand,
)
from taleweaver.models.enums import GamePhase, LogType, TargetType, TriggerType
from taleweaver.models.game_state import GameState, Location
from taleweaver.models.judge import GeneratedConflict, GeneratedDrive, GeneratedDriveSpec, TurnAction
from taleweaver.models.lottery import PrizeItem, PrizePool


if TYPE_CHECKING:
    from tests.conftest import FakeJudge


PUNCH = Card(
    id="s_punch",
    name="Punch",
    effects=[
        Effect(target_type=TargetType.SPECIFIC_CHAR, target_attribute="health", value=-30),
    ],
)

WAVE = Card(id="s_wave", name="Wave")

MAP = [
    Location(id="loc_inn", name="Old Inn", x=10, y=0),
    Location(id="loc_cave", name="Hidden Cave", x=50, y=0, is_known=False),
    Location(id="loc_tower", name="Far Tower", x=5000, y=0),
]


@pytest.fixture
def make_processor(judge: FakeJudge, rng: random.Random) -> Callable[[GameState], ActionProcessor]:
    """Provide an action processor builder over a fresh store."""

    def build(state: GameState) -> ActionProcessor:
        store = StateStore(state)
        triggers = TriggerEvaluator({}, 50)
        reactions = ReactionCoordinator(store, judge, triggers)
        skills = SkillEffectResolver(store, judge, reactions, triggers, rng=rng)
        return ActionProcessor(
            store,
            judge,
            skills,
            reactions,
            LotteryEngine(rng, 5),
            triggers,
            rng=rng,
            gameplay=GameplaySettings(),
        )

    return build


def contents(processor: ActionProcessor) -> list[str]:
    return [e.content for e in processor.store.snapshot.world.history]


def acting(state: GameState, char_id: str) -> GameState:
    state.round.current_order = [char_id]
    state.round.active_char_id = char_id
    state.round.phase = GamePhase.CHAR_ACTING
    return state


# =============================================================================
# Turns
# =============================================================================


class TestAITurn:
    """Tests for Judge-decided turns."""

    async def test_full_turn(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test narration, speech, time, commands and generated goals."""
        judge.actions["c1"] = [
            TurnAction(
                narrative="Aria cracks her knuckles.",
                speech="Here I come!",
                time_passed="01:00:00",
                commands=[{"type": "use_skill", "skillId": "s_punch", "targetId": "c2"}],
                generated_conflicts=[GeneratedConflict(target_char_id="c2", desc="Hit back")],
                generated_drives=[
                    GeneratedDrive(target_char_id="c2", drive=GeneratedDriveSpec(condition="Revenge")),
                ],
            )
        ]
        state = acting(
            make_state(
                make_character("c1", "Aria", skills=[PUNCH]),
                make_character("c2", "Bob"),
            ),
            "c1",
        )
        processor = make_processor(state)

        await processor.perform_ai_turn("c1")

        snapshot = processor.store.snapshot
        log = contents(processor)
        assert log[:3] == [
            "Aria cracks her knuckles.",
            'Aria: "Here I come!"',
            "Story time: Year 1, Month 1, Day 1, 09:00, world status: Clear day",
        ]
        assert log[3:6] == ["Aria used [Punch]", "(target: Bob)", "> Effect: Bob Health -30 (now: 70)"]
        assert snapshot.world.history[3].type is LogType.ACTION

        bob = snapshot.characters["c2"]
        assert [(c.id, c.desc, c.ap_reward) for c in bob.conflicts] == [("1", "Hit back", 5)]
        assert [(d.condition, d.amount, d.weight) for d in bob.drives] == [("Revenge", 10, 50)]

        assert snapshot.round.turn_index == 1
        assert snapshot.round.phase is GamePhase.TURN_START
        assert snapshot.round.active_char_id is None
        await processor.store.close()

    async def test_context(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test the decision context lists what the character can do and reach."""
        passive = Card(id="card_charm", name="Charm", trigger_type=TriggerType.PASSIVE)
        state = make_state(
            make_character("c1", skills=[PUNCH], inventory=["card_charm"]),
            make_character("c2", "Bob"),
            locations=MAP,
        )
        state.card_pool = {passive.id: passive}
        state.prize_pools = {"pool_1": PrizePool(id="pool_1", name="Box", location_ids=["loc_square"])}
        processor = make_processor(state)

        context = processor.action_context(processor.store.snapshot, processor.store.snapshot.characters["c1"])

        assert [c["name"] for c in context.cards] == ["Punch"]
        assert [c["name"] for c in context.characters] == ["Bob"]
        assert context.destinations == ["Old Inn", "an unknown place (loc_cave)"]
        assert context.prize_pools[0]["id"] == "pool_1"
        assert context.location == "Town Square"
        await processor.store.close()

    async def test_invalid_commands_dropped(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test unknown commands are skipped and the turn still ends."""
        judge.actions["c1"] = [TurnAction(commands=[{"type": "fly"}, {"type": "move_to"}])]
        processor = make_processor(acting(make_state(make_character("c1")), "c1"))

        await processor.perform_ai_turn("c1")

        assert processor.store.snapshot.round.turn_index == 1
        await processor.store.close()

    async def test_paused_round_drops_commands(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test no command starts once the round is paused."""
        judge.actions["c1"] = [
            TurnAction(commands=[{"type": "update_attribute", "attributeUpdates": [{"key": "hp", "value": 1}]}])
        ]
        state = acting(make_state(make_character("c1")), "c1")
        state.round.is_paused = True
        processor = make_processor(state)

        await processor.perform_ai_turn("c1")

        assert processor.store.snapshot.characters["c1"].number("health") == 100
        await processor.store.close()

    async def test_default_duration(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a turn without a stated duration takes one minute."""
        processor = make_processor(acting(make_state(make_character("c1")), "c1"))
        await processor.perform_ai_turn("c1")
        assert processor.store.snapshot.world.text("world_time") == "0001:01:01:08:01:00"
        await processor.store.close()

    async def test_world_time_paused(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a paused clock neither advances nor logs."""
        state = acting(make_state(make_character("c1"), is_world_time_paused=True), "c1")
        processor = make_processor(state)

        await processor.perform_ai_turn("c1")

        assert processor.store.snapshot.world.text("world_time") == "0001:01:01:08:00:00"
        assert not any(line.startswith("Story time") for line in contents(processor))
        await processor.store.close()


class TestPlayerTurn:
    """Tests for submitted human turns."""

    async def test_skip(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test an empty turn lets the moment pass and takes five minutes."""
        state = acting(make_state(make_character("p1", "Hero", is_player=True)), "p1")
        processor = make_processor(state)

        await processor.submit_player_turn("p1", PlayerTurn())

        snapshot = processor.store.snapshot
        assert contents(processor)[0] == "> Hero let the moment pass."
        assert snapshot.world.text("world_time") == "0001:01:01:08:05:00"
        assert snapshot.round.turn_index == 1
        assert snapshot.round.phase is GamePhase.TURN_START
        await processor.store.close()

    async def test_movement_last(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test queued movement runs after every other action."""
        state = acting(
            make_state(make_character("p1", "Hero", is_player=True, skills=[WAVE]), locations=MAP),
            "p1",
        )
        processor = make_processor(state)
        turn = PlayerTurn(
            speech="Bye!",
            actions=[MoveToCommand(destination_name="Old Inn"), UseSkillCommand(skill_id="s_wave")],
            duration_seconds=0,
        )

        await processor.submit_player_turn("p1", turn)

        log = contents(processor)
        assert log.index("Hero used [Wave]") < log.index("> Hero moved to Old Inn.")
        assert log[0] == 'Hero: "Bye!"'
        assert processor.store.snapshot.map.location_of("p1") == "loc_inn"
        assert processor.store.snapshot.world.text("world_time") == "0001:01:01:08:00:00"
        await processor.store.close()

    async def test_paused_turn_not_advanced(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a paused round keeps the turn where it stopped."""
        state = acting(make_state(make_character("p1", is_player=True, skills=[WAVE])), "p1")
        state.round.is_paused = True
        processor = make_processor(state)

        await processor.submit_player_turn("p1", PlayerTurn(actions=[UseSkillCommand(skill_id="s_wave")]))

        snapshot = processor.store.snapshot
        assert snapshot.round.phase is GamePhase.EXECUTING
        assert snapshot.round.turn_index == 0
        assert "> (effect applied)" not in contents(processor)
        await processor.store.close()


# =============================================================================
# Commands
# =============================================================================


class TestUseSkill:
    """Tests for card use."""

    async def test_by_name(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a card can be referenced by name."""
        processor = make_processor(make_state(make_character("c1", "Aria", skills=[WAVE])))
        await processor.execute("c1", UseSkillCommand(skill_id="Wave"))
        assert contents(processor) == ["Aria used [Wave]", "> (effect applied)"]
        await processor.store.close()

    async def test_unknown_card(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test using a card the character lacks only logs."""
        processor = make_processor(make_state(make_character("c1", "Aria")))
        await processor.execute("c1", UseSkillCommand(skill_id="s_missing"))
        assert contents(processor) == ["> Aria reached for a card they do not have."]
        await processor.store.close()

    async def test_passive_card(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test passive cards cannot be used directly."""
        aura = Card(id="s_aura", name="Aura", trigger_type=TriggerType.PASSIVE)
        processor = make_processor(make_state(make_character("c1", skills=[aura])))
        await processor.execute("c1", UseSkillCommand(skill_id="s_aura"))
        assert contents(processor) == ["> [Aura] is a passive card and cannot be used directly."]
        await processor.store.close()


class TestLottery:
    """Tests for lottery commands."""

    async def test_draw_and_react(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a revealed draw is logged and the drawer reacts."""
        state = make_state(make_character("c1", "Aria"))
        state.prize_pools = {
            "pool_1": PrizePool(id="pool_1", name="Box", items=[PrizeItem(name="Gem")])
        }
        processor = make_processor(state)

        await processor.execute("c1", LotteryCommand(pool_id="pool_1"))

        assert contents(processor) == ["> Lottery: Aria drew [Gem] from [Box]!"]
        assert judge.called("determine_reaction") == [("c1", "I just drew [Gem] from [Box].")]
        assert len(processor.store.snapshot.characters["c1"].inventory) == 1
        await processor.store.close()

    async def test_out_of_reach(
        self,
        judge: FakeJudge,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a pool elsewhere aborts only the lottery action."""
        state = make_state(make_character("c1", "Aria"))
        state.prize_pools = {
            "pool_1": PrizePool(
                id="pool_1",
                name="Box",
                location_ids=["loc_inn"],
                items=[PrizeItem(name="Gem")],
            )
        }
        processor = make_processor(state)

        await processor.execute("c1", LotteryCommand(pool_id="pool_1"))

        assert contents(processor) == ["> Aria tried to use [Box], but it is not here."]
        assert len(processor.store.snapshot.prize_pools["pool_1"].items) == 1
        assert judge.calls == []
        await processor.store.close()


class TestCreateCommands:
    """Tests for card and attribute creation."""

    async def test_create_card(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test creating a card costs CP and reuses an identical definition."""
        processor = make_processor(make_state(make_character("c1", "Aria", cp=25)))
        command = CreateCardCommand(created_card=Card(name="Fireball"))

        await processor.execute("c1", command)
        await processor.execute("c1", command)

        snapshot = processor.store.snapshot
        aria = snapshot.characters["c1"]
        assert aria.number("cp") == 5
        assert len(snapshot.card_pool) == 1
        card = next(iter(snapshot.card_pool.values()))
        assert card.id.startswith("card_ai_")
        assert card.description == AI_CARD_DESCRIPTION
        assert aria.inventory == [card.id, card.id]
        assert contents(processor)[0] == "> Aria created the card [Fireball] (-10 CP)"
        await processor.store.close()

    async def test_create_card_without_cp(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a character short of CP creates nothing."""
        processor = make_processor(make_state(make_character("c1", "Aria", cp=3)))

        await processor.execute("c1", CreateCardCommand(created_card=Card(name="Fireball")))

        assert processor.store.snapshot.card_pool == {}
        assert contents(processor) == ["> Aria lacks the CP to create [Fireball] (3/10)."]
        await processor.store.close()

    async def test_create_attributes(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test new attributes are added and existing ones kept."""
        processor = make_processor(make_state(make_character("c1"), make_character("c2", "Bob")))
        command = CreateAttributeCommand(
            created_attributes=[
                AttributeGrant(target_id="c2", attribute=GameAttribute(key="Mana", value=10)),
                AttributeGrant(attribute=GameAttribute(key="health", value=1)),
            ]
        )

        await processor.execute("c1", command)

        snapshot = processor.store.snapshot
        assert snapshot.characters["c2"].number("Mana") == 10
        assert snapshot.characters["c1"].number("health") == 100
        assert contents(processor) == ["> New attribute: Bob gained [Mana] = 10"]
        await processor.store.close()

    async def test_update_attributes(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test own and world attributes are updated by canonical key."""
        processor = make_processor(make_state(make_character("c1")))
        command = UpdateAttributeCommand(
            attribute_updates=[
                AttributeUpdate(key="HP", value=80),
                AttributeUpdate(key="physique", value="strong"),
                AttributeUpdate(target="world", key="world_status", value="Rain"),
                AttributeUpdate(key="mood", value="cheerful"),
            ]
        )

        await processor.execute("c1", command)

        snapshot = processor.store.snapshot
        c1 = snapshot.characters["c1"]
        assert c1.number("health") == 80
        assert c1.number("physique") == 50
        assert c1.attributes["mood"].value == "cheerful"
        assert snapshot.world.text("world_status") == "Rain"
        assert "> Attribute updated: C1 Health = 80" in contents(processor)
        await processor.store.close()


class TestMove:
    """Tests for movement."""

    @pytest.mark.parametrize("name", ["Old Inn", "old inn", "Inn", "loc_inn"])
    async def test_destination_matching(
        self,
        name: str,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test exact, case-insensitive and partial destination names."""
        processor = make_processor(make_state(make_character("c1"), locations=MAP))
        await processor.execute("c1", MoveToCommand(destination_name=name))
        assert processor.store.snapshot.map.location_of("c1") == "loc_inn"
        await processor.store.close()

    async def test_arrival(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test arriving adds a conflict and is witnessed where the mover left."""
        processor = make_processor(
            make_state(make_character("c1", "Aria"), make_character("c2"), locations=MAP)
        )

        await processor.execute("c1", MoveToCommand(destination_name="Old Inn"))

        snapshot = processor.store.snapshot
        position = snapshot.map.char_positions["c1"]
        assert (position.x, position.y) == (10, 0)
        [conflict] = snapshot.characters["c1"].conflicts
        assert conflict.ap_reward == 2
        entry = snapshot.world.history[-1]
        assert entry.content == "> Aria moved to Old Inn."
        assert entry.location_id == "loc_square"
        assert entry.present_char_ids == ["c2", "c1"]
        await processor.store.close()

    async def test_unknown_place(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test an unmatched name leads to a nearby undiscovered place."""
        processor = make_processor(make_state(make_character("c1", "Aria"), locations=MAP))

        await processor.execute("c1", MoveToCommand(destination_name="The Misty Marsh"))

        assert processor.store.snapshot.map.location_of("c1") == "loc_cave"
        assert contents(processor) == ["> Aria moved to an unknown place."]
        await processor.store.close()

    async def test_no_way(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test an unmatched name with nothing undiscovered nearby goes nowhere."""
        processor = make_processor(make_state(make_character("c1", "Aria")))

        await processor.execute("c1", MoveToCommand(destination_name="Atlantis"))

        assert processor.store.snapshot.map.location_of("c1") == "loc_square"
        assert contents(processor) == ["> Aria found no way to [Atlantis]."]
        await processor.store.close()

    def test_nearby(self, make_state: Callable) -> None:
        """Test distant locations are out of reach."""
        state: GameState = make_state(locations=MAP)
        assert [loc.id for loc in nearby_locations(state, "loc_square")] == ["loc_inn", "loc_cave"]


class TestRedeem:
    """Tests for card redemption."""

    async def test_redeem(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test a held card is exchanged for a new definition."""
        state = make_state(make_character("c1", "Aria", inventory=["card_a", "card_a"]))
        state.card_pool = {"card_a": Card(id="card_a", name="Apple")}
        processor = make_processor(state)
        command = RedeemCardCommand(
            target_char_id="c1",
            old_card_id="card_a",
            new_card=Card(name="Golden Apple"),
        )

        await processor.execute("c1", command)

        snapshot = processor.store.snapshot
        inventory = snapshot.characters["c1"].inventory
        assert inventory[0] == "card_a"
        assert inventory[1].startswith("card_redeem_")
        assert snapshot.card_pool[inventory[1]].name == "Golden Apple"
        assert contents(processor) == [
            "> [System] Reward redeemed: Aria exchanged [Apple] for [Golden Apple]"
        ]
        await processor.store.close()

    async def test_not_held(
        self,
        make_processor: Callable,
        make_character: Callable,
        make_state: Callable,
    ) -> None:
        """Test redeeming a card that is not held fails."""
        processor = make_processor(make_state(make_character("c1")))
        command = RedeemCardCommand(target_char_id="c1", old_card_id="card_a", new_card=Card(name="X"))

        await processor.execute("c1", command)

        assert processor.store.snapshot.card_pool == {}
        assert contents(processor) == ["> [System] Redeem failed: the card is not held."]
        await processor.store.close()
