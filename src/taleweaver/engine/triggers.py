"""Scripted trigger evaluation.

Triggers attach to a Judge call site (a ``TriggerPhase``). Before each
Judge call the engine evaluates the enabled triggers of that phase against
the latest snapshot; every passing trigger contributes an urgent
requirement to the prompt and a line to the story log.

Evaluation is a pure function of the snapshot. The ``max_triggers``
countdown is returned as a list of updates which the caller commits
through an update callback (normally ``StateStore.update_trigger``).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from taleweaver.core.config import get_settings
from taleweaver.core.constants import WORLD_TIME_KEY
from taleweaver.core.logging import get_logger
from taleweaver.dm.memory import recent_entries
from taleweaver.models.attributes import canonical_key, coerce_number
from taleweaver.models.enums import Comparator, ConditionKind, LogType, TriggerPhase


if TYPE_CHECKING:
    from taleweaver.engine.store import StateStore
    from taleweaver.models.character import Character
    from taleweaver.models.game_state import GameState
    from taleweaver.models.triggers import Trigger, TriggerCondition

logger = get_logger(__name__)

_MISSING = object()
_NONE_VALUE = "None"

UpdateCallback = Callable[..., Awaitable[None]]
"""Called as ``callback(trigger_id, **changes)``."""


# =============================================================================
# Results
# =============================================================================


@dataclass
class TriggerUpdate:
    """A countdown change for one trigger.

    Attributes:
        trigger_id: Trigger to update.
        changes: Field values (``max_triggers`` and possibly ``enabled``).
    """

    trigger_id: str
    changes: dict[str, Any]


@dataclass
class TriggerOutcome:
    """Result of evaluating the triggers of one phase.

    Attributes:
        prompt_suffix: Urgent requirements to append to the Judge prompt.
        logs: System log lines to append to the story log.
        updates: Countdown changes to commit.
        fired: Ids of triggers that passed.
    """

    prompt_suffix: str = ""
    logs: list[str] = field(default_factory=list)
    updates: list[TriggerUpdate] = field(default_factory=list)
    fired: list[str] = field(default_factory=list)


# =============================================================================
# Comparison
# =============================================================================


def compare(actual: Any, comparator: Comparator | str, expected: Any) -> bool:
    """Compare a state value with a condition operand.

    Both sides are compared as numbers when both look numeric, otherwise
    as strings.

    Args:
        actual: Value found in the game state.
        comparator: Comparison operator.
        expected: Condition operand.

    Returns:
        Whether the comparison holds.

    Example:
        >>> compare("50", ">=", 50)
        True
        >>> compare("rain", "contains", "ai")
        True
    """
    op = Comparator(comparator)
    if op is Comparator.EXISTS:
        return bool(actual)
    if op is Comparator.NOT_EXISTS:
        return not actual
    if op is Comparator.CONTAINS:
        return str(expected) in str(actual)
    if op is Comparator.EXACT:
        return str(actual) == str(expected)

    left = coerce_number(actual)
    right = coerce_number(expected)
    if left is None or right is None:
        left, right = str(actual), str(expected)

    if op is Comparator.GT:
        return left > right
    if op is Comparator.GTE:
        return left >= right
    if op is Comparator.LT:
        return left < right
    if op is Comparator.LTE:
        return left <= right
    if op is Comparator.EQ:
        return left == right
    return left != right


# =============================================================================
# Evaluator
# =============================================================================


class TriggerEvaluator:
    """Evaluates triggers for a phase against a snapshot.

    Attributes:
        global_variables: ``{{key}}`` substitutions applied to templates.
        history_limit: Maximum story lines searched by history conditions.
    """

    def __init__(
        self,
        global_variables: dict[str, str] | None = None,
        history_limit: int | None = None,
    ) -> None:
        settings = get_settings()
        self.global_variables = (
            dict(settings.global_variables) if global_variables is None else dict(global_variables)
        )
        self.history_limit = history_limit or settings.memory.max_history_entries

    def evaluate(
        self,
        state: GameState,
        phase: TriggerPhase | str,
        context_char_id: str | None = None,
    ) -> TriggerOutcome:
        """Evaluate every enabled trigger of a phase.

        Args:
            state: The snapshot to evaluate against.
            phase: The Judge call site.
            context_char_id: Character meant by ``current`` (defaults to the
                active character).

        Returns:
            Prompt suffix, log lines and countdown updates.
        """
        phase = TriggerPhase(phase)
        outcome = TriggerOutcome()

        for trigger in state.triggers:
            if not trigger.enabled or trigger.phase != phase:
                continue
            values = self._evaluate_conditions(state, trigger, context_char_id)
            if values is None:
                continue

            outcome.fired.append(trigger.id)
            if trigger.is_limited:
                remaining = max(0, trigger.max_triggers - 1)
                changes: dict[str, Any] = {"max_triggers": remaining}
                if remaining == 0:
                    changes["enabled"] = False
                outcome.updates.append(TriggerUpdate(trigger.id, changes))

            if trigger.urgent_requirement:
                requirement = self._substitute(trigger.urgent_requirement, values)
                outcome.prompt_suffix += f"\n[URGENT (Trigger: {trigger.name})]: {requirement}"
            if trigger.system_log:
                outcome.logs.append(self._substitute(trigger.system_log, values))

        if outcome.fired:
            logger.debug("Triggers fired", phase=phase.value, triggers=outcome.fired)
        return outcome

    def _evaluate_conditions(
        self,
        state: GameState,
        trigger: Trigger,
        context_char_id: str | None,
    ) -> dict[str, Any] | None:
        """Evaluate AND-combined conditions; None if any fails."""
        values: dict[str, Any] = {}
        for index, condition in enumerate(trigger.conditions, start=1):
            matched = self._evaluate_condition(state, condition, context_char_id)
            if matched is _MISSING:
                return None
            values[f"condition {index}"] = matched
        return values

    def _evaluate_condition(
        self,
        state: GameState,
        condition: TriggerCondition,
        context_char_id: str | None,
    ) -> Any:
        """Return the matched value, or ``_MISSING`` if the condition fails."""
        kind = condition.kind
        op = condition.comparator

        if kind is ConditionKind.CHAR_ATTR:
            key = canonical_key(condition.target_name)
            for char in self._select_characters(state, condition, context_char_id):
                attr = char.attribute(key)
                if attr is not None and compare(attr.value, op, condition.value):
                    return attr.value
            return _MISSING

        if kind is ConditionKind.CHAR_CARD:
            return self._evaluate_card(state, condition, context_char_id)

        if kind in (ConditionKind.WORLD_TIME, ConditionKind.WORLD_ATTR):
            key = WORLD_TIME_KEY if kind is ConditionKind.WORLD_TIME else canonical_key(
                condition.target_name
            )
            attr = state.world.attributes.get(key)
            if attr is not None and compare(attr.value, op, condition.value):
                return attr.value
            return _MISSING

        if kind in (ConditionKind.CHAR_NAME, ConditionKind.LOC_NAME, ConditionKind.REGION_NAME):
            names: Iterable[str]
            if kind is ConditionKind.CHAR_NAME:
                names = (c.name for c in state.characters.values())
            elif kind is ConditionKind.LOC_NAME:
                names = (loc.name for loc in state.map.locations.values())
            else:
                names = (r.name for r in state.map.regions.values())
            exists = condition.target_name in set(names)
            if op is Comparator.EXISTS and exists:
                return condition.target_name
            if op is Comparator.NOT_EXISTS and not exists:
                return _NONE_VALUE
            return _MISSING

        if kind is ConditionKind.HISTORY:
            entries = recent_entries(
                state.world.history,
                state.round.round_number,
                rounds=condition.rounds,
                limit=self.history_limit,
            )
            text = "\n".join(e.content for e in entries)
            found = condition.value in text
            if op is Comparator.CONTAINS and found:
                return condition.value
            if op is Comparator.NOT_EXISTS and not found:
                return _NONE_VALUE
            return _MISSING

        return _MISSING

    def _evaluate_card(
        self,
        state: GameState,
        condition: TriggerCondition,
        context_char_id: str | None,
    ) -> Any:
        search = condition.target_name.lower()
        targets = self._select_characters(state, condition, context_char_id)

        def held_names(char: Character) -> list[str]:
            cards = [s.name for s in char.skills]
            for card_id in char.inventory:
                card = state.card(card_id)
                if card is not None:
                    cards.append(card.name)
            return cards

        if condition.comparator is Comparator.NOT_EXISTS:
            anyone = any(
                search in name.lower() for char in targets for name in held_names(char)
            )
            return _MISSING if anyone else _NONE_VALUE

        if condition.comparator not in (Comparator.EXISTS, Comparator.CONTAINS, Comparator.EXACT):
            return _MISSING

        for char in targets:
            for name in held_names(char):
                lowered = name.lower()
                if condition.comparator is Comparator.EXACT:
                    hit = lowered == search
                else:
                    hit = search in lowered
                if hit:
                    return name
        return _MISSING

    @staticmethod
    def _select_characters(
        state: GameState,
        condition: TriggerCondition,
        context_char_id: str | None,
    ) -> list[Character]:
        if condition.character_id == "current":
            char = state.character(context_char_id or state.round.active_char_id)
            return [char] if char is not None else []

        chars = list(state.characters.values())
        if condition.location_id and condition.location_id != "all":
            chars = [c for c in chars if state.map.location_of(c.id) == condition.location_id]
        if condition.character_id and condition.character_id != "all":
            chars = [c for c in chars if c.id == condition.character_id]
        return chars

    def _substitute(self, template: str, values: dict[str, Any]) -> str:
        text = template
        for key, value in values.items():
            text = text.replace(f"{{{{{key}}}}}", str(value))
        for key, value in self.global_variables.items():
            text = text.replace(f"{{{{{key}}}}}", str(value))
        return text

    async def commit(self, outcome: TriggerOutcome, on_update: UpdateCallback) -> None:
        """Commit countdown updates through a callback.

        Args:
            outcome: Result of ``evaluate``.
            on_update: Async callback invoked as ``on_update(trigger_id, **changes)``.
        """
        for update in outcome.updates:
            await on_update(update.trigger_id, **update.changes)


async def run_triggers(
    store: StateStore,
    evaluator: TriggerEvaluator,
    phase: TriggerPhase,
    context_char_id: str | None = None,
) -> str:
    """Evaluate a phase's triggers on the latest snapshot and commit side effects.

    Countdown updates are committed and log lines are appended to the
    story log as system entries.

    Args:
        store: The state store.
        evaluator: Trigger evaluator.
        phase: The Judge call site about to run.
        context_char_id: Character meant by ``current``.

    Returns:
        The prompt suffix for the Judge call.
    """
    outcome = evaluator.evaluate(store.snapshot, phase, context_char_id)
    await evaluator.commit(outcome, store.update_trigger)
    for line in outcome.logs:
        await store.add_log(line, type=LogType.SYSTEM)
    return outcome.prompt_suffix


__all__ = [
    "TriggerUpdate",
    "TriggerOutcome",
    "TriggerEvaluator",
    "compare",
    "run_triggers",
]
