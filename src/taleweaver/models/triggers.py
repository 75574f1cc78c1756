"""Scripted trigger models.

Triggers are authored outside the engine. The only mutation the engine
performs on them is the ``max_triggers`` countdown and the automatic
disable when it reaches zero.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taleweaver.models.cards import new_id
from taleweaver.models.enums import Comparator, ConditionKind, TriggerPhase


class TriggerCondition(BaseModel):
    """One AND-combined condition of a trigger.

    Attributes:
        kind: What the condition inspects.
        character_id: ``current`` (the acting character), ``all``, or a character id.
        location_id: ``all`` or a location id restricting the characters considered.
        target_name: Attribute key (``char_attr``, ``world_attr``), card name
            (``char_card``) or entity name (``char_name``, ``loc_name``,
            ``region_name``).
        comparator: Comparison operator.
        value: Comparison operand; the searched text for ``history``.
        rounds: History window in rounds for ``history`` conditions.
    """

    model_config = ConfigDict(extra="ignore")

    kind: ConditionKind
    character_id: str = Field(default="current")
    location_id: str = Field(default="all")
    target_name: str = Field(default="")
    comparator: Comparator = Field(default=Comparator.EQ)
    value: str = Field(default="")
    rounds: int = Field(default=5, ge=1)

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, v: object) -> object:
        """Numbers are accepted and compared through numeric auto-detection."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Trigger(BaseModel):
    """A scripted condition set that injects prompt text and log lines.

    Attributes:
        id: Trigger id.
        name: Display name, quoted in the prompt suffix.
        phase: Judge call site the trigger attaches to.
        conditions: AND-combined conditions; empty means always.
        urgent_requirement: Prompt text template.
        system_log: Story log template.
        max_triggers: Remaining fires; -1 means unlimited.
        enabled: Whether the trigger is evaluated.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: new_id("trigger"))
    name: str = Field(default="Trigger")
    phase: TriggerPhase
    conditions: list[TriggerCondition] = Field(default_factory=list)
    urgent_requirement: str = Field(default="")
    system_log: str = Field(default="")
    max_triggers: int = Field(default=-1, ge=-1)
    enabled: bool = Field(default=True)

    @property
    def is_limited(self) -> bool:
        """Whether the trigger has a finite number of fires."""
        return self.max_triggers > -1


__all__ = [
    "TriggerCondition",
    "Trigger",
]
