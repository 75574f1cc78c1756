"""Engine-wide constants for the Taleweaver round engine.

This module defines fixed rules constants that are not user-configurable.
Tunable gameplay numbers live in ``taleweaver.core.config.GameplaySettings``.
"""

from __future__ import annotations

# =============================================================================
# Attribute Rules
# =============================================================================

ATTRIBUTE_FLOOR = -1
"""Numeric attribute values never drop below this floor."""

DEFAULT_NUMBER_ATTRIBUTE = 50
"""Default value for newly discovered or implicitly created numeric attributes."""

DEFAULT_TEXT_ATTRIBUTE = "None"
"""Default value for newly discovered text attributes."""

# =============================================================================
# Identifiers
# =============================================================================

ENVIRONMENT_ID_PREFIX = "env_"
"""Character ids with this prefix are environment pseudo-actors."""

WORLD_TIME_KEY = "world_time"
"""World attribute holding the story clock (YYYY:MM:DD:HH:MM:SS)."""

WORLD_STATUS_KEY = "world_status"
"""World attribute holding the current weather/world status."""

# =============================================================================
# Judge Contract
# =============================================================================

EFFECT_REQUEST_PREFIX = "eff_"
"""Condition-check request ids are ``eff_<index>`` for each card effect."""

ALWAYS_TRUE_CONDITION = "True"
"""Condition text sent for effects without a condition description."""

ENVIRONMENT_SUCCESS_REASON = "Environmental effect always succeeds"
"""Reason attached to locally synthesized results for world-targeted cards."""

DEFAULT_TIME_DELTA_SECONDS = 600
"""Fallback duration when a time-passage string cannot be parsed."""

# =============================================================================
# Cards
# =============================================================================

DEFAULT_TRADE_CARD_COST = 5
"""Cost assigned to cards minted by a trade."""

ARRIVAL_CONFLICT_DESC = "Newly arrived and unfamiliar with the surroundings"
"""Conflict granted to a character after moving to a new location."""

DEFAULT_GENERATED_CONFLICT_REWARD = 5
"""AP reward for Judge-generated conflicts that omit one."""

DEFAULT_GENERATED_DRIVE_AMOUNT = 10
"""Pleasure amount for Judge-generated drives that omit one."""
