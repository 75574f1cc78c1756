"""Configuration management for the Taleweaver round engine.

This module provides centralized configuration management using pydantic-settings,
supporting environment variables, .env files, and runtime configuration overrides.
The Judge API key is handled using SecretStr.

Example:
    >>> from taleweaver.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.gameplay.pleasure_decay
    20

Environment Variables:
    TALEWEAVER_JUDGE_API_KEY: API key for the Judge provider
    TALEWEAVER_JUDGE_MODEL: Judge model identifier
    TALEWEAVER_GAME_PLEASURE_DECAY: Pleasure lost per round by participants
    TALEWEAVER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taleweaver.core.exceptions import ConfigurationError


class JudgeSettings(BaseSettings):
    """Configuration for the Judge (AI reasoning service) connection.

    Attributes:
        api_key: Provider API key.
        base_url: OpenAI-compatible endpoint (OpenRouter by default).
        model: Default model identifier.
        temperature: Sampling temperature.
        max_tokens: Maximum completion tokens per call.
        validation_retries: Attempts for malformed/partial JSON before falling back.
        reaction_validation_retries: Attempts for reaction calls.
        transport_retries: Attempts for network/provider errors.
        timeout_seconds: Request timeout.
    """

    model_config = SettingsConfigDict(
        env_prefix="TALEWEAVER_JUDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: SecretStr | None = Field(default=None, description="Judge provider API key")
    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI-compatible endpoint",
    )
    model: str = Field(default="google/gemini-2.0-flash-001", description="Judge model")
    temperature: float = Field(default=1.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=1024, gt=0, description="Max completion tokens")
    validation_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for malformed judge responses",
    )
    reaction_validation_retries: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Attempts for malformed reaction responses",
    )
    transport_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for network/provider errors",
    )
    timeout_seconds: float = Field(default=60.0, gt=0, le=300, description="Request timeout")


class WorldStatusWeight(BaseModel):
    """One weighted entry of the world-status distribution."""

    name: str
    weight: float = Field(ge=0)


def _default_world_statuses() -> list[WorldStatusWeight]:
    return [
        WorldStatusWeight(name="Clear day", weight=40),
        WorldStatusWeight(name="Overcast", weight=30),
        WorldStatusWeight(name="Rain", weight=20),
        WorldStatusWeight(name="Storm", weight=10),
    ]


class GameplaySettings(BaseSettings):
    """Configuration for round engine rules.

    Attributes:
        default_initial_cp: CP granted to freshly created characters.
        default_creation_cost: CP cost of creating a new card.
        ap_recovery_per_round: Action points recovered at round end.
        pleasure_decay: Pleasure lost per round by participants.
        drive_weight_decay: Weight lost per round by every drive.
        drive_fulfilment_bonus: Weight gained by a fulfilled drive.
        pleasure_cap: Upper bound for pleasure.
        default_drive_weight: Weight of drives that omit one.
        world_status_change_probability: Chance of a world-status roll per round.
        world_status_distribution: Weighted world-status values.
        default_turn_seconds: Time passed when the Judge omits it.
        player_turn_seconds: Time passed by a human turn.
        peek_ceiling: Maximum number of items revealed by a peek.
        arrival_conflict_reward: AP reward of the arrival conflict.
    """

    model_config = SettingsConfigDict(
        env_prefix="TALEWEAVER_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_initial_cp: int = Field(default=50, ge=0)
    default_creation_cost: int = Field(default=10, ge=0)
    ap_recovery_per_round: int = Field(default=5, ge=0)
    pleasure_decay: int = Field(default=20, ge=0)
    drive_weight_decay: int = Field(default=10, ge=0)
    drive_fulfilment_bonus: int = Field(default=20, ge=0)
    pleasure_cap: int = Field(default=100, gt=0)
    default_drive_weight: int = Field(default=50, gt=0)
    world_status_change_probability: float = Field(default=0.1)
    world_status_distribution: list[WorldStatusWeight] = Field(
        default_factory=_default_world_statuses,
    )
    default_turn_seconds: int = Field(default=60, ge=0)
    player_turn_seconds: int = Field(default=300, ge=0)
    peek_ceiling: int = Field(default=5, ge=1, le=20)
    arrival_conflict_reward: int = Field(default=2, ge=0)

    @model_validator(mode="after")
    def validate_probability(self) -> "GameplaySettings":
        """Ensure the world-status probability is a probability.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If the probability is outside [0, 1].
        """
        if not 0.0 <= self.world_status_change_probability <= 1.0:
            raise ConfigurationError(
                "world_status_change_probability must be within [0, 1]",
                config_key="world_status_change_probability",
            )
        return self


class MemorySettings(BaseSettings):
    """Configuration for history windows sent to the Judge.

    Attributes:
        max_history_rounds: Rounds of global history for action prompts.
        max_short_history_rounds: Rounds of global history for condition checks.
        max_character_memory_rounds: Rounds of character-specific memory.
        max_history_entries: Hard cap on history lines per prompt.
    """

    model_config = SettingsConfigDict(
        env_prefix="TALEWEAVER_MEMORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_history_rounds: int = Field(default=20, ge=1)
    max_short_history_rounds: int = Field(default=5, ge=1)
    max_character_memory_rounds: int = Field(default=20, ge=1)
    max_history_entries: int = Field(default=50, ge=1)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Emit JSON logs instead of console output.
        global_variables: Macro substitutions for trigger templates.
        judge: Judge settings.
        gameplay: Gameplay rule settings.
        memory: History window settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="TALEWEAVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="Taleweaver", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Emit JSON logs")
    global_variables: dict[str, str] = Field(
        default_factory=dict,
        description="Global {{key}} substitutions for trigger templates",
    )

    judge: JudgeSettings = Field(default_factory=JudgeSettings)
    gameplay: GameplaySettings = Field(default_factory=GameplaySettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "JudgeSettings",
    "GameplaySettings",
    "MemorySettings",
    "WorldStatusWeight",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
