"""Tests for configuration management."""

from __future__ import annotations

import pytest

from taleweaver.core.config import (
    GameplaySettings,
    JudgeSettings,
    MemorySettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from taleweaver.core.exceptions import ConfigurationError


class TestJudgeSettings:
    """Tests for JudgeSettings configuration."""

    def test_default_values(self) -> None:
        """Test default Judge transport settings."""
        settings = JudgeSettings()

        assert settings.base_url == "https://openrouter.ai/api/v1"
        assert settings.validation_retries == 3
        assert settings.reaction_validation_retries == 2
        assert settings.transport_retries == 3

    def test_api_key_is_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the API key is loaded from the environment and masked."""
        monkeypatch.setenv("TALEWEAVER_JUDGE_API_KEY", "sk-test")

        settings = JudgeSettings()

        assert settings.api_key is not None
        assert settings.api_key.get_secret_value() == "sk-test"
        assert "sk-test" not in repr(settings)


class TestGameplaySettings:
    """Tests for GameplaySettings configuration."""

    def test_default_values(self) -> None:
        """Test default gameplay rule numbers."""
        settings = GameplaySettings()

        assert settings.default_creation_cost == 10
        assert settings.ap_recovery_per_round == 5
        assert settings.pleasure_decay == 20
        assert settings.drive_weight_decay == 10
        assert settings.drive_fulfilment_bonus == 20
        assert settings.pleasure_cap == 100
        assert settings.peek_ceiling == 5

    def test_world_status_distribution(self) -> None:
        """Test the default world-status distribution has positive weight."""
        settings = GameplaySettings()

        assert settings.world_status_distribution
        assert sum(s.weight for s in settings.world_status_distribution) > 0

    def test_probability_validation(self) -> None:
        """Test the world-status probability must lie within [0, 1]."""
        with pytest.raises(ConfigurationError) as exc_info:
            GameplaySettings(world_status_change_probability=1.5)

        assert "world_status_change_probability" in str(exc_info.value)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test gameplay settings read their own env prefix."""
        monkeypatch.setenv("TALEWEAVER_GAME_PLEASURE_DECAY", "7")

        assert GameplaySettings().pleasure_decay == 7


class TestMemorySettings:
    """Tests for MemorySettings configuration."""

    def test_default_values(self) -> None:
        """Test default history windows."""
        settings = MemorySettings()

        assert settings.max_history_rounds == 20
        assert settings.max_short_history_rounds == 5
        assert settings.max_character_memory_rounds == 20


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self) -> None:
        """Test default settings initialization."""
        settings = Settings()

        assert settings.app_name == "Taleweaver"
        assert settings.app_version == "0.1.0"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.global_variables == {}

    def test_debug_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test debug mode setting."""
        monkeypatch.setenv("TALEWEAVER_DEBUG", "true")

        settings = Settings()

        assert settings.debug is True
        assert settings.is_production is False

    def test_nested_settings_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test nested domains pick up their environment variables."""
        settings = Settings()

        assert settings.log_level == "DEBUG"
        assert settings.gameplay.pleasure_decay == 15
        assert settings.judge.api_key is not None


class TestSettingsCache:
    """Tests for the settings singleton."""

    def test_get_settings_is_cached(self) -> None:
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test clearing the cache reloads settings."""
        first = get_settings()
        monkeypatch.setenv("TALEWEAVER_GAME_PEEK_CEILING", "3")
        clear_settings_cache()

        second = get_settings()

        assert second is not first
        assert second.gameplay.peek_ceiling == 3
