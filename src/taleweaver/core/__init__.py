"""Core module providing configuration, logging, and base exceptions.

This module serves as the foundation for the Taleweaver round engine,
providing essential infrastructure components used throughout the package.

Exports:
    Exceptions:
        TaleweaverError: Base exception for all package errors.
        ConfigurationError: Configuration-related errors.
        JudgeConnectionError: Judge transport failures that pause a round.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from taleweaver.core.config import (
    GameplaySettings,
    JudgeSettings,
    MemorySettings,
    Settings,
    WorldStatusWeight,
    clear_settings_cache,
    get_settings,
)
from taleweaver.core.exceptions import (
    ConfigurationError,
    GameEngineError,
    InvalidGameStateError,
    JudgeConnectionError,
    JudgeError,
    JudgeRateLimitError,
    JudgeResponseError,
    StateStoreError,
    TaleweaverError,
    TransactionError,
    TurnOrderError,
)
from taleweaver.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "TaleweaverError",
    # Configuration exceptions
    "ConfigurationError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidGameStateError",
    "TurnOrderError",
    "TransactionError",
    "StateStoreError",
    # Judge exceptions
    "JudgeError",
    "JudgeConnectionError",
    "JudgeRateLimitError",
    "JudgeResponseError",
    # Configuration
    "Settings",
    "JudgeSettings",
    "GameplaySettings",
    "MemorySettings",
    "WorldStatusWeight",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
