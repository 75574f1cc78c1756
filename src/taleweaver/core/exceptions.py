"""Custom exception hierarchy for the Taleweaver round engine.

This module defines the exception hierarchy used across the engine. All
exceptions inherit from TaleweaverError, enabling unified error handling
at the scheduler boundary while preserving domain-specific context.

Failure categories map onto the hierarchy as follows:

- ValidationFailure: JudgeResponseError, raised inside the Judge and
  converted to a safe default before it reaches any resolver.
- ExternalCallFailure: JudgeConnectionError / JudgeRateLimitError,
  propagated to the RoundScheduler which pauses the round.
- TransactionFailure: TransactionError, aborting a single trade or
  lottery interaction.

Example:
    >>> from taleweaver.core.exceptions import TransactionError
    >>> raise TransactionError("Pool is empty", pool_id="pool_1")
"""

from __future__ import annotations

from typing import Any


class TaleweaverError(Exception):
    """Base exception for all Taleweaver errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Game Engine Exceptions
# =============================================================================


class GameEngineError(TaleweaverError):
    """Base exception for round engine errors."""


class InvalidGameStateError(GameEngineError):
    """Raised when an operation is attempted in an invalid game state.

    This includes submitting a turn for a character that is not acting,
    or confirming a manual order while the scheduler is not waiting.
    """

    def __init__(
        self,
        message: str,
        *,
        current_phase: str | None = None,
        expected_phases: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid state error with phase context.

        Args:
            message: Human-readable error description.
            current_phase: The phase the round was in.
            expected_phases: Phases in which the operation is valid.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_phase:
            combined_details["current_phase"] = current_phase
        if expected_phases:
            combined_details["expected_phases"] = expected_phases
        super().__init__(message, details=combined_details)


class TurnOrderError(GameEngineError):
    """Raised when a supplied turn order cannot be used."""


class TransactionError(GameEngineError):
    """Raised when trade or lottery preconditions are not met.

    Insufficient funds, a missing buyer, an empty pool or a pool outside
    the actor's location all abort only the specific action.
    """

    def __init__(
        self,
        message: str,
        *,
        character_id: str | None = None,
        pool_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize transaction error with participant context.

        Args:
            message: Human-readable error description.
            character_id: The character attempting the transaction.
            pool_id: The prize pool involved, if any.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if character_id:
            combined_details["character_id"] = character_id
        if pool_id:
            combined_details["pool_id"] = pool_id
        super().__init__(message, details=combined_details)


class StateStoreError(GameEngineError):
    """Raised when the state store cannot accept or apply a command."""


# =============================================================================
# Judge Exceptions
# =============================================================================


class JudgeError(TaleweaverError):
    """Base exception for all Judge (AI reasoning service) errors."""

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize judge error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the AI model involved.
            operation: Judge operation that failed (e.g. 'check_conditions').
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


class JudgeConnectionError(JudgeError):
    """Raised when the AI provider cannot be reached or returns an error.

    The scheduler pauses the round on this error; the round resumes by
    clearing the error and re-entering the same phase.
    """


class JudgeRateLimitError(JudgeConnectionError):
    """Raised when the provider keeps rate limiting after all retries."""


class JudgeResponseError(JudgeError):
    """Raised when a Judge response fails JSON or schema validation."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(TaleweaverError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


__all__ = [
    "TaleweaverError",
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
    # Configuration exceptions
    "ConfigurationError",
]
