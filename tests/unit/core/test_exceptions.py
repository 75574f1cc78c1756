"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from taleweaver.core import exceptions
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


class TestTaleweaverError:
    """Tests for the base TaleweaverError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = TaleweaverError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = TaleweaverError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(TaleweaverError("Test", details={"x": 1}))
        assert "TaleweaverError" in repr_str
        assert "Test" in repr_str


class TestGameEngineErrors:
    """Tests for round engine exceptions."""

    def test_invalid_state_context(self) -> None:
        """Test phase context is recorded in details."""
        exc = InvalidGameStateError(
            "No turn awaited",
            current_phase="settlement",
            expected_phases=["char_acting"],
        )
        assert exc.details["current_phase"] == "settlement"
        assert exc.details["expected_phases"] == ["char_acting"]
        assert isinstance(exc, GameEngineError)

    def test_transaction_context(self) -> None:
        """Test participant context is recorded in details."""
        exc = TransactionError("Pool is not here", character_id="c1", pool_id="p1")
        assert exc.message == "Pool is not here"
        assert exc.details == {"character_id": "c1", "pool_id": "p1"}

    @pytest.mark.parametrize("error_cls", [TurnOrderError, StateStoreError, TransactionError])
    def test_engine_hierarchy(self, error_cls: type[Exception]) -> None:
        """Test engine errors share a base class."""
        assert issubclass(error_cls, GameEngineError)
        assert issubclass(error_cls, TaleweaverError)


class TestJudgeErrors:
    """Tests for Judge exceptions."""

    def test_model_and_operation(self) -> None:
        """Test model and operation context."""
        exc = JudgeConnectionError("Timed out", model="m1", operation="check_conditions")
        assert exc.details == {"model": "m1", "operation": "check_conditions"}

    def test_rate_limit_is_connection_error(self) -> None:
        """Test rate limiting is treated as a connection failure."""
        assert issubclass(JudgeRateLimitError, JudgeConnectionError)

    def test_response_error_is_not_connection_error(self) -> None:
        """Test validation failures are a separate category."""
        assert issubclass(JudgeResponseError, JudgeError)
        assert not issubclass(JudgeResponseError, JudgeConnectionError)


class TestConfigurationError:
    """Tests for configuration exceptions."""

    def test_config_key(self) -> None:
        """Test the config key is recorded."""
        exc = ConfigurationError("Bad value", config_key="pleasure_cap")
        assert exc.details["config_key"] == "pleasure_cap"


class TestHierarchy:
    """Tests for the exported exception set."""

    def test_exports_are_package_errors(self) -> None:
        """Test every exported exception derives from TaleweaverError."""
        for name in exceptions.__all__:
            assert issubclass(getattr(exceptions, name), TaleweaverError)

    def test_no_pydantic_name_clash(self) -> None:
        """Test no exported name shadows pydantic's ValidationError."""
        assert "ValidationError" not in exceptions.__all__
        assert not hasattr(exceptions, "ValidationError")
