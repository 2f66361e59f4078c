"""Tests for the round engine exception hierarchy."""

import pytest

from game.logic.exceptions import ConfigError, GameRuleError, InvalidTransitionError, ValidationError


class TestInvalidTransitionError:
    def test_stores_operation_and_status(self) -> None:
        err = InvalidTransitionError(operation="start", status="running")
        assert err.operation == "start"
        assert err.status == "running"

    def test_message_format(self) -> None:
        err = InvalidTransitionError(operation="summarize", status="paused")
        assert str(err) == "cannot summarize while session is paused"

    def test_requires_keyword_arguments(self) -> None:
        with pytest.raises(TypeError):
            InvalidTransitionError("start", "running")  # type: ignore[misc]

    def test_is_not_a_validation_error(self) -> None:
        assert not issubclass(InvalidTransitionError, ValidationError)
        assert issubclass(InvalidTransitionError, GameRuleError)


def test_config_error_is_a_validation_error() -> None:
    assert issubclass(ConfigError, ValidationError)
    assert issubclass(ValidationError, GameRuleError)
