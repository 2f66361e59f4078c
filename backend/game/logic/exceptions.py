"""Typed domain exceptions for the round engines.

ValidationError covers malformed or incomplete answers and invalid session
configuration. Answer validation errors never escape ``submit_input``: the
engine converts them to a REJECTED result. ConfigError escapes ``start``.
"""


class GameRuleError(Exception):
    """Base exception for round engine rule violations."""


class ValidationError(GameRuleError):
    """Input is malformed, incomplete, or reuses an already used answer."""


class ConfigError(ValidationError):
    """Unknown mode/difficulty or otherwise invalid session configuration."""


class InvalidTransitionError(GameRuleError):
    """Operation is not valid in the session's current status."""

    def __init__(self, *, operation: str, status: str) -> None:
        self.operation = operation
        self.status = status
        super().__init__(f"cannot {operation} while session is {status}")
