"""Typed errors raised by the settlement persistence layer.

Both are fatal for a single submission: the caller must treat the whole
submission as not applied. They are converted to failed submission
responses at the settlement boundary (ScoreStore.submit).
"""


class SettlementError(Exception):
    """Base class for errors that abort a score submission."""


class NotFoundError(SettlementError):
    """Unknown user, game or bucket. Raised before any mutation."""


class PersistenceError(SettlementError):
    """The backend failed to read or write. The transaction was rolled back."""


class SessionOwnershipError(SettlementError):
    """The session id was already settled for a different user. Nothing is applied."""
