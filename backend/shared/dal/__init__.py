"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.exceptions import NotFoundError, PersistenceError, SessionOwnershipError, SettlementError
from shared.dal.models import EquippedCosmetics, PlayerProfile, ScoreRecord, Wallet
from shared.dal.profile_directory import ProfileDirectory
from shared.dal.score_repository import ScoreRepository

__all__ = [
    "EquippedCosmetics",
    "NotFoundError",
    "PersistenceError",
    "PlayerProfile",
    "ProfileDirectory",
    "ScoreRecord",
    "ScoreRepository",
    "SessionOwnershipError",
    "SettlementError",
    "Wallet",
]
