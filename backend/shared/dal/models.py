"""Persistence models for the data access layer."""

from datetime import datetime

from pydantic import BaseModel, Field


class ScoreRecord(BaseModel, frozen=True):
    """Personal best of one user within one (game, bucket). Never a history row."""

    user_id: str
    game: str  # game slug, e.g. "wordfall"
    bucket: str  # "easy" | "medium" | "hard"
    score: int = Field(ge=0)
    secondary_metric: int = Field(default=0, ge=0)  # words completed / correct answers / words found
    duration_ms: int = Field(default=0, ge=0)
    created_at: datetime
    session_id: str | None = None


class Wallet(BaseModel, frozen=True):
    """Per-user progression totals. xp and gold only ever grow."""

    user_id: str
    xp: int = Field(default=0, ge=0)
    gold: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)


class EquippedCosmetics(BaseModel, frozen=True):
    """References to the cosmetic items a player has equipped (item keys)."""

    avatar: str | None = None
    background: str | None = None
    title: str | None = None


class PlayerProfile(BaseModel, frozen=True):
    """Read-only profile data owned by the external profile service."""

    user_id: str
    display_name: str
    equipped: EquippedCosmetics = Field(default_factory=EquippedCosmetics)
